"""Invocation-scoped, single-flight manifest memoization."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from registry.fetcher import FetchOptions
from registry.manifest import Manifest
from specifier.models import Specifier

logger = logging.getLogger(__name__)

FetchFn = Callable[[Specifier, FetchOptions], Awaitable[Manifest]]


class ManifestCache:
    """Memoize manifests by raw specifier text.

    Concurrent callers asking for the same raw text share one in-flight
    fetch. A failed fetch stays cached: every caller in the invocation sees
    the same error and nothing is retried.
    """

    def __init__(self, fetch: FetchFn, opts: Optional[FetchOptions] = None):
        self._fetch = fetch
        self._opts = opts or FetchOptions()
        self._entries: Dict[str, "asyncio.Future[Manifest]"] = {}
        self.fetch_count = 0

    async def resolve(self, spec: Specifier, opts: Optional[FetchOptions] = None) -> Manifest:
        """Return the manifest for ``spec``, fetching it at most once."""
        future = self._entries.get(spec.raw)
        if future is None:
            self.fetch_count += 1
            logger.debug("Fetching manifest for %s", spec.raw)
            future = asyncio.ensure_future(self._fetch(spec, opts or self._opts))
            self._entries[spec.raw] = future
        # Shielded so one cancelled waiter does not cancel the shared fetch
        return await asyncio.shield(future)

    def __contains__(self, raw: object) -> bool:
        return raw in self._entries

    def __len__(self) -> int:
        return len(self._entries)
