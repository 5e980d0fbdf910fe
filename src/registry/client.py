"""npm registry client: packument retrieval and version picking."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from typing import Any, Dict, Mapping, Optional

import aiohttp

from common.errors import FetchError
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import Constants
from specifier.models import SourceKind, Specifier
from specifier.ranges import max_satisfying, satisfies

from .manifest import Manifest

logger = logging.getLogger(__name__)


def escape_name(name: str) -> str:
    """Registry path segment for ``name`` (``@scope/foo`` -> ``@scope%2ffoo``)."""
    if name.startswith("@"):
        return "@" + urllib.parse.quote(name[1:], safe="").replace("%2F", "%2f")
    return urllib.parse.quote(name, safe="")


def pick_version(packument: Mapping[str, Any], spec: Specifier) -> str:
    """Select the version of ``packument`` that ``spec`` asks for.

    Tags go through ``dist-tags``; exact versions must exist; ranges prefer
    the ``latest`` tag when it satisfies, else the highest match.

    Raises:
        FetchError: If nothing matches.
    """
    versions = packument.get("versions") or {}
    dist_tags = packument.get("dist-tags") or {}

    if spec.kind is SourceKind.REGISTRY_TAG:
        version = dist_tags.get(spec.fetch_spec)
        if version and version in versions:
            return version
    elif spec.kind is SourceKind.REGISTRY_VERSION:
        if spec.fetch_spec in versions:
            return spec.fetch_spec
    elif spec.kind is SourceKind.REGISTRY_RANGE:
        latest = dist_tags.get(Constants.DEFAULT_TAG)
        if latest and latest in versions and satisfies(latest, spec.fetch_spec):
            return latest
        version = max_satisfying(versions.keys(), spec.fetch_spec)
        if version:
            return version
    else:
        raise FetchError(f"{spec.raw} is not a registry specifier", spec=spec.raw)

    raise FetchError(
        f"No matching version found for {spec.name}@{spec.fetch_spec}",
        spec=spec.raw,
    )


def pick_manifest(packument: Mapping[str, Any], spec: Specifier) -> Manifest:
    """Build the Manifest for the version ``spec`` selects from ``packument``."""
    version = pick_version(packument, spec)
    doc = dict(packument["versions"][version])
    doc.setdefault("name", packument.get("name") or spec.name)
    doc.setdefault("version", version)
    dist = doc.get("dist") or {}
    return Manifest.from_package_json(
        doc,
        resolved=dist.get("tarball") or "",
        integrity=dist.get("integrity"),
    )


class NpmRegistryClient:
    """Async client for an npm-compatible registry."""

    def __init__(
        self,
        registry: str = Constants.REGISTRY_URL_NPM,
        timeout: int = Constants.REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the client.

        Args:
            registry: Registry base URL.
            timeout: Total request timeout in seconds.
            session: Optional externally managed session.
        """
        self._registry = registry.rstrip("/") + "/"
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    @property
    def registry(self) -> str:
        return self._registry

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": Constants.USER_AGENT},
            )
            self._owns_session = True

    async def stop(self) -> None:
        """Stop the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "NpmRegistryClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _get(self, url: str, headers: Dict[str, str], context: str) -> bytes:
        if self._session is None:
            await self.start()
        assert self._session is not None
        target = safe_url(url)
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="registry_client",
                    action="GET",
                    target=target,
                    context=context,
                ),
            )
        with Timer() as timer:
            try:
                async with self._session.get(url, headers=headers) as response:
                    body = await response.read()
                    status = response.status
            except asyncio.TimeoutError as exc:
                raise FetchError(
                    f"{context} request timed out after {self._timeout.total} seconds: {target}",
                    spec=context,
                ) from exc
            except aiohttp.ClientError as exc:
                raise FetchError(f"{context} connection error: {exc}", spec=context) from exc

        if status == 404:
            raise FetchError(f"404 Not Found - GET {target} - {context}", spec=context, status=404)
        if not 200 <= status < 300:
            raise FetchError(
                f"Unexpected status code ({status}) - GET {target}", spec=context, status=status
            )
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response ok",
                extra=extra_context(
                    event="http_response",
                    component="registry_client",
                    outcome="success",
                    status_code=status,
                    duration_ms=timer.duration_ms(),
                    target=target,
                ),
            )
        return body

    async def packument(self, name: str, prefer_online: bool = True) -> Dict[str, Any]:
        """Fetch the (abbreviated) packument for ``name``."""
        headers = {"Accept": Constants.NPM_PACKUMENT_ACCEPT}
        if prefer_online:
            headers["Cache-Control"] = "no-cache"
        body = await self._get(self._registry + escape_name(name), headers, name)
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FetchError(f"Invalid JSON in packument for {name}", spec=name) from exc
        if not isinstance(data, dict) or not isinstance(data.get("versions"), dict):
            raise FetchError(f"Malformed packument for {name}", spec=name)
        return data

    async def manifest(self, spec: Specifier, prefer_online: bool = True) -> Manifest:
        """Resolve a registry specifier to a Manifest."""
        packument = await self.packument(spec.name or "", prefer_online=prefer_online)
        manifest = pick_manifest(packument, spec)
        logger.debug("Resolved %s to %s", spec.raw, manifest.id)
        return manifest

    async def download(self, url: str) -> bytes:
        """Download a tarball."""
        return await self._get(url, {"Accept": "*/*"}, url)
