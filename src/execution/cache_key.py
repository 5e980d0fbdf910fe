"""Deterministic naming of isolated install directories."""

from __future__ import annotations

import hashlib
from typing import Iterable, Tuple

from constants import Constants


def _sort_key(text: str) -> Tuple[str, str]:
    # Case-insensitive primary order; on ties lowercase sorts first, as in en collation
    return (text.casefold(), text.swapcase())


def derive_key(packages: Iterable[str], length: int = Constants.CACHE_KEY_LENGTH) -> str:
    """Return a hex digest naming the cache directory for ``packages``.

    The requested strings are deduplicated, sorted, newline-joined and
    hashed with SHA-512; the first ``length`` hex characters are kept. Input
    order never affects the result.
    """
    ordered = sorted(set(packages), key=_sort_key)
    digest = hashlib.sha512("\n".join(ordered).encode("utf-8")).hexdigest()
    return digest[:length]
