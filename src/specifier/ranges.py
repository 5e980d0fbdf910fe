"""npm-flavoured semver helpers built on semantic_version."""

from __future__ import annotations

from typing import Iterable, Optional

import semantic_version


def clean_version(text: str) -> Optional[str]:
    """Return the normalized exact version for ``text`` or None.

    Mirrors npm's loose parsing of a leading ``=`` or ``v``.
    """
    candidate = text.strip()
    while candidate[:1] in ("=", "v", "V") and len(candidate) > 1:
        candidate = candidate[1:].strip()
    try:
        return str(semantic_version.Version(candidate))
    except ValueError:
        return None


def parse_range(text: str) -> Optional[semantic_version.NpmSpec]:
    """Parse an npm range (``^1.2``, ``1.x``, ``>=1 <2``, ``1 - 2``...) or return None."""
    try:
        return semantic_version.NpmSpec(text.strip())
    except ValueError:
        return None


def satisfies(version: str, range_text: str) -> bool:
    """Return True when ``version`` satisfies the npm range ``range_text``.

    Unparseable versions or ranges never satisfy.
    """
    spec = parse_range(range_text)
    if spec is None:
        return False
    try:
        return spec.match(semantic_version.Version(version))
    except ValueError:
        return False


def max_satisfying(versions: Iterable[str], range_text: str) -> Optional[str]:
    """Return the highest version in ``versions`` that satisfies ``range_text``."""
    spec = parse_range(range_text)
    if spec is None:
        return None
    parsed = []
    for v in versions:
        try:
            parsed.append(semantic_version.Version(v))
        except ValueError:
            continue  # Skip invalid versions
    best = spec.select(parsed)
    return str(best) if best is not None else None
