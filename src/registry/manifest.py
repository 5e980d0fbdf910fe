"""Resolved package manifests and executable selection."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from common.errors import ExecutableNotFound

_SCOPE_PREFIX = re.compile(r"^@[^/]+/")


def unscoped_name(name: str) -> str:
    """``@scope/foo`` -> ``foo``."""
    return _SCOPE_PREFIX.sub("", name)


def normalize_bin(name: str, bin_field: Any) -> Dict[str, str]:
    """Normalize a package.json ``bin`` field to a name -> path mapping."""
    if isinstance(bin_field, str) and bin_field:
        return {unscoped_name(name): bin_field}
    if isinstance(bin_field, dict):
        return {str(k): str(v) for k, v in bin_field.items() if k and v}
    return {}


@dataclass(frozen=True)
class Manifest:
    """Metadata for one resolvable package version.

    ``resolved`` identifies where the package physically comes from (tarball
    URL, ``file:`` path, ``git+url#sha``) and is compared with installed
    nodes; ``install_descriptor`` is what gets handed to the tree engine.
    """
    name: str
    version: str
    resolved: str
    install_descriptor: str
    bin: Mapping[str, str] = field(default_factory=dict)
    integrity: Optional[str] = None

    @property
    def id(self) -> str:
        return f"{self.name}@{self.version}"

    @classmethod
    def from_package_json(
        cls,
        data: Mapping[str, Any],
        resolved: str,
        install_descriptor: Optional[str] = None,
        integrity: Optional[str] = None,
    ) -> "Manifest":
        """Build a Manifest from a package.json-like document."""
        name = str(data.get("name") or "")
        version = str(data.get("version") or "")
        return cls(
            name=name,
            version=version,
            resolved=resolved,
            install_descriptor=install_descriptor or f"{name}@{version}",
            bin=normalize_bin(name, data.get("bin")),
            integrity=integrity,
        )


def bin_from_manifest(manifest: Manifest) -> str:
    """Pick the executable to run for ``manifest``.

    A single executable (or several names pointing at the same file) wins
    outright; otherwise the executable named after the unscoped package.

    Raises:
        ExecutableNotFound: If neither rule yields a name.
    """
    bins = dict(manifest.bin)
    if len(set(bins.values())) == 1:
        return next(iter(bins))
    name = unscoped_name(manifest.name)
    if name in bins:
        return name
    raise ExecutableNotFound(manifest.id)
