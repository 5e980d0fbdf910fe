"""Data models for parsed package requests."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SourceKind(Enum):
    """How a request is matched against installed packages."""
    REGISTRY_TAG = "tag"
    REGISTRY_VERSION = "version"
    REGISTRY_RANGE = "range"
    NON_REGISTRY = "non-registry"


class SourceType(Enum):
    """Where the package comes from."""
    REGISTRY = "registry"
    ALIAS = "alias"
    DIRECTORY = "directory"
    FILE = "file"
    REMOTE = "remote"
    GIT = "git"


@dataclass(frozen=True)
class Specifier:
    """Structured parse of one requested package string.

    ``raw_spec`` is the text after ``name@`` exactly as given (empty for a
    bare name); ``fetch_spec`` is its normalized form: the tag, cleaned
    version, range, absolute path or URL that the fetch client resolves.
    """
    raw: str
    name: Optional[str]
    kind: SourceKind
    source_type: SourceType
    raw_spec: str = ""
    fetch_spec: str = ""
    committish: Optional[str] = None
    sub_spec: Optional["Specifier"] = None

    @property
    def registry(self) -> bool:
        """True for specifiers resolved against the registry by name."""
        return self.kind is not SourceKind.NON_REGISTRY

    @property
    def bare(self) -> bool:
        """True when the package was requested by name only."""
        return self.kind is SourceKind.REGISTRY_TAG and self.raw_spec == ""

    @property
    def pkgid(self) -> str:
        """``name@fetch_spec``; for exact versions this is the installed package id."""
        return f"{self.name}@{self.fetch_spec}"

    def __str__(self) -> str:
        return self.raw
