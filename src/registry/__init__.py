"""Manifest resolution against the npm registry and non-registry sources."""

from .client import NpmRegistryClient, pick_manifest, pick_version
from .fetcher import FetchOptions, ManifestFetcher
from .manifest import Manifest, bin_from_manifest

__all__ = [
    "NpmRegistryClient",
    "pick_manifest",
    "pick_version",
    "FetchOptions",
    "ManifestFetcher",
    "Manifest",
    "bin_from_manifest",
]
