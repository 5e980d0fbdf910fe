"""Decide whether a requested package is already present in a tree."""

from __future__ import annotations

import logging
from typing import Optional

from registry.fetcher import FetchOptions
from registry.manifest import Manifest
from specifier.models import SourceKind, Specifier
from specifier.ranges import satisfies
from tree.models import Node, Tree

from .manifest_cache import ManifestCache

logger = logging.getLogger(__name__)


def _node_satisfies(spec: Specifier, node: Node) -> bool:
    """Registry match of ``node`` against ``spec`` without any network access."""
    kind = spec.kind
    if kind is SourceKind.REGISTRY_TAG:
        # Only reached for bare names: any installed version will do
        return True
    if kind is SourceKind.REGISTRY_VERSION:
        return node.pkgid == spec.pkgid
    if kind is SourceKind.REGISTRY_RANGE:
        return satisfies(node.version, spec.fetch_spec)
    if kind is SourceKind.NON_REGISTRY:
        return False
    raise ValueError(f"unhandled source kind {kind!r}")


def _matches_installed_metadata(spec: Specifier) -> bool:
    """True when ``spec`` can be checked against installed metadata directly.

    Explicit tags and non-registry sources must be resolved first.
    """
    kind = spec.kind
    if kind is SourceKind.REGISTRY_TAG:
        return spec.bare
    if kind in (SourceKind.REGISTRY_VERSION, SourceKind.REGISTRY_RANGE):
        return True
    if kind is SourceKind.NON_REGISTRY:
        return False
    raise ValueError(f"unhandled source kind {kind!r}")


async def missing_from_tree(
    spec: Specifier,
    tree: Tree,
    manifests: ManifestCache,
    opts: Optional[FetchOptions] = None,
) -> Optional[Manifest]:
    """Return the manifest to install when ``spec`` is missing from ``tree``.

    Returns None when the tree already satisfies the request. Fetch errors
    propagate unchanged.
    """
    if _matches_installed_metadata(spec):
        for node in tree.query(spec.name or ""):
            if _node_satisfies(spec, node):
                logger.debug("%s satisfied by %s in %s", spec.raw, node.pkgid, tree.root)
                return None
        return await manifests.resolve(spec, opts)

    manifest = await manifests.resolve(spec, opts)
    for node in tree.query(manifest.name):
        if node.resolved and node.resolved == manifest.resolved:
            logger.debug("%s satisfied by %s (%s)", spec.raw, node.pkgid, node.resolved)
            return None
    return manifest
