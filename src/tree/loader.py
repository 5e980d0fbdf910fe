"""Load the actual installed tree from a ``node_modules`` directory."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from constants import Constants
from registry.manifest import normalize_bin

from .models import Node, Tree

logger = logging.getLogger(__name__)


def _read_json(path: str) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.debug("Skipping unreadable %s: %s", path, exc)
        return None
    return data if isinstance(data, dict) else None


def _load_hidden_lockfile(root: str) -> Dict[str, Dict[str, Any]]:
    """Map ``node_modules/...`` relative locations to hidden lockfile entries."""
    path = os.path.join(root, Constants.NODE_MODULES, Constants.HIDDEN_LOCKFILE)
    data = _read_json(path) if os.path.isfile(path) else None
    if not data:
        return {}
    packages = data.get("packages")
    return packages if isinstance(packages, dict) else {}


def _absolute_file_ref(resolved: Optional[str], base: str) -> Optional[str]:
    """Make a relative ``file:`` reference absolute against ``base``."""
    if not resolved or not resolved.startswith("file:"):
        return resolved
    target = resolved[5:]
    if not os.path.isabs(target):
        target = os.path.normpath(os.path.join(base, target))
    return f"file:{target}"


def _package_dirs(node_modules: str) -> List[str]:
    """Package directories directly inside ``node_modules`` (scopes expanded)."""
    try:
        entries = sorted(os.listdir(node_modules))
    except OSError:
        return []
    dirs = []
    for entry in entries:
        if entry.startswith("."):
            continue
        path = os.path.join(node_modules, entry)
        if entry.startswith("@"):
            if os.path.isdir(path):
                dirs.extend(
                    os.path.join(path, scoped)
                    for scoped in sorted(os.listdir(path))
                    if not scoped.startswith(".")
                )
            continue
        dirs.append(path)
    return dirs


def load_actual(root: str) -> Tree:
    """Walk ``<root>/node_modules`` and return the installed tree.

    Resolved ids come from the hidden lockfile when present, else from the
    legacy ``_resolved`` package.json field. Symlinked packages (directory
    installs) resolve to ``file:<real path>``. A missing directory yields
    an empty tree.
    """
    root = os.path.abspath(root)
    lock_entries = _load_hidden_lockfile(root)
    nodes: List[Node] = []
    pending = [os.path.join(root, Constants.NODE_MODULES)]
    seen = set()

    while pending:
        node_modules = pending.pop()
        for pkg_dir in _package_dirs(node_modules):
            real = os.path.realpath(pkg_dir)
            data = _read_json(os.path.join(pkg_dir, Constants.PACKAGE_JSON_FILE))
            if not data or not data.get("name"):
                continue
            location = os.path.relpath(pkg_dir, root).replace(os.sep, "/")
            if os.path.islink(pkg_dir):
                resolved: Optional[str] = f"file:{real}"
            else:
                entry = lock_entries.get(location) or {}
                resolved = _absolute_file_ref(entry.get("resolved") or data.get("_resolved"), root)
            nodes.append(
                Node(
                    name=str(data["name"]),
                    version=str(data.get("version") or ""),
                    location=location,
                    resolved=resolved,
                    bin=normalize_bin(str(data["name"]), data.get("bin")),
                )
            )
            nested = os.path.join(pkg_dir, Constants.NODE_MODULES)
            if real not in seen and os.path.isdir(nested):
                seen.add(real)
                pending.append(nested)

    logger.debug("Loaded %d nodes from %s", len(nodes), root)
    return Tree(root, nodes)
