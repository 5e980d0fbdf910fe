"""Filesystem lookups for already-available executables."""

from __future__ import annotations

import os
from typing import Optional

from constants import Constants


def file_exists(path: str) -> bool:
    """True when ``path`` is an existing regular file."""
    return os.path.isfile(path)


def _walk_up(start: str):
    path = os.path.abspath(start)
    while True:
        yield path
        parent = os.path.dirname(path)
        if parent == path:
            return
        path = parent


def local_file_exists(directory: str, bin_name: str, root: str = "/") -> Optional[str]:
    """Find ``node_modules/.bin/<bin_name>`` walking up from ``directory``.

    Stops after ``root`` (compared case-insensitively). Returns the bin
    directory that holds the executable, or None.
    """
    stop = os.path.abspath(root).lower()
    for path in _walk_up(directory):
        bin_dir = os.path.join(path, Constants.BIN_DIR)
        if file_exists(os.path.join(bin_dir, bin_name)):
            return bin_dir
        if path.lower() == stop:
            return None
    return None
