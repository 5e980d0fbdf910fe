"""Reading package.json out of npm package tarballs."""

from __future__ import annotations

import io
import json
import tarfile
from typing import Any, BinaryIO, Dict

from constants import Constants


def read_tarball_manifest(fileobj: BinaryIO) -> Dict[str, Any]:
    """Return the decoded package.json from a (gzipped) package tarball.

    npm tarballs nest everything under one top-level directory (usually
    ``package/``); the shallowest package.json is used.

    Raises:
        ValueError: If the archive is unreadable or has no package.json.
    """
    try:
        with tarfile.open(fileobj=fileobj, mode="r:*") as archive:
            candidates = [
                m for m in archive.getmembers()
                if m.isfile() and m.name.rsplit("/", 1)[-1] == Constants.PACKAGE_JSON_FILE
            ]
            if not candidates:
                raise ValueError("no package.json in tarball")
            member = min(candidates, key=lambda m: m.name.count("/"))
            extracted = archive.extractfile(member)
            if extracted is None:
                raise ValueError("unreadable package.json in tarball")
            data = json.loads(extracted.read().decode("utf-8"))
    except (tarfile.TarError, OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"invalid package tarball: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("package.json is not an object")
    return data


def read_tarball_bytes(data: bytes) -> Dict[str, Any]:
    """Same as :func:`read_tarball_manifest` for an in-memory archive."""
    return read_tarball_manifest(io.BytesIO(data))
