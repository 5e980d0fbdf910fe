"""Manifest fetching for every specifier source type.

Registry requests (and aliases) go through :class:`NpmRegistryClient`;
local directories and tarballs are read from disk; remote tarballs are
downloaded; git sources are resolved to a commit and checked out shallowly.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from common.errors import FetchError
from constants import Constants
from specifier.models import SourceType, Specifier

from .client import NpmRegistryClient
from .manifest import Manifest
from .tarball import read_tarball_bytes, read_tarball_manifest

logger = logging.getLogger(__name__)

_FULL_SHA = re.compile(r"^[0-9a-f]{40}$", re.I)


@dataclass(frozen=True)
class FetchOptions:
    """Per-invocation knobs handed to the fetch client."""

    where: str = "."
    prefer_online: bool = True


def _read_package_json(directory: str) -> Dict[str, Any]:
    path = os.path.join(directory, Constants.PACKAGE_JSON_FILE)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} is not a JSON object")
    return data


def _read_tarball_file(path: str) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return read_tarball_manifest(f)


class ManifestFetcher:
    """Resolve any Specifier into a Manifest."""

    def __init__(self, client: NpmRegistryClient, git: str = "git"):
        self._client = client
        self._git = git

    async def fetch(self, spec: Specifier, opts: Optional[FetchOptions] = None) -> Manifest:
        """Resolve ``spec``.

        Raises:
            FetchError: On any registry, filesystem, tarball or git failure.
        """
        opts = opts or FetchOptions()
        source = spec.source_type
        if source is SourceType.REGISTRY:
            return await self._client.manifest(spec, prefer_online=opts.prefer_online)
        if source is SourceType.ALIAS:
            assert spec.sub_spec is not None
            manifest = await self._client.manifest(spec.sub_spec, prefer_online=opts.prefer_online)
            return replace(manifest, install_descriptor=spec.raw)
        if source is SourceType.DIRECTORY:
            return await self._fetch_directory(spec)
        if source is SourceType.FILE:
            return await self._fetch_file(spec)
        if source is SourceType.REMOTE:
            return await self._fetch_remote(spec)
        if source is SourceType.GIT:
            return await self._fetch_git(spec)
        raise FetchError(f"Unsupported specifier source {source!r}", spec=spec.raw)

    async def _fetch_directory(self, spec: Specifier) -> Manifest:
        try:
            data = await asyncio.to_thread(_read_package_json, spec.fetch_spec)
        except (OSError, ValueError) as exc:
            raise FetchError(f"Could not read package.json in {spec.fetch_spec}: {exc}", spec=spec.raw) from exc
        resolved = f"file:{spec.fetch_spec}"
        return Manifest.from_package_json(data, resolved=resolved, install_descriptor=resolved)

    async def _fetch_file(self, spec: Specifier) -> Manifest:
        try:
            data = await asyncio.to_thread(_read_tarball_file, spec.fetch_spec)
        except (OSError, ValueError) as exc:
            raise FetchError(f"Could not read tarball {spec.fetch_spec}: {exc}", spec=spec.raw) from exc
        resolved = f"file:{spec.fetch_spec}"
        return Manifest.from_package_json(data, resolved=resolved, install_descriptor=resolved)

    async def _fetch_remote(self, spec: Specifier) -> Manifest:
        body = await self._client.download(spec.fetch_spec)
        try:
            data = read_tarball_bytes(body)
        except ValueError as exc:
            raise FetchError(f"Could not read tarball {spec.fetch_spec}: {exc}", spec=spec.raw) from exc
        return Manifest.from_package_json(
            data, resolved=spec.fetch_spec, install_descriptor=spec.fetch_spec
        )

    async def _run_git(self, args: List[str], cwd: Optional[str] = None) -> str:
        logger.debug("git %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                self._git,
                *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise FetchError(f"git executable not found: {self._git}") from exc
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise FetchError(
                f"git {args[0]} failed ({proc.returncode}): {stderr.decode(errors='replace').strip()}"
            )
        return stdout.decode(errors="replace")

    async def resolve_committish(self, url: str, committish: Optional[str]) -> str:
        """Return the full commit sha that ``committish`` (default HEAD) points at."""
        if committish and _FULL_SHA.match(committish):
            return committish.lower()
        ref = committish or "HEAD"
        output = await self._run_git(["ls-remote", url, ref])
        refs = {}
        for line in output.splitlines():
            sha, _, name = line.partition("\t")
            if sha and name:
                refs[name.strip()] = sha.strip()
        # Annotated tags: prefer the peeled commit
        for name, sha in refs.items():
            if name.endswith("^{}"):
                return sha
        if refs:
            return next(iter(refs.values()))
        raise FetchError(f"Could not resolve {ref} in {url}")

    async def _fetch_git(self, spec: Specifier) -> Manifest:
        url = spec.fetch_spec
        try:
            sha = await self.resolve_committish(url, spec.committish)
        except FetchError as exc:
            raise FetchError(str(exc), spec=spec.raw) from exc
        workdir = tempfile.mkdtemp(prefix="runpkg-git-")
        try:
            await self._run_git(["init", "--quiet"], cwd=workdir)
            await self._run_git(["fetch", "--quiet", "--depth", "1", url, sha], cwd=workdir)
            await self._run_git(["checkout", "--quiet", "FETCH_HEAD"], cwd=workdir)
            data = await asyncio.to_thread(_read_package_json, workdir)
        except FetchError as exc:
            raise FetchError(str(exc), spec=spec.raw) from exc
        except (OSError, ValueError) as exc:
            raise FetchError(f"Could not read package.json from {url}#{sha}: {exc}", spec=spec.raw) from exc
        finally:
            shutil.rmtree(workdir, ignore_errors=True)
        resolved = f"git+{url}#{sha}"
        return Manifest.from_package_json(data, resolved=resolved, install_descriptor=resolved)
