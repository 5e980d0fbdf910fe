"""Tree engine: load installed trees and reify additions through npm."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Dict, List, Optional, Protocol, Sequence

from common.errors import InstallError

from .loader import load_actual
from .models import Tree

logger = logging.getLogger(__name__)


class TreeEngine(Protocol):
    """What the execution core needs from a dependency-tree engine."""

    async def load_actual(self, path: str) -> Tree:
        """Return the tree installed under ``path``."""
        ...

    async def reify(self, path: str, add: Sequence[str]) -> None:
        """Install ``add`` (package ids or source references) into ``path``."""
        ...


class NpmTreeEngine:
    """TreeEngine that reads node_modules directly and installs with ``npm``."""

    def __init__(
        self,
        npm: str = "npm",
        registry: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        self._npm = npm
        self._registry = registry
        self._env = env

    async def load_actual(self, path: str) -> Tree:
        return await asyncio.to_thread(load_actual, path)

    def build_install_command(self, path: str, add: Sequence[str]) -> List[str]:
        """Command line used to install ``add`` under ``path``."""
        cmd = [self._npm, "install", "--no-audit", "--no-fund", "--prefix", path]
        if self._registry:
            cmd += ["--registry", self._registry]
        return cmd + list(add)

    async def reify(self, path: str, add: Sequence[str]) -> None:
        if not add:
            return
        cmd = self.build_install_command(path, add)
        env = None
        if self._env:
            env = os.environ.copy()
            env.update(self._env)
        logger.info("Installing %s into %s", ", ".join(add), path)
        try:
            proc = await asyncio.create_subprocess_exec(*cmd, cwd=path, env=env)
        except FileNotFoundError as exc:
            raise InstallError(f"npm executable not found: {self._npm}") from exc
        returncode = await proc.wait()
        if returncode != 0:
            raise InstallError(
                f"npm install exited with status {returncode} while installing {', '.join(add)}",
                status=returncode,
            )
