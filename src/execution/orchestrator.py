"""Exec orchestration: resolve missing packages, install them into an
isolated cache directory and run the requested command.

Each invocation walks an explicit state machine::

    START -> CLASSIFY -> RESOLVE_MEMBERSHIP -> DERIVE_KEY -> CONFIRM
          -> INSTALL -> RESOLVE_BINARY -> RUN -> DONE

START jumps straight to RUN for interactive passthrough (nothing requested),
CLASSIFY jumps to RUN when the command is an already-available executable,
RESOLVE_MEMBERSHIP jumps to RUN when nothing is missing, and CONFIRM moves
to ABORT when the install is declined.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Awaitable, Callable, Dict, List, Optional

from common.errors import ConfigurationError, UserCancelled
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from registry.client import NpmRegistryClient
from registry.fetcher import FetchOptions, ManifestFetcher
from registry.manifest import bin_from_manifest
from specifier.models import Specifier
from specifier.parser import classify
from tree.engine import NpmTreeEngine, TreeEngine

from .cache_key import derive_key
from .confirm import Decision, InstallConfirmer, InteractivityContext
from .file_exists import file_exists, local_file_exists
from .manifest_cache import FetchFn, ManifestCache
from .membership import missing_from_tree
from .models import ExecOptions, ExecState, InstallPlan, MissingEntry
from .runner import RunOptions, run_script

logger = logging.getLogger(__name__)

Runner = Callable[[RunOptions], Awaitable[int]]


class ExecOrchestrator:
    """One exec invocation. Not reusable: create a new instance per call."""

    def __init__(
        self,
        options: ExecOptions,
        fetch: FetchFn,
        tree_engine: TreeEngine,
        confirmer: Optional[InstallConfirmer] = None,
        runner: Runner = run_script,
        interactivity: Optional[InteractivityContext] = None,
    ):
        self.options = options
        # Copied: the command swap rewrites args[0] and appends to packages
        self.args: List[str] = list(options.args)
        self.packages: List[str] = list(options.packages)
        self.bin_paths: List[str] = []
        self.fetch_opts = FetchOptions(where=options.path, prefer_online=options.prefer_online)
        self.manifests = ManifestCache(fetch, self.fetch_opts)
        self.need_install: List[MissingEntry] = []
        self.plan = InstallPlan()
        self.install_dir: Optional[str] = None
        self.transitions: List[ExecState] = []
        self.status: int = 0

        self._engine = tree_engine
        self._confirmer = confirmer or InstallConfirmer()
        self._runner = runner
        self._interactivity = interactivity
        self._specs: List[Specifier] = []
        self._command_spec: Optional[Specifier] = None
        self._handlers: Dict[ExecState, Callable[[], Awaitable[ExecState]]] = {
            ExecState.START: self._start,
            ExecState.CLASSIFY: self._classify,
            ExecState.RESOLVE_MEMBERSHIP: self._resolve_membership,
            ExecState.DERIVE_KEY: self._derive_key,
            ExecState.CONFIRM: self._confirm,
            ExecState.INSTALL: self._install,
            ExecState.RESOLVE_BINARY: self._resolve_binary,
            ExecState.RUN: self._run,
            ExecState.ABORT: self._abort,
        }

    async def run(self) -> int:
        """Drive the state machine to completion and return the exit status."""
        state = ExecState.START
        while state is not ExecState.DONE:
            self.transitions.append(state)
            if is_debug_enabled(logger):
                logger.debug(
                    "exec state",
                    extra=extra_context(event="state", component="exec", action=state.value),
                )
            state = await self._handlers[state]()
        self.transitions.append(ExecState.DONE)
        return self.status

    async def _start(self) -> ExecState:
        if not self.options.call and not self.args and not self.packages:
            return ExecState.RUN
        return ExecState.CLASSIFY

    async def _classify(self) -> ExecState:
        if self.args and not self.packages:
            command = self.args[0]
            project_dir = os.path.dirname(os.path.dirname(self.options.local_bin))
            local_bin = await asyncio.to_thread(local_file_exists, project_dir, command, "/")
            if local_bin:
                self.bin_paths.append(local_bin)
                return ExecState.RUN
            global_bin = self.options.global_bin
            if global_bin and await asyncio.to_thread(file_exists, os.path.join(global_bin, command)):
                self.bin_paths.append(global_bin)
                return ExecState.RUN
            # args[0] is swapped for the package's executable after resolution
            self.packages.append(command)
            self._specs = [classify(command, self.options.path)]
            self._command_spec = self._specs[0]
            return ExecState.RESOLVE_MEMBERSHIP

        self._specs = [classify(pkg, self.options.path) for pkg in self.packages]
        return ExecState.RESOLVE_MEMBERSHIP

    async def _resolve_membership(self) -> ExecState:
        local_tree = await self._engine.load_actual(self.options.path)
        results = await asyncio.gather(
            *(missing_from_tree(spec, local_tree, self.manifests) for spec in self._specs)
        )
        self.need_install = [
            MissingEntry(spec, manifest)
            for spec, manifest in zip(self._specs, results)
            if manifest is not None
        ]

        if self._command_spec is not None:
            command_manifest = next(
                (e.manifest for e in self.need_install if e.spec.raw == self._command_spec.raw),
                None,
            )
            if command_manifest is None:
                command_manifest = await self.manifests.resolve(self._command_spec)
            self.args[0] = bin_from_manifest(command_manifest)
            logger.debug("Command %s resolved to bin %s", self._command_spec.raw, self.args[0])

        if not self.need_install:
            return ExecState.RUN
        return ExecState.DERIVE_KEY

    async def _derive_key(self) -> ExecState:
        cache_dir = self.options.cache_dir
        if not cache_dir:
            raise ConfigurationError("Must provide a valid cache directory path")
        self.install_dir = os.path.abspath(os.path.join(cache_dir, derive_key(self.packages)))
        await asyncio.to_thread(os.makedirs, self.install_dir, exist_ok=True)

        cache_tree = await self._engine.load_actual(self.install_dir)
        results = await asyncio.gather(
            *(missing_from_tree(e.spec, cache_tree, self.manifests) for e in self.need_install)
        )
        for manifest in results:
            if manifest is not None:
                self.plan.add(manifest.install_descriptor)
        return ExecState.CONFIRM

    async def _confirm(self) -> ExecState:
        context = self._interactivity or InteractivityContext.detect(self.options.yes)
        decision = await self._confirmer.confirm(self.plan.descriptors, context)
        if decision is Decision.ABORT:
            return ExecState.ABORT
        return ExecState.INSTALL

    async def _install(self) -> ExecState:
        if not self.plan.is_empty:
            assert self.install_dir is not None
            await self._engine.reify(self.install_dir, list(self.plan))
        return ExecState.RESOLVE_BINARY

    async def _resolve_binary(self) -> ExecState:
        assert self.install_dir is not None
        self.bin_paths.append(os.path.join(self.install_dir, Constants.BIN_DIR))
        return ExecState.RUN

    async def _run(self) -> ExecState:
        opts = self.options
        self.status = await self._runner(
            RunOptions(
                args=list(self.args),
                call=opts.call,
                bin_paths=list(self.bin_paths),
                path=opts.path,
                run_path=opts.run_path,
                script_shell=opts.script_shell,
                color=opts.color,
                location_msg=opts.location_msg,
                output=opts.output,
            )
        )
        return ExecState.DONE

    async def _abort(self) -> ExecState:
        raise UserCancelled()


async def execute(
    options: ExecOptions,
    *,
    fetch: Optional[FetchFn] = None,
    tree_engine: Optional[TreeEngine] = None,
    confirmer: Optional[InstallConfirmer] = None,
    runner: Runner = run_script,
    interactivity: Optional[InteractivityContext] = None,
) -> int:
    """Run one exec invocation with the default collaborators filled in."""
    client = NpmRegistryClient(options.registry, timeout=options.timeout)
    try:
        if fetch is None:
            fetch = ManifestFetcher(client).fetch
        if tree_engine is None:
            registry = options.registry if options.registry != Constants.REGISTRY_URL_NPM else None
            tree_engine = NpmTreeEngine(registry=registry)
        orchestrator = ExecOrchestrator(
            options,
            fetch,
            tree_engine,
            confirmer=confirmer,
            runner=runner,
            interactivity=interactivity,
        )
        return await orchestrator.run()
    finally:
        await client.stop()
