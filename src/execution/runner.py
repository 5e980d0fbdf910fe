"""Run the final command with the resolved bin paths on PATH."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional

from common.environment import IS_WINDOWS, is_ci, no_tty
from common.errors import CommandError
from constants import Constants

logger = logging.getLogger(__name__)

_RESET = "\x1b[0m"
_DIM = "\x1b[2m"
_BOLD = "\x1b[1m"


@dataclass
class RunOptions:
    """Inputs of the command runner."""
    args: List[str] = field(default_factory=list)
    call: str = ""
    bin_paths: List[str] = field(default_factory=list)
    path: str = "."
    run_path: str = "."
    script_shell: str = "sh"
    color: bool = False
    location_msg: Optional[str] = None
    output: Callable[[str], None] = print


def _style(text: str, code: str, color: bool) -> str:
    return f"{code}{text}{_RESET}" if color else text


def _walk_up_bins(start: str) -> List[str]:
    bins = []
    path = os.path.abspath(start)
    while True:
        bins.append(os.path.join(path, Constants.BIN_DIR))
        parent = os.path.dirname(path)
        if parent == path:
            return bins
        path = parent


def build_env(opts: RunOptions, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Environment for the command: bin paths first on PATH, npx lifecycle vars."""
    env = dict(os.environ if base is None else base)
    current = env.get("PATH", "")
    entries = list(opts.bin_paths) + _walk_up_bins(opts.path)
    if current:
        entries.append(current)
    env["PATH"] = os.pathsep.join(entries)
    env["npm_lifecycle_event"] = Constants.LIFECYCLE_EVENT
    package_json = os.path.join(os.path.abspath(opts.path), Constants.PACKAGE_JSON_FILE)
    if os.path.isfile(package_json):
        env["npm_package_json"] = package_json
    return env


def build_command(script: str, args: List[str], shell: str) -> List[str]:
    """argv that runs ``script args...`` through ``shell``."""
    if script == shell:
        return [shell]
    command = " ".join([script] + [shlex.quote(a) for a in args])
    if IS_WINDOWS and os.path.basename(shell).lower() in ("cmd", "cmd.exe"):
        return [shell, "/d", "/s", "/c", command]
    return [shell, "-c", command]


def _exit_status(returncode: int) -> int:
    # Killed by a signal: report it the way a shell would
    if returncode < 0:
        return 128 + (-returncode)
    return returncode


async def run_script(opts: RunOptions) -> int:
    """Run the command described by ``opts``.

    With no call and no arguments the shell itself is started; in CI that
    interactive mode is skipped with a warning.

    Raises:
        CommandError: If the command exits non-zero.
    """
    args = list(opts.args)
    script = opts.call or (args.pop(0) if args else "") or opts.script_shell

    if script == opts.script_shell and not no_tty():
        if is_ci():
            logger.warning("Interactive mode disabled in CI environment")
            return 0
        location = opts.location_msg or (
            " at location:\n" + _style(os.path.abspath(opts.run_path), _DIM, opts.color)
        )
        opts.output(
            _style("\nEntering npm script environment", _RESET, opts.color)
            + location
            + _style("\nType 'exit' or ^D when finished\n", _BOLD, opts.color)
        )

    argv = build_command(script, args, opts.script_shell)
    env = build_env(opts)
    logger.info("Running: %s", " ".join(argv))
    result = await asyncio.to_thread(subprocess.run, argv, cwd=opts.run_path, env=env)  # noqa: S603
    status = _exit_status(result.returncode)
    if status != 0:
        raise CommandError(status, " ".join([script] + args))
    return status
