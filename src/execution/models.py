"""Value objects passed between the execution stages."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from common.environment import default_shell
from constants import Constants
from registry.manifest import Manifest
from specifier.models import Specifier


@dataclass(frozen=True)
class MissingEntry:
    """A requested package absent from a tree, with the manifest to install."""
    spec: Specifier
    manifest: Manifest

    @property
    def install_descriptor(self) -> str:
        return self.manifest.install_descriptor


@dataclass
class InstallPlan:
    """Ordered install descriptors for the isolated cache tree."""
    descriptors: List[str] = field(default_factory=list)

    def add(self, descriptor: str) -> None:
        self.descriptors.append(descriptor)

    @property
    def is_empty(self) -> bool:
        return not self.descriptors

    def __len__(self) -> int:
        return len(self.descriptors)

    def __iter__(self):
        return iter(self.descriptors)


class ExecState(Enum):
    """States of one exec invocation."""
    START = "start"
    CLASSIFY = "classify"
    RESOLVE_MEMBERSHIP = "resolve_membership"
    DERIVE_KEY = "derive_key"
    CONFIRM = "confirm"
    INSTALL = "install"
    RESOLVE_BINARY = "resolve_binary"
    RUN = "run"
    DONE = "done"
    ABORT = "abort"


def _default_local_bin() -> str:
    return os.path.abspath(Constants.BIN_DIR)


def _default_output(message: str) -> None:
    print(message)


@dataclass
class ExecOptions:
    """Everything one exec invocation needs from configuration.

    ``yes`` is tri-state: True always installs, False always cancels, None
    asks (or warns and proceeds when no terminal is attached).
    """
    args: List[str] = field(default_factory=list)
    call: str = ""
    color: bool = False
    local_bin: str = field(default_factory=_default_local_bin)
    location_msg: Optional[str] = None
    global_bin: str = ""
    output: Callable[[str], None] = _default_output
    packages: List[str] = field(default_factory=list)
    path: str = "."
    run_path: str = "."
    script_shell: str = field(default_factory=default_shell)
    yes: Optional[bool] = None
    cache_dir: Optional[str] = None
    registry: str = Constants.REGISTRY_URL_NPM
    prefer_online: bool = True
    timeout: int = Constants.REQUEST_TIMEOUT
