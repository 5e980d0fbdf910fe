"""Error taxonomy shared by the specifier, registry, tree and execution layers.

Every error carries the process exit code the CLI reports for it, so the
entry point can map failures without knowing which layer raised them.
"""

from __future__ import annotations

from typing import Optional

from constants import ExitCodes


class RunpkgError(Exception):
    """Base class for all failures surfaced by runpkg."""

    exit_code = ExitCodes.GENERAL_ERROR.value


class InvalidSpecifier(RunpkgError):
    """A package request string could not be parsed."""

    exit_code = ExitCodes.INVALID_SPECIFIER.value

    def __init__(self, raw: str, reason: str = ""):
        self.raw = raw
        self.reason = reason
        message = f"Invalid package specifier: {raw!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ConfigurationError(RunpkgError):
    """Required configuration is missing or unreadable."""

    exit_code = ExitCodes.CONFIGURATION_ERROR.value


class FetchError(RunpkgError):
    """Manifest resolution failed (registry, tarball or git source)."""

    exit_code = ExitCodes.CONNECTION_ERROR.value

    def __init__(self, message: str, spec: Optional[str] = None, status: Optional[int] = None):
        self.spec = spec
        self.status = status
        super().__init__(message)


class InstallError(RunpkgError):
    """The tree engine failed to reify the requested additions."""

    exit_code = ExitCodes.INSTALL_ERROR.value

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class UserCancelled(RunpkgError):
    """The user (or a pre-decided "no") declined the install."""

    exit_code = ExitCodes.USER_CANCELLED.value

    def __init__(self, message: str = "canceled"):
        super().__init__(message)


class ExecutableNotFound(RunpkgError):
    """A manifest does not declare an executable that can be picked."""

    def __init__(self, pkgid: str):
        self.pkgid = pkgid
        super().__init__(f"could not determine executable to run ({pkgid})")


class CommandError(RunpkgError):
    """The executed command exited with a non-zero status."""

    def __init__(self, status: int, command: str = ""):
        self.status = status
        self.command = command
        message = f"command failed with exit status {status}"
        if command:
            message = f"{message}: {command}"
        super().__init__(message)

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.status
