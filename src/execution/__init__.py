"""Ephemeral package execution core.

Resolves which requested packages are missing, installs them into an
isolated cache directory and hands off to the command runner.
"""

from .cache_key import derive_key
from .confirm import Decision, InstallConfirmer, InteractivityContext
from .manifest_cache import ManifestCache
from .membership import missing_from_tree
from .models import ExecOptions, ExecState, InstallPlan, MissingEntry
from .orchestrator import ExecOrchestrator, execute
from .runner import RunOptions, run_script

__all__ = [
    "derive_key",
    "Decision",
    "InstallConfirmer",
    "InteractivityContext",
    "ManifestCache",
    "missing_from_tree",
    "ExecOptions",
    "ExecState",
    "InstallPlan",
    "MissingEntry",
    "ExecOrchestrator",
    "execute",
    "RunOptions",
    "run_script",
]
