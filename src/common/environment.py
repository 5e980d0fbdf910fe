"""Execution-context detection: TTY, CI and platform shell."""

from __future__ import annotations

import os
import sys
from typing import Mapping, Optional

IS_WINDOWS = sys.platform == "win32"

# Variables set by common CI providers; any non-empty, non-"false" value counts.
_CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "RUN_ID",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "TF_BUILD",
    "BUILDKITE",
    "CIRCLECI",
    "TRAVIS",
    "JENKINS_URL",
    "TEAMCITY_VERSION",
    "APPVEYOR",
    "CODEBUILD_BUILD_ID",
    "BITBUCKET_BUILD_NUMBER",
    "DRONE",
)


def is_ci(env: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when running under a continuous-integration provider."""
    env = os.environ if env is None else env
    for name in _CI_ENV_VARS:
        value = env.get(name)
        if value and value.strip().lower() != "false":
            return True
    return False


def no_tty(stream=None) -> bool:
    """Return True when ``stream`` (stdin by default) is not an interactive terminal."""
    stream = sys.stdin if stream is None else stream
    try:
        return not stream.isatty()
    except (AttributeError, ValueError):
        return True


def default_shell(env: Optional[Mapping[str, str]] = None) -> str:
    """Shell used to run commands: ``%ComSpec%``/``cmd`` on Windows, ``sh`` elsewhere."""
    env = os.environ if env is None else env
    if IS_WINDOWS:
        return env.get("ComSpec") or "cmd"
    return "sh"
