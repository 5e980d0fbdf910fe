"""Runtime configuration for exec mode.

Builds ExecOptions from, in decreasing precedence, CLI flags, RUNPKG_*
environment variables, the YAML config file and built-in defaults.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Mapping, Optional

import yaml

from common.environment import default_shell
from common.errors import ConfigurationError
from constants import Constants
from execution.models import ExecOptions

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


def _parse_bool(value: Any, source: str) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Invalid boolean {value!r} for {source}")


def resolve_config_path(cli_path: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    """Config file to read: --config, then RUNPKG_CONFIG, then ~/.runpkgrc.yml if present."""
    if cli_path:
        return cli_path
    env_path = env.get(Constants.ENV_CONFIG)
    if env_path:
        return env_path
    if os.path.isfile(Constants.DEFAULT_CONFIG_FILE):
        return Constants.DEFAULT_CONFIG_FILE
    return None


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the YAML configuration mapping.

    A missing file is logged and treated as empty.

    Raises:
        ConfigurationError: If the file cannot be parsed or is not a mapping.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        raise ConfigurationError(f"Failed to load config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return data


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _resolve_color(choice: Optional[str], stream=None) -> bool:
    stream = stream or sys.stdout
    if choice in (True, "always"):
        return True
    if choice in (False, "never"):
        return False
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def build_exec_options(args: Any, env: Optional[Mapping[str, str]] = None) -> ExecOptions:
    """Merge CLI args, environment and config file into ExecOptions."""
    env = os.environ if env is None else env
    config = load_config_file(resolve_config_path(getattr(args, "CONFIG", None), env))

    command = list(getattr(args, "COMMAND", None) or [])
    # Strip leading '--' separator if present
    if command and command[0] == "--":
        command = command[1:]

    prefix = os.path.abspath(getattr(args, "PREFIX", None) or os.getcwd())

    yes = getattr(args, "YES", None)
    if yes is None:
        yes = _parse_bool(env.get(Constants.ENV_YES) or None, Constants.ENV_YES)
    if yes is None:
        # YAML 1.1 loads a bare `yes:` key as the boolean True
        yes = _parse_bool(config.get("yes", config.get(True)), "config key 'yes'")

    prefer_online = not getattr(args, "PREFER_OFFLINE", False)
    if prefer_online and "prefer-online" in config:
        prefer_online = bool(_parse_bool(config.get("prefer-online"), "config key 'prefer-online'"))

    timeout = _first(getattr(args, "TIMEOUT", None), config.get("timeout"), Constants.REQUEST_TIMEOUT)
    try:
        timeout = int(timeout)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid timeout {timeout!r}") from e

    cache_dir = _first(
        getattr(args, "CACHE_DIR", None),
        env.get(Constants.ENV_CACHE),
        config.get("cache"),
        Constants.DEFAULT_CACHE_DIR,
    )

    color_choice = _first(getattr(args, "COLOR", None), config.get("color"), "auto")

    return ExecOptions(
        args=command,
        call=getattr(args, "CALL", "") or "",
        color=_resolve_color(color_choice),
        local_bin=os.path.join(prefix, Constants.BIN_DIR),
        global_bin=_first(
            getattr(args, "GLOBAL_BIN", None),
            env.get(Constants.ENV_GLOBAL_BIN),
            config.get("global-bin"),
        ) or "",
        packages=list(getattr(args, "PACKAGES", None) or []),
        path=prefix,
        run_path=os.getcwd(),
        script_shell=_first(getattr(args, "SCRIPT_SHELL", None), config.get("shell")) or default_shell(env),
        yes=yes,
        cache_dir=os.path.expanduser(str(cache_dir)),
        registry=_first(
            getattr(args, "REGISTRY", None),
            env.get(Constants.ENV_REGISTRY),
            config.get("registry"),
            Constants.REGISTRY_URL_NPM,
        ),
        prefer_online=prefer_online,
        timeout=timeout,
    )


def config_log_level(args: Any, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Log level from the config file, used when neither CLI nor env set one."""
    env = os.environ if env is None else env
    try:
        config = load_config_file(resolve_config_path(getattr(args, "CONFIG", None), env))
    except ConfigurationError:
        return None  # reported again, with a proper exit code, by build_exec_options
    level = config.get("loglevel")
    return str(level).upper() if level else None
