"""CLI entry point for exec mode.

Sets up logging, builds ExecOptions, runs one exec invocation and maps
failures to exit codes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Any

from common.errors import CommandError, RunpkgError
from common.logging_utils import configure_logging
from constants import Constants, ExitCodes

logger = logging.getLogger(__name__)


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments, environment and config file.

    Args:
        args: Parsed CLI arguments.
    """
    from cli_config import config_log_level  # pylint: disable=import-outside-toplevel

    # Honor CLI --loglevel, then RUNPKG_LOG_LEVEL, then the config file
    level_name = getattr(args, "LOG_LEVEL", None)
    if level_name:
        os.environ[Constants.ENV_LOG_LEVEL] = str(level_name).upper()
    elif not os.environ.get(Constants.ENV_LOG_LEVEL):
        configured = config_log_level(args)
        if configured:
            os.environ[Constants.ENV_LOG_LEVEL] = configured

    configure_logging()

    # Add file handler if --logfile specified
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def run_exec(args: Any) -> None:
    """Entry point for exec mode.

    Args:
        args: Parsed CLI arguments namespace.
    """
    _setup_logging(args)

    from cli_config import build_exec_options  # pylint: disable=import-outside-toplevel
    from execution.orchestrator import execute  # pylint: disable=import-outside-toplevel

    exit_code = ExitCodes.GENERAL_ERROR.value
    try:
        options = build_exec_options(args)
        logger.debug("Exec options: %s", options)
        exit_code = asyncio.run(execute(options))
    except CommandError as exc:
        # The command already reported its own failure
        logger.debug("%s", exc)
        exit_code = exc.exit_code
    except RunpkgError as exc:
        logger.error("%s", exc)
        exit_code = exc.exit_code
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = ExitCodes.INTERRUPTED.value

    sys.exit(exit_code)
