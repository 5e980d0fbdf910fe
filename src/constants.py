"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    CONNECTION_ERROR = 2
    INVALID_SPECIFIER = 3
    CONFIGURATION_ERROR = 4
    INSTALL_ERROR = 5
    USER_CANCELLED = 6
    INTERRUPTED = 130


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    # Abbreviated ("corgi") packument, falling back to the full document
    NPM_PACKUMENT_ACCEPT = (
        "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"
    )
    USER_AGENT = "runpkg/0.1.0"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    DEFAULT_LOG_LEVEL = "WARNING"

    DEFAULT_TAG = "latest"
    NODE_MODULES = "node_modules"
    BIN_DIR = os.path.join("node_modules", ".bin")
    PACKAGE_JSON_FILE = "package.json"
    HIDDEN_LOCKFILE = ".package-lock.json"
    CACHE_KEY_LENGTH = 16
    DEFAULT_CACHE_DIR = os.path.join(os.path.expanduser("~"), ".runpkg", "_npx")
    DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser("~"), ".runpkgrc.yml")
    LIFECYCLE_EVENT = "npx"

    ENV_LOG_LEVEL = "RUNPKG_LOG_LEVEL"
    ENV_CONFIG = "RUNPKG_CONFIG"
    ENV_CACHE = "RUNPKG_CACHE"
    ENV_REGISTRY = "RUNPKG_REGISTRY"
    ENV_YES = "RUNPKG_YES"
    ENV_GLOBAL_BIN = "RUNPKG_GLOBAL_BIN"
