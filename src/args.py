"""Argument parsing functionality for runpkg."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="runpkg",
        description=(
            "runpkg - Run a command from a local or remote npm package "
            "without adding it to the project"
        ),
        add_help=True,
    )

    parser.add_argument("-p", "--package",
                        dest="PACKAGES",
                        help="Package to make available (can be used multiple times)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-c", "--call",
                        dest="CALL",
                        help="Command string to run in the package environment",
                        action="store", type=str,
                        default="")

    confirm_group = parser.add_mutually_exclusive_group()
    confirm_group.add_argument("-y", "--yes",
                               dest="YES",
                               help="Install missing packages without prompting",
                               action="store_const", const=True,
                               default=None)
    confirm_group.add_argument("-n", "--no",
                               dest="YES",
                               help="Never install missing packages (cancel instead)",
                               action="store_const", const=False)

    parser.add_argument("--cache",
                        dest="CACHE_DIR",
                        help="Directory holding the isolated package installs",
                        action="store", type=str)
    parser.add_argument("--registry",
                        dest="REGISTRY",
                        help="npm registry base URL",
                        action="store", type=str)
    parser.add_argument("--prefix",
                        dest="PREFIX",
                        help="Project directory to check for installed packages (default: current directory)",
                        action="store", type=str)
    parser.add_argument("--global-bin",
                        dest="GLOBAL_BIN",
                        help="Directory of globally installed executables",
                        action="store", type=str)
    parser.add_argument("--shell",
                        dest="SCRIPT_SHELL",
                        help="Shell used to run the command",
                        action="store", type=str)
    parser.add_argument("--color",
                        dest="COLOR",
                        help="Colorize output (default: auto)",
                        action="store", type=str.lower,
                        choices=["auto", "always", "never"])
    parser.add_argument("--prefer-offline",
                        dest="PREFER_OFFLINE",
                        help="Allow cached registry metadata instead of revalidating",
                        action="store_true")
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Registry request timeout in seconds",
                        action="store", type=int)
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store", type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    parser.add_argument("COMMAND",
                        help="Command to run followed by its arguments",
                        nargs=argparse.REMAINDER)

    return parser.parse_args(argv)
