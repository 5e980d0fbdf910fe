"""runpkg - run a command from an npm package without installing it into the project.

    Returns:
        int: Exit code
"""
from args import parse_args
from cli_exec import run_exec


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    run_exec(args)


if __name__ == "__main__":
    main()
