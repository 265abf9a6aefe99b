"""CLI entry point.

Without arguments an interactive REPL starts; otherwise the arguments are run
as a single command (e.g. ``python -m cli.main upload report.pdf``).
"""

import os
import shlex
import sys

from common.logging_config import setup_logging
from cli.commands import close_client
from cli.parser import ParseError, parse_command
from cli.repl import dispatch_command, repl_loop


def run_once(args: list[str]) -> int:
    """
    Run a single command given on the command line.

    Returns:
        Process exit code
    """
    try:
        cmd_obj = parse_command(shlex.join(args))
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = dispatch_command(cmd_obj)
    print(result)
    return 1 if result.startswith(("Error", "Upload failed")) else 0


def main() -> None:
    """Entry point for CLI."""
    debug = '--debug' in sys.argv
    log_level = 'DEBUG' if debug else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)

    args = [a for a in sys.argv[1:] if a != '--debug']
    if debug:
        logger.info("Debug logging enabled")

    logger.info("CLI starting...")
    exit_code = 0
    try:
        if args:
            exit_code = run_once(args)
        else:
            repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        close_client()
        logger.info("CLI exiting")

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
