"""CLI entry point."""

import os
import shlex
import sys

from common.logging_config import setup_logging
from cli.repl import repl_loop, dispatch_command
from cli.parser import ParseError, parse_command


def main() -> None:
    """
    Entry point for CLI.

    With no arguments an interactive shell starts; otherwise the arguments
    are run as a single command, e.g. `appserver-cli upload ./report.pdf`.
    """
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    logger.info("CLI starting...")
    try:
        args = sys.argv[1:]
        if not args:
            repl_loop()
            return

        try:
            cmd_obj = parse_command(" ".join(shlex.quote(arg) for arg in args))
        except ParseError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)
        print(dispatch_command(cmd_obj))
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
