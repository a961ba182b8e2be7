"""
Run command implementation.

Runs a command line through the selected interpreter exactly like a shim.
"""

import logging

from hygeia.cli.context import context_from_args
from hygeia.core.exceptions import CommandFailedError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the run command.

    Args:
        args: Parsed command-line arguments

    Returns:
        The command's exit code
    """
    context = context_from_args(args)
    dispatcher = context.dispatcher()

    try:
        result = dispatcher.run_command_line(args.command_line, version=args.requested_version)
    except CommandFailedError as e:
        logger.error(str(e))
        return e.returncode

    logger.debug(f"{result.command} exited with {result.returncode}")
    return result.returncode
