"""
Version command implementation.

Prints the version of the interpreter selected for the current directory.
"""

import logging

from hygeia.cli.context import context_from_args
from hygeia.toolchain.selector import active_selector

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the version command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 if no interpreter is installed)
    """
    context = context_from_args(args)
    toolchain = active_selector(args.requested_version).resolve(context.registry)

    if toolchain is None:
        print()
        logger.error("No Python interpreter installed")
        return 1

    print(toolchain.version)
    return 0
