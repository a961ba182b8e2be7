"""
List command implementation.

Prints the installed interpreters and marks the one selected for the
current directory.
"""

import logging

from hygeia.cli.context import context_from_args
from hygeia.cli.utils import print_table
from hygeia.toolchain.selector import ToolchainSelector
from hygeia.toolchain.toolchain_file import ToolchainFile

logger = logging.getLogger(__name__)

HEADERS = ("Active", "Version", "Managed", "Location")


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    context = context_from_args(args)
    registry = context.registry

    marker = ToolchainFile.load()
    active = ToolchainSelector().from_project_file().error_if_missing().resolve(registry)

    rows = []
    for toolchain in registry.all():
        rows.append(
            (
                "*" if toolchain == active else "",
                str(toolchain.version),
                "yes" if toolchain.is_managed else "no",
                str(toolchain.location),
            )
        )

    if marker is not None and active is None:
        rows.insert(0, ("*", str(marker), "", "not installed"))

    if not rows:
        logger.info("No Python interpreter installed. Run 'hygeia install VERSION'.")
        return 0

    print_table(HEADERS, rows)
    return 0
