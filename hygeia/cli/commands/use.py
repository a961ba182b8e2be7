"""
Use command implementation.

Selects a version for the current directory, installing it first when no
installed interpreter matches.
"""

import logging

from hygeia.cli.context import context_from_args
from hygeia.cli.utils import ask_yes_no
from hygeia.toolchain.toolchain_file import save_version
from hygeia.toolchain.version import VersionRequirement

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the use command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    context = context_from_args(args)
    requirement = VersionRequirement.parse(args.requested_version)

    toolchain = context.registry.find_compatible(requirement)
    if toolchain is None:
        logger.info(f"No installed interpreter matches {requirement}, installing one")
        toolchain = context.pipeline(confirm=ask_yes_no).install(requirement)

    marker = save_version(toolchain.version)
    logger.info(f"Using {toolchain} (written to {marker})")
    return 0
