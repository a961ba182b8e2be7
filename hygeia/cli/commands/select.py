"""
Select command implementation.

Writes the project marker file for an already installed interpreter, named
either by a version requirement or by the directory containing it.
"""

import logging
from pathlib import Path

from hygeia.cli.context import context_from_args
from hygeia.core.exceptions import MissingInterpreter, ToolchainNotInstalledError
from hygeia.toolchain.installed import InstalledToolchain
from hygeia.toolchain.toolchain_file import ToolchainFile, save_path, save_version

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the select command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)

    Raises:
        ToolchainNotInstalledError: If no installed interpreter matches
        MissingInterpreter: If a directory contains no interpreter
    """
    context = context_from_args(args)
    registry = context.registry
    request = ToolchainFile.parse(args.requested, base_dir=Path.cwd())

    if request.is_path:
        toolchain = registry.find_by_location(request.path) or InstalledToolchain.from_path(
            request.path, runner=registry.runner
        )
        if toolchain is None:
            raise MissingInterpreter(str(request.path))
        marker = save_path(request.path)
    else:
        toolchain = registry.find_compatible(request.requirement)
        if toolchain is None:
            raise ToolchainNotInstalledError(request.requirement)
        marker = save_version(toolchain.version)

    logger.info(f"Selected {toolchain} (written to {marker})")
    return 0
