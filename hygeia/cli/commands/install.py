"""
Install command implementation.

Downloads, builds and registers the Python release matching a requirement.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from hygeia.cli.context import context_from_args
from hygeia.cli.utils import always_yes, ask_yes_no
from hygeia.core.exceptions import ResolutionError
from hygeia.install.extras import write_default_extra_packages
from hygeia.toolchain.toolchain_file import ToolchainFile, save_version
from hygeia.toolchain.version import VersionRequirement

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    logger.debug(f"Arguments: {args}")

    context = context_from_args(args)
    if args.release:
        context.settings = replace(context.settings, release_build=True)

    requirement = requested_requirement(args.requested_version)
    package_files = _extra_package_files(context.paths, args)
    confirm = always_yes if args.yes else ask_yes_no

    toolchain = context.pipeline(confirm=confirm).install(
        requirement, force=args.force, extra_package_files=package_files
    )

    if args.select:
        marker = save_version(toolchain.version)
        logger.info(f"Selected Python {toolchain.version} in {marker}")

    return 0


def requested_requirement(
    requested_version: Optional[str], start: Optional[Path] = None
) -> VersionRequirement:
    """
    The requirement to install: the argument if given, else the marker file's.

    Raises:
        InvalidRequirementError: If ``requested_version`` is not a requirement
        ResolutionError: If neither source names a version
    """
    if requested_version is not None:
        return VersionRequirement.parse(requested_version)

    marker = ToolchainFile.load(start)
    if marker is None:
        raise ResolutionError(
            "No version given and no .python-version file found. "
            "Run 'hygeia install VERSION'."
        )
    if marker.is_path:
        raise ResolutionError(
            f"{marker.source} selects the interpreter at {marker.path}, which cannot be installed"
        )
    logger.info(f"Using requirement {marker.requirement} from {marker.source}")
    return marker.requirement


def _extra_package_files(paths, args) -> List[Path]:
    package_files: List[Path] = []
    if args.extra:
        default_file = paths.default_extra_package_file()
        write_default_extra_packages(default_file)
        package_files.append(default_file)
    if args.extra_from is not None:
        package_files.append(Path(args.extra_from))
    return package_files
