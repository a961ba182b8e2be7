"""
Hard link management for installed toolchains and the shim directory.

Two kinds of links are maintained:

- Version links inside a toolchain's ``bin`` directory, so that
  ``python3.7`` is also reachable as ``python`` and ``python3``.
- Shim links in ``<home>/shims``: every shim name is a hard link to the
  hygeia launcher copied there by ``setup``. The launcher dispatches on
  the name it was invoked under.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from hygeia.core.directory import PathsProvider
from hygeia.core.filesystem import create_hard_link
from hygeia.core.platform import PlatformInfo, detect_platform
from hygeia.toolchain.installed import EXECUTABLE_NAME
from hygeia.toolchain.version import SemanticVersion

logger = logging.getLogger(__name__)

PLACEHOLDER = "###"

# Binaries "make install" creates with a major.minor suffix
VERSIONED_BINARY_TEMPLATES = (
    "easy_install-###",
    "idle###",
    "pip###",
    "pydoc###",
    "python###",
    "python###m",
    "python###m-config",
    "pyvenv-###",
)

SHIM_TEMPLATES = (
    "python###",
    "idle###",
    "pip###",
    "pydoc###",
    "python###-config",
    "python###dm-config",
    "pipenv###",
    "poetry###",
    "pytest###",
)

SHIM_DASH_TEMPLATES = (
    "2to3###",
    "easy_install###",
    "pyvenv###",
)


def link_versioned_binaries(bin_dir: Path, version: SemanticVersion) -> List[Path]:
    """
    Create unversioned and major-only hard links to major.minor binaries.

    ``pip3.7`` gets ``pip`` and ``pip3``; ``easy_install-3.7`` gets
    ``easy_install`` and ``easy_install3``. Templates whose source binary
    the version does not ship are logged and skipped.

    Returns:
        The links that were created
    """
    bin_dir = Path(bin_dir)
    major_minor = version.major_minor()
    major = str(version.major)
    created: List[Path] = []

    for template in VERSIONED_BINARY_TEMPLATES:
        source = bin_dir / template.replace(PLACEHOLDER, major_minor)
        targets = (
            template.replace("-" + PLACEHOLDER, "").replace(PLACEHOLDER, ""),
            template.replace("-" + PLACEHOLDER, major).replace(PLACEHOLDER, major),
        )
        for target_name in targets:
            target = bin_dir / target_name
            if target == source:
                continue
            if create_hard_link(source, target):
                created.append(target)

    logger.debug(f"Created {len(created)} version links in {bin_dir}")
    return created


def shim_names() -> List[str]:
    """
    Every command name ``setup`` installs a shim for.

    Example:
        >>> names = shim_names()
        >>> "python3" in names and "2to3-2" in names
        True
    """
    names: List[str] = []
    for template in SHIM_TEMPLATES:
        for suffix in ("", "2", "3"):
            names.append(template.replace(PLACEHOLDER, suffix))
    for template in SHIM_DASH_TEMPLATES:
        for suffix in ("", "-2", "-3"):
            names.append(template.replace(PLACEHOLDER, suffix))
    return names


class ShimLinkManager:
    """Maintains hard links from command names to the shim launcher."""

    def __init__(self, paths: PathsProvider, platform: Optional[PlatformInfo] = None):
        self.paths = paths
        self.platform = platform or detect_platform()

    @property
    def shims_dir(self) -> Path:
        return self.paths.shims()

    @property
    def launcher(self) -> Path:
        return self.shims_dir / self._exe(EXECUTABLE_NAME)

    def _exe(self, name: str) -> str:
        if self.platform.is_windows and not name.lower().endswith(".exe"):
            return f"{name}.exe"
        return name

    def link(self, name: str) -> bool:
        """Make ``name`` a shim. Returns False if the launcher is not installed."""
        if self._exe(name) == self.launcher.name:
            return False
        return create_hard_link(self.launcher, self.shims_dir / self._exe(name))

    def install_all(self) -> List[str]:
        """Create a shim for every name in :func:`shim_names`."""
        linked = [name for name in shim_names() if self.link(name)]
        logger.info(f"Created {len(linked)} shims in {self.shims_dir}")
        return linked

    def mirror_new_binaries(self, new_files: Iterable[Path]) -> List[str]:
        """
        Expose binaries an external process just created as shims.

        Entries that are not executable files are ignored.
        """
        linked: List[str] = []
        for new_file in sorted(new_files):
            if not _is_executable_file(new_file, self.platform):
                logger.debug(f"Ignoring new non-executable entry {new_file}")
                continue
            name = new_file.name
            if self.platform.is_windows and name.lower().endswith(".exe"):
                name = name[: -len(".exe")]
            if self.link(name):
                logger.info(f"Created shim for new command '{name}'")
                linked.append(name)
        return linked


def _is_executable_file(path: Path, platform: PlatformInfo) -> bool:
    if not path.is_file():
        return False
    if platform.is_windows:
        return path.suffix.lower() == ".exe"
    return os.access(path, os.X_OK)


__all__ = [
    "VERSIONED_BINARY_TEMPLATES",
    "link_versioned_binaries",
    "shim_names",
    "ShimLinkManager",
]
