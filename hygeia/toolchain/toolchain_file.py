"""
The per-project marker file (``.python-version``).

Its first line is either a version requirement (``3.7.4``, ``= 3.7.4``,
``~3.7``, ``*``, ``latest``) or a path to a toolchain. The file is searched
from the current directory upwards to the filesystem root.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from hygeia.core.exceptions import InvalidRequirementError, ToolchainFileError
from hygeia.toolchain.version import SemanticVersion, VersionRequirement

logger = logging.getLogger(__name__)

TOOLCHAIN_FILE = ".python-version"


@dataclass(frozen=True)
class ToolchainFile:
    """Parsed marker file: exactly one of ``requirement`` or ``path`` is set."""

    requirement: Optional[VersionRequirement] = None
    path: Optional[Path] = None
    source: Optional[Path] = None

    @property
    def is_path(self) -> bool:
        return self.path is not None

    @classmethod
    def parse(cls, line: str, base_dir: Optional[Path] = None, source: Optional[Path] = None) -> "ToolchainFile":
        """
        Interpret one marker line.

        Requirements are tried first; anything else is a path, relative
        paths being taken against ``base_dir``.

        Raises:
            ToolchainFileError: If the line is empty or names a missing path
        """
        text = line.strip()
        if not text:
            raise ToolchainFileError(
                f"Toolchain file {source} is empty" if source else "Empty toolchain specification"
            )

        try:
            requirement = VersionRequirement.parse(text)
        except InvalidRequirementError:
            pass
        else:
            logger.debug(f"Parsed {text!r} as version requirement {requirement}")
            return cls(requirement=requirement, source=source)

        path = Path(text).expanduser()
        if not path.is_absolute() and base_dir is not None:
            path = Path(base_dir) / path
        if not path.exists():
            raise ToolchainFileError(f"Requested toolchain path {path} not found")
        logger.debug(f"Parsed {text!r} as path {path}")
        return cls(path=path.resolve(), source=source)

    @staticmethod
    def find(start: Optional[Path] = None) -> Optional[Path]:
        """Locate the nearest marker file from ``start`` (default: cwd) upwards."""
        directory = Path(start) if start is not None else Path.cwd()
        directory = directory.absolute()
        for candidate_dir in (directory, *directory.parents):
            candidate = candidate_dir / TOOLCHAIN_FILE
            if candidate.is_file():
                logger.debug(f"Found toolchain file {candidate}")
                return candidate
        return None

    @classmethod
    def load(cls, start: Optional[Path] = None) -> Optional["ToolchainFile"]:
        """
        Find and parse the nearest marker file.

        Returns:
            None when no marker file exists anywhere up to the root

        Raises:
            ToolchainFileError: If the file is empty, unreadable or names a missing path
        """
        marker = cls.find(start)
        if marker is None:
            return None

        try:
            with open(marker, "r", encoding="utf-8") as f:
                first_line = f.readline()
        except (OSError, UnicodeDecodeError) as e:
            raise ToolchainFileError(f"Cannot read toolchain file {marker}: {e}")

        if not first_line.strip():
            raise ToolchainFileError(f"Toolchain file {marker} is empty")

        return cls.parse(first_line, base_dir=marker.parent, source=marker)

    def __str__(self) -> str:
        return str(self.path) if self.is_path else str(self.requirement)


def _write(content: str, directory: Optional[Path]) -> Path:
    target = (Path(directory) if directory is not None else Path.cwd()) / TOOLCHAIN_FILE
    logger.debug(f"Writing toolchain selection to file {target}")
    target.write_text(content + "\n", encoding="utf-8")
    return target


def save_version(version: Union[SemanticVersion, str], directory: Optional[Path] = None) -> Path:
    """Pin an exact version: writes ``= <version>``."""
    return _write(f"= {version}", directory)


def save_path(location: Path, directory: Optional[Path] = None) -> Path:
    """Pin a toolchain location."""
    return _write(str(Path(location)), directory)
