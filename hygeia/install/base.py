"""
Shared types for the installation pipeline.

An installation runs as a fixed sequence of steps, numbered out of 15 in
progress headers and log file names:

    [1/15] Download
    [2/15] Extract
    [3/15] Configure       (Unix)    / Bootstrap pip (Windows)
    [4/15] Make            (Unix)
    [5/15] Make install    (Unix)
    [6/15].. pip install --upgrade <package>   (extras)

Platform differences are confined to :class:`ToolchainInstaller`
implementations, chosen once when the pipeline is composed.
"""

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from hygeia.core.about import __version__
from hygeia.core.process import timestamp
from hygeia.toolchain.catalog import RemoteToolchainDescriptor
from hygeia.toolchain.installed import INFO_FILE
from hygeia.toolchain.version import SemanticVersion

logger = logging.getLogger(__name__)

TOTAL_STEPS = 15
FIRST_EXTRA_STEP = 6


def step_header(step: int, name: str) -> str:
    """
    Example:
        >>> step_header(4, "Make")
        '[4/15] Make'
    """
    return f"[{step}/{TOTAL_STEPS}] {name}"


class Stage(enum.Enum):
    """Where an installation job currently is."""

    PENDING = "pending"
    DOWNLOAD = "download"
    EXTRACT = "extract"
    BUILD = "build"
    LINK = "link"
    EXTRAS = "extras"
    DONE = "done"


@dataclass
class InstallationJob:
    """State of one ``install`` invocation. Never persisted."""

    descriptor: RemoteToolchainDescriptor
    install_dir: Path
    bin_dir: Path
    archive_path: Path
    stage: Stage = Stage.PENDING
    log_file: Optional[Path] = None

    @property
    def version(self) -> SemanticVersion:
        return self.descriptor.version

    def enter(self, stage: Stage) -> None:
        logger.debug(f"Python {self.version}: {self.stage.value} -> {stage.value}")
        self.stage = stage


class ToolchainInstaller(ABC):
    """
    Platform-specific part of an installation.

    Implementations unpack the downloaded archive, build or unpack the
    toolchain into ``job.install_dir`` and write the provenance file.
    """

    name = "abstract"

    @abstractmethod
    def extract(self, job: InstallationJob) -> None:
        pass

    @abstractmethod
    def build(self, job: InstallationJob) -> None:
        pass

    @abstractmethod
    def link(self, job: InstallationJob) -> None:
        """Post-install links inside the toolchain's bin directory."""
        pass

    @abstractmethod
    def interpreter(self, job: InstallationJob) -> Path:
        """The interpreter used to run ``pip`` for extra packages."""
        pass

    @abstractmethod
    def scripts_dir(self, job: InstallationJob) -> Path:
        """Where ``pip`` drops console scripts."""
        pass


def write_provenance_file(install_dir: Path, version: SemanticVersion) -> Path:
    """
    Mark ``install_dir`` as installed by hygeia.

    The file sits next to the toolchain's ``bin`` directory; its presence is
    what :attr:`InstalledToolchain.is_managed` checks.
    """
    install_dir = Path(install_dir)
    install_dir.mkdir(parents=True, exist_ok=True)
    info_file = install_dir / INFO_FILE
    info_file.write_text(
        f"Python {version} installed using hygeia version {__version__} on {timestamp()}.\n",
        encoding="utf-8",
    )
    logger.debug(f"Wrote provenance file {info_file}")
    return info_file
