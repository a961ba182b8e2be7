"""
Directory layout management for hygeia.

Every component that touches the filesystem receives a ``PathsProvider``
instead of reading environment variables itself. Production code uses
``EnvPathsProvider``; tests build a ``StaticPathsProvider`` rooted in a
temporary directory.

Directory Structure (home defaults to ~/.hygeia, overridable with $HYGEIA_HOME):
    - cache/available_toolchains.json : Cached remote catalog
    - cache/downloaded/               : Downloaded archives
    - cache/extracted/                : Unpacked source trees
    - cache/logs/                     : Per-version, per-step build logs
    - installed/<version>/            : Managed toolchain installs
    - shims/                          : Shim hard links (put this on PATH)
    - shell/<shell>/                  : Generated shell configuration
    - extra-packages-to-install.txt   : Default extra package list
    - config.yaml                     : Optional user settings
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from hygeia.core.exceptions import HygeiaError

HOME_ENV_VAR = "HYGEIA_HOME"
DEFAULT_HOME_DIRNAME = ".hygeia"
AVAILABLE_TOOLCHAINS_CACHE = "available_toolchains.json"
EXTRA_PACKAGES_FILENAME = "extra-packages-to-install.txt"
CONFIG_FILENAME = "config.yaml"


class DirectoryError(HygeiaError):
    """Base exception for directory-related errors."""

    pass


class DirectoryCreationError(DirectoryError):
    """Raised when directory creation fails."""

    pass


class PathsProvider(ABC):
    """
    Resolve every location hygeia reads or writes.

    Subclasses only decide where the home root is and which directories make
    up the executable search path; the layout under home is fixed.
    """

    @abstractmethod
    def home(self) -> Path:
        pass

    @abstractmethod
    def search_paths(self) -> List[Path]:
        """Directories of the inherited executable search path, in order."""
        pass

    def cache(self) -> Path:
        return self.home() / "cache"

    def downloaded(self) -> Path:
        return self.cache() / "downloaded"

    def extracted(self) -> Path:
        return self.cache() / "extracted"

    def logs(self) -> Path:
        return self.cache() / "logs"

    def available_toolchains_cache_file(self) -> Path:
        return self.cache() / AVAILABLE_TOOLCHAINS_CACHE

    def installed(self) -> Path:
        return self.home() / "installed"

    def install_dir(self, version) -> Path:
        return self.installed() / str(version)

    def bin_dir(self, version) -> Path:
        return self.install_dir(version) / "bin"

    def shims(self) -> Path:
        return self.home() / "shims"

    def shell(self) -> Path:
        return self.home() / "shell"

    def default_extra_package_file(self) -> Path:
        return self.home() / EXTRA_PACKAGES_FILENAME

    def config_file(self) -> Path:
        return self.home() / CONFIG_FILENAME

    def ensure_structure(self) -> Path:
        """
        Create the home directory and its fixed subdirectories.

        Returns:
            Path: The home directory.

        Raises:
            DirectoryCreationError: If a directory cannot be created.
        """
        for directory in (
            self.home(),
            self.downloaded(),
            self.extracted(),
            self.logs(),
            self.installed(),
            self.shims(),
        ):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DirectoryCreationError(
                    f"Failed to create directory {directory}: {e}"
                )
        return self.home()


class EnvPathsProvider(PathsProvider):
    """Paths derived from the process environment ($HYGEIA_HOME and $PATH)."""

    def __init__(self, environ: Optional[dict] = None):
        self._environ = os.environ if environ is None else environ

    def home(self) -> Path:
        override = self._environ.get(HOME_ENV_VAR)
        if override:
            # Relative values are taken against the current directory
            return Path(override).expanduser().absolute()
        return _user_home(self._environ) / DEFAULT_HOME_DIRNAME

    def search_paths(self) -> List[Path]:
        return split_search_path(self._environ.get("PATH", ""))


class StaticPathsProvider(PathsProvider):
    """Fixed paths, used by tests and embedding applications."""

    def __init__(self, home: Path, search_paths: Iterable[Path] = ()):
        self._home = Path(home)
        self._search_paths = [Path(p) for p in search_paths]

    def home(self) -> Path:
        return self._home

    def search_paths(self) -> List[Path]:
        return list(self._search_paths)


def _user_home(environ) -> Path:
    if os.name == "nt":
        user_profile = environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                f"Set {HOME_ENV_VAR} to choose where hygeia keeps its files."
            )
        return Path(user_profile)
    return Path.home()


def split_search_path(value: str) -> List[Path]:
    """Split a PATH-style string into directories, dropping empty entries."""
    return [Path(entry) for entry in value.split(os.pathsep) if entry]


def join_search_path(paths: Iterable[Path]) -> str:
    """Inverse of :func:`split_search_path`."""
    return os.pathsep.join(str(p) for p in paths)
