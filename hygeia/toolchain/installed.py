"""
Installed toolchain discovery.

Two sources make up the installed set:

- Managed installs under ``<home>/installed/<version>/``. Their location is
  the ``bin`` subdirectory when present, and a provenance file
  (``installed_by_hygeia.txt``) next to it marks them as ours.
- Interpreters already on the executable search path (system Pythons),
  found by running ``python -V``, ``python2 -V`` and ``python3 -V`` in each
  directory. The shim directory is skipped.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from hygeia.core.directory import PathsProvider
from hygeia.core.exceptions import InvalidVersionError
from hygeia.core.filesystem import executable_name, same_directory
from hygeia.toolchain.version import SemanticVersion, VersionRequirement

logger = logging.getLogger(__name__)

INFO_FILE = "installed_by_hygeia.txt"
EXECUTABLE_NAME = "hygeia"
PROBED_SUFFIXES = ("", "2", "3")

# Runs an interpreter with -V and returns its merged stdout/stderr
VersionRunner = Callable[[Path], str]

_INTERPRETER_VERSION_RE = re.compile(
    r"^(?P<release>\d+\.\d+(?:\.\d+)?)(?P<pre>(?:a|b|rc)\d+)?(?:\+)?$"
)


@dataclass(frozen=True)
class InstalledToolchain:
    """A toolchain present on disk; ``location`` is the directory holding its binaries."""

    version: SemanticVersion
    location: Path

    @property
    def is_managed(self) -> bool:
        """True when hygeia installed this toolchain (provenance file in the parent)."""
        return (Path(self.location).parent / INFO_FILE).exists()

    @classmethod
    def from_path(
        cls, path: Path, runner: Optional[VersionRunner] = None
    ) -> Optional["InstalledToolchain"]:
        """
        Highest interpreter found directly in ``path`` (or ``path/bin``).

        Returns:
            The toolchain, or None if no interpreter answers ``-V`` there
        """
        path = Path(path)
        candidates = [path / "bin", path] if (path / "bin").is_dir() else [path]
        for candidate in candidates:
            found = find_pythons_in_dir(candidate, runner=runner)
            if found:
                version = max(found)
                return cls(version=version, location=found[version])
        return None

    def __str__(self) -> str:
        return f"Python {self.version} ({self.location})"


def parse_interpreter_version(output: str) -> SemanticVersion:
    """
    Parse the output of ``python -V``.

    Example:
        >>> parse_interpreter_version("Python 3.8.0rc1")
        SemanticVersion('3.8.0-rc1')

    Raises:
        InvalidVersionError: If the output does not name a version
    """
    tokens = output.split()
    if len(tokens) < 2:
        raise InvalidVersionError(output.strip())
    match = _INTERPRETER_VERSION_RE.match(tokens[1])
    if match is None:
        raise InvalidVersionError(tokens[1])
    release = match.group("release")
    if release.count(".") == 1:
        release += ".0"
    pre = match.group("pre")
    return SemanticVersion.parse(f"{release}-{pre}" if pre else release)


def run_version_flag(executable: Path) -> str:
    """Run ``<executable> -V``; Python 2 prints the version to stderr."""
    result = subprocess.run(
        [str(executable), "-V"],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        stdin=subprocess.DEVNULL,
        text=True,
        timeout=30,
    )
    return result.stdout


def find_pythons_in_dir(
    directory: Path, runner: Optional[VersionRunner] = None
) -> Dict[SemanticVersion, Path]:
    """
    Probe ``python``, ``python2`` and ``python3`` in one directory.

    Directories containing the hygeia executable are shim directories and
    are skipped, as are interpreters that fail to run or report garbage.
    """
    runner = runner or run_version_flag
    directory = Path(directory)
    found: Dict[SemanticVersion, Path] = {}

    if (directory / executable_name(EXECUTABLE_NAME)).exists():
        logger.debug(f"Skipping shim directory {directory}")
        return found

    for suffix in PROBED_SUFFIXES:
        executable = directory / executable_name(f"python{suffix}")
        if not executable.is_file():
            continue
        try:
            output = runner(executable)
            version = parse_interpreter_version(output)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Failed to run {executable} -V: {e}")
            continue
        except InvalidVersionError as e:
            logger.debug(f"Failed to parse output from `{executable} -V`: {e}")
            continue
        logger.debug(f"Found Python {version} at {executable}")
        found.setdefault(version, directory)

    return found


class InstalledToolchainRegistry:
    """
    Enumerates installed toolchains, highest version first.

    The scan happens once, on first access; call :meth:`refresh` after
    installing something.
    """

    def __init__(
        self,
        paths: PathsProvider,
        discover_system: bool = True,
        runner: Optional[VersionRunner] = None,
    ):
        self.paths = paths
        self.discover_system = discover_system
        self.runner = runner
        self._toolchains: Optional[List[InstalledToolchain]] = None

    def refresh(self) -> None:
        self._toolchains = None

    def all(self) -> List[InstalledToolchain]:
        if self._toolchains is None:
            toolchains = self._scan_managed()
            if self.discover_system:
                toolchains.extend(self._scan_search_path(toolchains))
            toolchains.sort(key=lambda t: t.version, reverse=True)
            self._toolchains = toolchains
        return list(self._toolchains)

    def __iter__(self):
        return iter(self.all())

    def __len__(self) -> int:
        return len(self.all())

    def compatible(self, requirement: VersionRequirement) -> List[InstalledToolchain]:
        return [t for t in self.all() if requirement.matches(t.version)]

    def find_compatible(self, requirement: VersionRequirement) -> Optional[InstalledToolchain]:
        """Highest matching toolchain; on a version tie the managed one wins."""
        return best_of(self.compatible(requirement))

    def latest(self) -> Optional[InstalledToolchain]:
        return best_of(self.all())

    def find_by_location(self, location: Path) -> Optional[InstalledToolchain]:
        for toolchain in self.all():
            if same_directory(toolchain.location, location):
                return toolchain
        return None

    def _scan_managed(self) -> List[InstalledToolchain]:
        installed = self.paths.installed()
        toolchains: List[InstalledToolchain] = []

        if not installed.is_dir():
            logger.debug(f"No install directory at {installed}")
            return toolchains

        for entry in sorted(installed.iterdir()):
            if not entry.is_dir():
                continue
            try:
                version = SemanticVersion.parse(entry.name)
            except InvalidVersionError as e:
                logger.error(f"Error parsing version from directory {entry}: {e}")
                continue

            location = entry / "bin"
            if not location.is_dir():
                location = entry
            toolchains.append(InstalledToolchain(version=version, location=location))

        return toolchains

    def _scan_search_path(
        self, already_found: Sequence[InstalledToolchain]
    ) -> List[InstalledToolchain]:
        shims = self.paths.shims()
        known = list(already_found)
        discovered: List[InstalledToolchain] = []

        for directory in _unique(self.paths.search_paths()):
            if same_directory(directory, shims):
                continue
            if any(same_directory(directory, t.location) for t in known):
                continue
            for version, location in find_pythons_in_dir(directory, self.runner).items():
                toolchain = InstalledToolchain(version=version, location=location)
                # First directory on the search path wins for a given version
                if any(t.version == version and not t.is_managed for t in discovered):
                    continue
                discovered.append(toolchain)

        return discovered


def best_of(toolchains: Iterable[InstalledToolchain]) -> Optional[InstalledToolchain]:
    candidates = list(toolchains)
    if not candidates:
        return None
    return max(candidates, key=lambda t: (t.version, t.is_managed))


def _unique(paths: Iterable[Path]) -> List[Path]:
    seen = set()
    result = []
    for path in paths:
        key = str(path)
        if key in seen:
            continue
        seen.add(key)
        result.append(path)
    return result
