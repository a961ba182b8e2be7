"""
Shim dispatch: run the real command behind a shim name.

When hygeia is invoked as ``python3``, ``pip2.7`` or ``pytest`` (a hard
link in the shim directory), the dispatcher:

1. infers a version override from the command name (``python3`` -> ``~3``),
2. resolves a toolchain from the project marker file plus that override,
   falling back to the latest installed toolchain,
3. rewrites ``PATH`` so the toolchain comes first and the shim directory
   is gone,
4. runs the real command with the original arguments and inherited stdio,
5. exposes any executables the command created (``pip install``) as shims,
6. reports the command's exit code.
"""

import logging
import os
import re
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence

from hygeia.core.dir_monitor import DirectoryDiffMonitor
from hygeia.core.directory import PathsProvider, join_search_path, split_search_path
from hygeia.core.exceptions import CommandFailedError, MissingInterpreter
from hygeia.core.filesystem import same_directory
from hygeia.core.platform import PlatformInfo, detect_platform
from hygeia.toolchain.installed import InstalledToolchain, InstalledToolchainRegistry
from hygeia.toolchain.linking import ShimLinkManager
from hygeia.toolchain.selector import ToolchainSelector
from hygeia.toolchain.version import Compatible, SemanticVersion, VersionRequirement

logger = logging.getLogger(__name__)

# A trailing 2 or 3 right after a non-digit, an optional ".minor",
# then an optional "m" and/or "-config" suffix.
_VERSIONED_NAME_RE = re.compile(
    r"^(?P<stem>.*\D)(?P<major>[23])(?:\.(?P<minor>\d+))?(?P<suffix>m?(?:-config)?)$"
)

# Spawns the command; returns its exit code
CommandRunner = Callable[[Sequence[str], Mapping[str, str]], int]


def _run_inheriting_stdio(argv: Sequence[str], env: Mapping[str, str]) -> int:
    return subprocess.call(list(argv), env=dict(env))


@dataclass(frozen=True)
class ShimInvocation:
    """
    A command name split around its version suffix.

    Example:
        >>> inv = ShimInvocation.parse("python2.7m-config")
        >>> (inv.stem, inv.major, inv.minor, inv.suffix)
        ('python', 2, 7, 'm-config')
        >>> ShimInvocation.parse("python-config").major is None
        True
    """

    name: str
    stem: str
    major: Optional[int] = None
    minor: Optional[int] = None
    suffix: str = ""

    @classmethod
    def parse(cls, command: str) -> "ShimInvocation":
        name = Path(command).name
        if name.lower().endswith(".exe"):
            name = name[: -len(".exe")]

        match = _VERSIONED_NAME_RE.match(name)
        if match is None:
            return cls(name=name, stem=name)

        minor = match.group("minor")
        return cls(
            name=name,
            stem=match.group("stem"),
            major=int(match.group("major")),
            minor=int(minor) if minor is not None else None,
            suffix=match.group("suffix"),
        )

    @property
    def is_versioned(self) -> bool:
        return self.major is not None

    @property
    def override(self) -> Optional[VersionRequirement]:
        """The requirement the name implies, e.g. ``~2.7`` for ``python2.7``."""
        if self.major is None:
            return None
        return Compatible(self.major, self.minor)

    def target_names(self, version: SemanticVersion) -> List[str]:
        """
        Candidate names of the real command inside a toolchain, best first.

        A versioned name is rewritten with the toolchain's own version; an
        unversioned one prefers the major-suffixed binary so that ``python``
        never lands on a Python 2 ``python`` when Python 3 was selected.
        """
        if self.is_versioned:
            version_part = str(version.major)
            if self.minor is not None:
                version_part = version.major_minor()
            return [f"{self.stem}{version_part}{self.suffix}"]
        return [f"{self.name}{version.major}", self.name]


@dataclass
class DispatchResult:
    """Outcome of a successful dispatch."""

    toolchain: InstalledToolchain
    command: Path
    arguments: List[str]
    returncode: int
    new_shims: List[str] = field(default_factory=list)


class ShimDispatcher:
    """Resolve a toolchain for a command name and run the real command."""

    def __init__(
        self,
        paths: PathsProvider,
        registry: InstalledToolchainRegistry,
        platform: Optional[PlatformInfo] = None,
        shim_links: Optional[ShimLinkManager] = None,
        runner: CommandRunner = _run_inheriting_stdio,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ):
        self.paths = paths
        self.registry = registry
        self.platform = platform or detect_platform()
        self.shim_links = shim_links or ShimLinkManager(paths, self.platform)
        self.runner = runner
        self.environ = dict(os.environ if environ is None else environ)
        self.cwd = cwd

    def select(
        self, invocation: ShimInvocation, version: Optional[str] = None
    ) -> InstalledToolchain:
        """
        Resolve the toolchain for ``invocation``.

        An explicit ``version`` must match; otherwise the project marker file
        is used and the latest installed toolchain is the fallback.

        Raises:
            MissingInterpreter: If nothing is installed (or nothing matches ``version``)
        """
        selector = ToolchainSelector().overridden_by(invocation.override)
        if version is not None:
            selector = selector.from_string(version).error_if_missing()
        else:
            selector = selector.from_project_file(self.cwd).pick_latest_if_missing()

        toolchain = selector.resolve(self.registry)
        if toolchain is None:
            raise MissingInterpreter(invocation.name)
        logger.debug(f"Interpreter to use: {toolchain}")
        return toolchain

    def toolchain_dirs(self, toolchain: InstalledToolchain) -> List[Path]:
        dirs = [Path(toolchain.location)]
        if self.platform.is_windows:
            dirs.append(Path(toolchain.location) / "Scripts")
        return dirs

    def build_path(self, toolchain: InstalledToolchain) -> str:
        """Toolchain directories, then the inherited PATH, minus the shim directory."""
        shims = self.paths.shims()
        entries = self.toolchain_dirs(toolchain) + split_search_path(self.environ.get("PATH", ""))
        return join_search_path(p for p in entries if not same_directory(p, shims))

    def resolve_command(
        self, invocation: ShimInvocation, toolchain: InstalledToolchain, search_path: str
    ) -> Path:
        """
        Locate the real executable for ``invocation``.

        Raises:
            MissingInterpreter: If the command exists neither in the toolchain
                nor elsewhere on the rewritten search path
        """
        names = invocation.target_names(toolchain.version)
        for name in names:
            for directory in self.toolchain_dirs(toolchain):
                candidate = directory / self._exe(name)
                if candidate.is_file():
                    return candidate

        for name in names:
            found = shutil.which(name, path=search_path)
            if found:
                logger.debug(f"{name} not in {toolchain.location}, using {found}")
                return Path(found)

        raise MissingInterpreter(invocation.name)

    def _exe(self, name: str) -> str:
        if self.platform.is_windows and not name.lower().endswith(".exe"):
            return f"{name}.exe"
        return name

    def dispatch(
        self, command: str, arguments: Sequence[str], version: Optional[str] = None
    ) -> DispatchResult:
        """
        Run ``command`` through the selected toolchain.

        Raises:
            MissingInterpreter: If no toolchain or no executable can be found
            CommandFailedError: If the command exits with a non-zero code
        """
        invocation = ShimInvocation.parse(command)
        toolchain = self.select(invocation, version)

        search_path = self.build_path(toolchain)
        executable = self.resolve_command(invocation, toolchain, search_path)
        arguments = list(arguments)

        env = dict(self.environ)
        env["PATH"] = search_path

        logger.debug(f"Command:   {executable}")
        logger.debug(f"Arguments: {arguments}")

        monitors = [DirectoryDiffMonitor(d) for d in self.toolchain_dirs(toolchain)]
        returncode = self.runner([str(executable), *arguments], env)

        new_files = set()
        for monitor in monitors:
            new_files |= monitor.check()
        new_shims = self.shim_links.mirror_new_binaries(new_files) if new_files else []

        if returncode != 0:
            raise CommandFailedError(str(executable), arguments, returncode, search_path)

        return DispatchResult(
            toolchain=toolchain,
            command=executable,
            arguments=arguments,
            returncode=returncode,
            new_shims=new_shims,
        )

    def run_command_line(self, command_line: str, version: Optional[str] = None) -> DispatchResult:
        """
        Split a shell-style command line and dispatch it.

        Raises:
            MissingInterpreter: If the command line is empty
        """
        parts = shlex.split(command_line)
        if not parts:
            raise MissingInterpreter(command_line)
        return self.dispatch(parts[0], parts[1:], version=version)
