"""
Install extra packages into a freshly installed toolchain.

Package names come from plain-text list files, one per line; blank lines
and ``#`` comments are ignored. The user confirms each package and then
the whole selection. Each package is installed with
``python -m pip install --verbose --upgrade <name>``; a failure is logged
and the remaining packages are still installed. Console scripts that pip
creates are exposed as shims.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from hygeia.core.dir_monitor import DirectoryDiffMonitor
from hygeia.core.directory import PathsProvider
from hygeia.core.exceptions import BuildStepError
from hygeia.core.process import run_logged_command
from hygeia.install.base import FIRST_EXTRA_STEP, InstallationJob, step_header
from hygeia.toolchain.linking import ShimLinkManager

logger = logging.getLogger(__name__)

# Asked a yes/no question, returns the answer
Confirm = Callable[[str], bool]

DEFAULT_EXTRA_PACKAGES = """\
# Packages installed by `hygeia install --extra`, one per line.
# Lines starting with '#' are ignored.
pip
setuptools
wheel
"""


def load_extra_packages(path: Path) -> List[str]:
    """
    Read a package list file.

    Raises:
        OSError: If the file cannot be read
    """
    packages = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            name = line.strip()
            if not name or name.startswith("#"):
                continue
            packages.append(name)
    logger.debug(f"Loaded {len(packages)} extra packages from {path}")
    return packages


def write_default_extra_packages(path: Path) -> bool:
    """Create the default list file unless it already exists."""
    path = Path(path)
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_EXTRA_PACKAGES, encoding="utf-8")
    return True


def _accept_all(question: str) -> bool:
    return True


@dataclass
class ExtrasResult:
    """What an extras run did."""

    installed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    shims: List[str] = field(default_factory=list)


class ExtraPackagesInstaller:
    """Runs pip for each selected package and mirrors new scripts as shims."""

    def __init__(
        self,
        paths: PathsProvider,
        confirm: Optional[Confirm] = None,
        runner: Callable[..., Path] = run_logged_command,
        shim_links: Optional[ShimLinkManager] = None,
        show_progress: bool = True,
    ):
        self.paths = paths
        self.confirm = confirm or _accept_all
        self.runner = runner
        self.shim_links = shim_links or ShimLinkManager(paths)
        self.show_progress = show_progress

    def select(self, packages: List[str]) -> List[str]:
        """Ask about every package, then about the selection as a whole."""
        if not packages:
            return []
        if not self.confirm("Install extra Python packages using `pip install --upgrade`?"):
            return []

        total = len(packages)
        selected = [
            name
            for i, name in enumerate(packages)
            if self.confirm(f"    [{i + 1:2}/{total}] {name}")
        ]
        if not selected:
            return []
        if not self.confirm(f"Selected packages: {', '.join(selected)}.\nContinue?"):
            return []
        return selected

    def install(
        self,
        job: InstallationJob,
        interpreter: Path,
        scripts_dir: Path,
        package_files: Iterable[Path],
    ) -> ExtrasResult:
        result = ExtrasResult()

        packages: List[str] = []
        for package_file in package_files:
            packages.extend(load_extra_packages(package_file))

        selected = self.select(packages)
        if not selected:
            logger.info("No extra packages to install")
            return result

        monitor = DirectoryDiffMonitor(scripts_dir)

        for i, package in enumerate(selected):
            header = step_header(FIRST_EXTRA_STEP + i, f"pip install --upgrade {package}")
            logger.info(f"{header}...")
            try:
                job.log_file = self.runner(
                    header,
                    job.version,
                    interpreter,
                    ["-m", "pip", "install", "--verbose", "--upgrade", package],
                    cwd=job.bin_dir,
                    logs_dir=self.paths.logs(),
                    show_progress=self.show_progress,
                )
            except BuildStepError as e:
                logger.error(f"Failed to pip install {package}: {e}")
                result.failed.append(package)
                continue
            result.installed.append(package)

        result.shims = self.shim_links.mirror_new_binaries(monitor.check())
        return result
