"""
Windows installer: unpack the embeddable distribution and bootstrap pip.

The embeddable zip is a ready-to-run interpreter. It is unpacked into
``installed/<version>/bin``; ``import site`` is enabled in its ``._pth``
file so that ``pip`` and packages in ``Lib/site-packages`` work, then
``get-pip.py`` is downloaded and run with the new interpreter.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from hygeia.config.settings import Settings
from hygeia.core.directory import PathsProvider
from hygeia.core.download import download_file, format_progress
from hygeia.core.exceptions import ExtractionError
from hygeia.core.filesystem import ArchiveExtractionError, create_hard_link, extract_archive
from hygeia.core.process import run_logged_command
from hygeia.core.progress import ProgressReporter
from hygeia.install.base import (
    InstallationJob,
    ToolchainInstaller,
    step_header,
    write_provenance_file,
)
from hygeia.toolchain.version import SemanticVersion

logger = logging.getLogger(__name__)

GET_PIP_BASE_URL = "https://bootstrap.pypa.io/"
# Current get-pip.py only supports recent interpreters; older ones have pinned copies
GET_PIP_CURRENT_MIN_VERSION = SemanticVersion(3, 8, 0)


def get_pip_url(version: SemanticVersion) -> str:
    """
    Example:
        >>> get_pip_url(SemanticVersion.parse("3.6.8"))
        'https://bootstrap.pypa.io/pip/3.6/get-pip.py'
    """
    if version < GET_PIP_CURRENT_MIN_VERSION:
        return f"{GET_PIP_BASE_URL}pip/{version.major_minor()}/get-pip.py"
    return f"{GET_PIP_BASE_URL}get-pip.py"


def enable_site_import(bin_dir: Path) -> Optional[Path]:
    """
    Uncomment ``import site`` in the distribution's ``python*._pth`` file.

    Returns:
        The edited file, or None if the distribution has no ``._pth`` file
    """
    pth_files = sorted(Path(bin_dir).glob("python*._pth"))
    if not pth_files:
        logger.warning(f"No ._pth file in {bin_dir}, leaving site import as is")
        return None

    pth_file = pth_files[0]
    lines = pth_file.read_text(encoding="utf-8").splitlines()
    edited = []
    for line in lines:
        if line.strip() == "#import site":
            line = "import site"
        edited.append(line)
    if "import site" not in edited:
        edited.append("import site")
    pth_file.write_text("\n".join(edited) + "\n", encoding="utf-8")
    logger.debug(f"Enabled site import in {pth_file}")
    return pth_file


class WindowsInstaller(ToolchainInstaller):
    """Embeddable zip + get-pip.py."""

    name = "windows"

    def __init__(
        self,
        paths: PathsProvider,
        settings: Optional[Settings] = None,
        runner: Callable[..., Path] = run_logged_command,
        downloader: Callable[..., Path] = download_file,
    ):
        self.paths = paths
        self.settings = settings or Settings()
        self.runner = runner
        self.downloader = downloader

    def extract(self, job: InstallationJob) -> None:
        header = step_header(2, "Extract")
        logger.info(f"{header}ing {job.archive_path}...")

        with ProgressReporter(header, enabled=self.settings.progress) as progress:
            try:
                extract_archive(
                    job.archive_path,
                    job.bin_dir,
                    progress_callback=lambda done, total: progress.update(f"{done}/{total} files"),
                )
            except ArchiveExtractionError as e:
                raise ExtractionError(f"{header} failed: {e}") from e

    def build(self, job: InstallationJob) -> None:
        header = step_header(3, "Bootstrap pip")
        enable_site_import(job.bin_dir)

        url = get_pip_url(job.version)
        script = self.paths.downloaded() / f"get-pip-{job.version.major_minor()}.py"
        with ProgressReporter(f"{header} (download)", enabled=self.settings.progress) as progress:
            self.downloader(url, script, progress_callback=lambda p: progress.update(format_progress(p)))

        logger.info(f"{header}...")
        job.log_file = self.runner(
            header,
            job.version,
            self.interpreter(job),
            [str(script), "--no-warn-script-location"],
            cwd=job.bin_dir,
            logs_dir=self.paths.logs(),
            show_progress=self.settings.progress,
        )

        write_provenance_file(job.install_dir, job.version)

    def link(self, job: InstallationJob) -> None:
        # The embeddable distribution ships only python.exe
        python = job.bin_dir / "python.exe"
        create_hard_link(python, job.bin_dir / f"python{job.version.major}.exe")

    def interpreter(self, job: InstallationJob) -> Path:
        return job.bin_dir / "python.exe"

    def scripts_dir(self, job: InstallationJob) -> Path:
        return job.bin_dir / "Scripts"
