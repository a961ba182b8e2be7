"""
Installation pipeline orchestration.

``InstallationPipeline.install`` takes a version requirement to an installed
toolchain:

1. **Download**: resolve the requirement against the catalog cache and
   stream the archive into ``cache/downloaded/`` (skipped if present).
2. **Extract**: unpack the archive.
3. **Build/Install**: platform-specific, see :mod:`hygeia.install.unix` and
   :mod:`hygeia.install.windows`.
4. **Link**: version hard links inside the toolchain's bin directory.
5. **Extras**: optional ``pip install`` of user-selected packages.

Stages run strictly in order and nothing is retried internally; running
``install`` again resumes from what is already on disk.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

from hygeia.config.settings import Settings
from hygeia.core.directory import PathsProvider
from hygeia.core.download import download_file, format_progress
from hygeia.core.exceptions import UnsupportedPlatformError
from hygeia.core.filesystem import safe_rmtree
from hygeia.core.platform import PlatformInfo, detect_platform
from hygeia.core.progress import ProgressReporter
from hygeia.install.base import InstallationJob, Stage, ToolchainInstaller, step_header
from hygeia.install.extras import ExtraPackagesInstaller
from hygeia.toolchain.catalog import RemoteToolchainDescriptor, ToolchainCache
from hygeia.toolchain.installed import InstalledToolchain, InstalledToolchainRegistry
from hygeia.toolchain.version import VersionRequirement

logger = logging.getLogger(__name__)


def create_installer(
    paths: PathsProvider,
    settings: Settings,
    platform: Optional[PlatformInfo] = None,
) -> ToolchainInstaller:
    """
    Pick the installer implementation for a platform.

    Raises:
        UnsupportedPlatformError: If the platform has no installer
    """
    platform = platform or detect_platform()
    if platform.is_windows:
        from hygeia.install.windows import WindowsInstaller

        return WindowsInstaller(paths, settings)
    if platform.is_linux or platform.is_macos:
        from hygeia.install.unix import UnixInstaller

        return UnixInstaller(paths, settings, platform)
    raise UnsupportedPlatformError(f"Installing Python is not supported on {platform}")


class InstallationPipeline:
    """
    Download, build and register toolchains.

    Example:
        >>> pipeline = InstallationPipeline(paths, cache, registry, create_installer(paths, settings))
        >>> toolchain = pipeline.install(VersionRequirement.parse("~3.7"))
        >>> print(toolchain)
        Python 3.7.17 (/home/me/.hygeia/installed/3.7.17/bin)
    """

    def __init__(
        self,
        paths: PathsProvider,
        cache: ToolchainCache,
        registry: InstalledToolchainRegistry,
        installer: ToolchainInstaller,
        settings: Optional[Settings] = None,
        downloader: Callable[..., Path] = download_file,
        extras: Optional[ExtraPackagesInstaller] = None,
    ):
        self.paths = paths
        self.cache = cache
        self.registry = registry
        self.installer = installer
        self.settings = settings or Settings()
        self.downloader = downloader
        self.extras = extras

    def install(
        self,
        requirement: VersionRequirement,
        force: bool = False,
        extra_package_files: Iterable[Path] = (),
    ) -> InstalledToolchain:
        """
        Install the highest catalog version matching ``requirement``.

        Unless ``force`` is set, an already installed matching toolchain is
        returned untouched.

        Raises:
            NoCompatibleVersionFound: If the catalog has no match
            DownloadError: On transport failures
            ExtractionError: If the archive cannot be unpacked
            BuildStepError: If configure/make/pip fails
        """
        if not force:
            existing = self.registry.find_compatible(requirement)
            if existing is not None:
                logger.info(f"Python version {existing.version} already installed ({existing.location})")
                return existing

        descriptor = self.cache.query(requirement)
        logger.info(f"Installing Python {descriptor.version} (matches {requirement})")
        job = self.create_job(descriptor)

        if force and job.install_dir.exists():
            logger.info(f"Removing previous install at {job.install_dir}")
            safe_rmtree(job.install_dir, require_prefix=self.paths.installed())

        self.paths.ensure_structure()

        job.enter(Stage.DOWNLOAD)
        self.download(job)

        job.enter(Stage.EXTRACT)
        self.installer.extract(job)

        job.enter(Stage.BUILD)
        self.installer.build(job)

        job.enter(Stage.LINK)
        self.installer.link(job)

        package_files = list(extra_package_files)
        if package_files:
            job.enter(Stage.EXTRAS)
            extras = self.extras or ExtraPackagesInstaller(
                self.paths, show_progress=self.settings.progress
            )
            result = extras.install(
                job,
                interpreter=self.installer.interpreter(job),
                scripts_dir=self.installer.scripts_dir(job),
                package_files=package_files,
            )
            if result.failed:
                logger.warning(f"Some extra packages failed to install: {', '.join(result.failed)}")

        job.enter(Stage.DONE)
        self.registry.refresh()
        logger.info(f"Python {job.version} installed in {job.install_dir}")
        return InstalledToolchain(version=job.version, location=job.bin_dir)

    def create_job(self, descriptor: RemoteToolchainDescriptor) -> InstallationJob:
        return InstallationJob(
            descriptor=descriptor,
            install_dir=self.paths.install_dir(descriptor.version),
            bin_dir=self.paths.bin_dir(descriptor.version),
            archive_path=self.paths.downloaded() / descriptor.archive_name,
        )

    def download(self, job: InstallationJob) -> Path:
        header = step_header(1, "Download")
        if job.archive_path.exists():
            logger.info(f"{header}: {job.archive_path.name} already downloaded, skipping")
            return job.archive_path

        logger.info(f"{header}ing {job.descriptor.url}...")
        with ProgressReporter(header, enabled=self.settings.progress) as progress:
            return self.downloader(
                job.descriptor.url,
                job.archive_path,
                progress_callback=lambda p: progress.update(format_progress(p)),
            )
