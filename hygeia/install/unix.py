"""
Unix installer: build CPython from a source tarball.

The tarball is unpacked under ``cache/extracted/`` and built with the
classic ``./configure && make && make install`` sequence, installing into
``installed/<version>``. Every step runs through
:func:`hygeia.core.process.run_logged_command`, so it gets a spinner and a
per-step log file.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

from hygeia.config.settings import Settings
from hygeia.core.dir_monitor import DirectoryDiffMonitor
from hygeia.core.directory import PathsProvider
from hygeia.core.exceptions import ExtractionError
from hygeia.core.filesystem import ArchiveExtractionError, extract_archive
from hygeia.core.platform import PlatformInfo, detect_platform
from hygeia.core.process import run_logged_command
from hygeia.core.progress import ProgressReporter
from hygeia.install.base import (
    InstallationJob,
    ToolchainInstaller,
    step_header,
    write_provenance_file,
)
from hygeia.toolchain.linking import ShimLinkManager, link_versioned_binaries
from hygeia.toolchain.version import SemanticVersion

logger = logging.getLogger(__name__)

MACOS_OPENSSL_PREFIX = "/usr/local/opt/openssl"
OPENSSL_FLAG_MIN_VERSION = SemanticVersion(3, 7, 0)


def source_dir_name(archive_name: str) -> str:
    """
    Directory a source tarball unpacks into.

    Example:
        >>> source_dir_name("Python-3.7.2rc1.tgz")
        'Python-3.7.2rc1'
    """
    for suffix in (".tar.gz", ".tgz", ".tar.xz", ".tar"):
        if archive_name.endswith(suffix):
            return archive_name[: -len(suffix)]
    return archive_name


def macos_sdk_path() -> Optional[str]:
    """Ask ``xcrun`` where the macOS SDK lives (needed to find zlib)."""
    try:
        result = subprocess.run(
            ["xcrun", "--show-sdk-path"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning(f"Failed to run 'xcrun --show-sdk-path', zlib may not be found: {e}")
        return None
    return result.stdout.strip() or None


class UnixInstaller(ToolchainInstaller):
    """configure/make/make install from source."""

    name = "unix"

    def __init__(
        self,
        paths: PathsProvider,
        settings: Optional[Settings] = None,
        platform: Optional[PlatformInfo] = None,
        runner: Callable[..., Path] = run_logged_command,
        sdk_path_lookup: Callable[[], Optional[str]] = macos_sdk_path,
        shim_links: Optional[ShimLinkManager] = None,
    ):
        self.paths = paths
        self.settings = settings or Settings()
        self.platform = platform or detect_platform()
        self.runner = runner
        self.sdk_path_lookup = sdk_path_lookup
        self.shim_links = shim_links or ShimLinkManager(paths, self.platform)

    def source_dir(self, job: InstallationJob) -> Path:
        return self.paths.extracted() / source_dir_name(job.descriptor.archive_name)

    def extract(self, job: InstallationJob) -> None:
        header = step_header(2, "Extract")
        destination = self.paths.extracted()
        logger.info(f"{header}ing {job.archive_path}...")

        with ProgressReporter(header, enabled=self.settings.progress) as progress:
            progress.update(f"{job.archive_path.name} -> {destination}")
            try:
                extract_archive(job.archive_path, destination)
            except ArchiveExtractionError as e:
                raise ExtractionError(f"{header} failed: {e}") from e

        if not self.source_dir(job).is_dir():
            raise ExtractionError(
                f"{header} failed: {job.archive_path.name} did not contain {self.source_dir(job).name}/"
            )

    def configure_arguments(self, job: InstallationJob) -> List[str]:
        arguments = ["--prefix", str(job.install_dir), "--enable-shared"]
        if self.settings.release_build:
            arguments.append("--enable-optimizations")
        if self.platform.is_macos and job.version >= OPENSSL_FLAG_MIN_VERSION:
            arguments.append(f"--with-openssl={MACOS_OPENSSL_PREFIX}")
        return arguments

    def compiler_flags(self, job: InstallationJob) -> Dict[str, List[str]]:
        """CFLAGS/CPPFLAGS/LDFLAGS additions for this platform and version."""
        flags: Dict[str, List[str]] = {"CFLAGS": [], "CPPFLAGS": [], "LDFLAGS": []}

        if self.platform.is_linux:
            # --enable-shared needs the install's lib directory on the runtime search path
            flags["LDFLAGS"].append(f"-Wl,-rpath,{job.install_dir / 'lib'}")

        if self.platform.is_macos:
            if job.version < OPENSSL_FLAG_MIN_VERSION:
                flags["CPPFLAGS"].append(f"-I{MACOS_OPENSSL_PREFIX}/include")
                flags["LDFLAGS"].append(f"-L{MACOS_OPENSSL_PREFIX}/lib")
            sdk_path = self.sdk_path_lookup()
            if sdk_path:
                flags["CFLAGS"].append(f"-I{sdk_path}/usr/include")
            flags["CPPFLAGS"].append("-I/opt/X11/include")

        return flags

    def build_environment(self, job: InstallationJob) -> Dict[str, str]:
        env = dict(os.environ)
        for name, values in self.compiler_flags(job).items():
            if not values:
                continue
            env[name] = " ".join(filter(None, [env.get(name, ""), *values]))
        return env

    def build(self, job: InstallationJob) -> None:
        source_dir = self.source_dir(job)
        env = self.build_environment(job)
        make_arguments = [f"-j{self.settings.make_jobs}"] if self.settings.make_jobs else []

        configure_arguments = self.configure_arguments(job)
        self._run_step(job, step_header(3, "Configure"), "./configure", configure_arguments, source_dir, env)
        self._run_step(job, step_header(4, "Make"), "make", make_arguments, source_dir, env)

        monitor = DirectoryDiffMonitor(job.bin_dir)
        self._run_step(job, step_header(5, "Make install"), "make", ["install"], source_dir, env)
        # Binaries "make install" created are shimmed under their own names
        self.shim_links.mirror_new_binaries(monitor.check())
        write_provenance_file(job.install_dir, job.version)

    def _run_step(
        self, job: InstallationJob, header: str, command: str, arguments: List[str], cwd: Path, env: Dict[str, str]
    ) -> None:
        logger.info(f"{header}...")
        job.log_file = self.runner(
            header,
            job.version,
            command,
            arguments,
            cwd=cwd,
            logs_dir=self.paths.logs(),
            env=env,
            show_progress=self.settings.progress,
        )

    def link(self, job: InstallationJob) -> None:
        link_versioned_binaries(job.bin_dir, job.version)

    def interpreter(self, job: InstallationJob) -> Path:
        major = job.bin_dir / f"python{job.version.major}"
        if major.exists():
            return major
        return job.bin_dir / f"python{job.version.major_minor()}"

    def scripts_dir(self, job: InstallationJob) -> Path:
        return job.bin_dir
