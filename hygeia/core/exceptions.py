"""
Centralized exception hierarchy for hygeia.

Lower layers raise these; only the command layer (``hygeia.cli``) and the
shim entry point turn them into a message on stderr and an exit code.
Filesystem-level failures live in :mod:`hygeia.core.filesystem`.
"""

from pathlib import Path
from typing import Optional, Sequence


# ============================================================================
# Base Exceptions
# ============================================================================


class HygeiaError(Exception):
    """Base exception for all hygeia errors."""

    pass


# ============================================================================
# Version Exceptions
# ============================================================================


class VersionError(HygeiaError):
    """Base exception for version parsing errors."""

    pass


class InvalidVersionError(VersionError):
    """Raised when a string is not a valid semantic version."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid version: {text!r}")


class InvalidRequirementError(VersionError):
    """Raised when a string is not a valid version requirement."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid version requirement: {text!r}")


# ============================================================================
# Resolution Exceptions
# ============================================================================


class ResolutionError(HygeiaError):
    """Base exception when a requirement cannot be mapped to a toolchain."""

    pass


class NoCompatibleVersionFound(ResolutionError):
    """Raised when no catalog entry satisfies a requirement."""

    def __init__(self, requirement):
        self.requirement = requirement
        super().__init__(f"No available Python version matches {requirement}")


class ToolchainNotInstalledError(ResolutionError):
    """Raised when no installed toolchain satisfies a requirement."""

    def __init__(self, requirement=None):
        self.requirement = requirement
        if requirement is None:
            msg = "No Python toolchain is installed"
        else:
            msg = f"No installed Python toolchain matches {requirement}"
        super().__init__(msg)


class MissingInterpreter(ResolutionError):
    """Raised when a shim or ``run`` cannot find any interpreter to use."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"No interpreter found to run command: {command}")


# ============================================================================
# Catalog / Marker / Config Exceptions
# ============================================================================


class CatalogError(HygeiaError):
    """Raised when the remote catalog cannot be fetched."""

    pass


class ToolchainFileError(HygeiaError):
    """Raised when a project marker file cannot be used."""

    pass


class ConfigError(HygeiaError):
    """Raised when the user configuration file is invalid."""

    pass


# ============================================================================
# Installation Exceptions
# ============================================================================


class InstallError(HygeiaError):
    """Base exception for installation pipeline failures."""

    pass


class DownloadError(InstallError):
    """Raised when an archive download fails."""

    pass


class ExtractionError(InstallError):
    """Raised when a downloaded archive cannot be unpacked."""

    pass


class UnsupportedPlatformError(InstallError):
    """Raised when no installer exists for the running platform."""

    pass


class BuildStepError(InstallError):
    """Raised when an external build/install process fails."""

    def __init__(
        self,
        step: str,
        command: str,
        arguments: Sequence[str] = (),
        returncode: Optional[int] = None,
        log_file: Optional[Path] = None,
        reason: Optional[str] = None,
    ):
        self.step = step
        self.command = command
        self.arguments = list(arguments)
        self.returncode = returncode
        self.log_file = log_file

        if reason is None:
            reason = f"Exit status {returncode}"
        msg = f"Step '{step}' failed: command {command} with arguments {self.arguments} failed! {reason}"
        if log_file is not None:
            msg += f" (see log file {log_file})"
        super().__init__(msg)


# ============================================================================
# Shim Exceptions
# ============================================================================


class ShimError(HygeiaError):
    """Base exception for shim dispatch failures."""

    pass


class CommandFailedError(ShimError):
    """Raised when the command a shim dispatched to exits non-zero."""

    def __init__(self, command: str, arguments: Sequence[str], returncode: int, path_env: str):
        self.command = command
        self.arguments = list(arguments)
        self.returncode = returncode
        self.path_env = path_env
        super().__init__(
            f"Command {command} with arguments {self.arguments} failed "
            f"with exit code {returncode} (PATH={path_env})"
        )
