"""
Core functionality for hygeia.

This package contains the foundational modules the toolchain, install and
shim layers depend on: paths, errors, downloads, archives, processes.
"""

from .directory import (
    PathsProvider,
    EnvPathsProvider,
    StaticPathsProvider,
    DirectoryError,
    DirectoryCreationError,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .exceptions import (
    HygeiaError,
    VersionError,
    InvalidVersionError,
    InvalidRequirementError,
    ResolutionError,
    NoCompatibleVersionFound,
    ToolchainNotInstalledError,
    MissingInterpreter,
    CatalogError,
    ToolchainFileError,
    ConfigError,
    InstallError,
    DownloadError,
    ExtractionError,
    UnsupportedPlatformError,
    BuildStepError,
    ShimError,
    CommandFailedError,
)

from .dir_monitor import DirectoryDiffMonitor

__all__ = [
    # Directory management
    "PathsProvider",
    "EnvPathsProvider",
    "StaticPathsProvider",
    "DirectoryError",
    "DirectoryCreationError",
    # Platform detection
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    # Exceptions
    "HygeiaError",
    "VersionError",
    "InvalidVersionError",
    "InvalidRequirementError",
    "ResolutionError",
    "NoCompatibleVersionFound",
    "ToolchainNotInstalledError",
    "MissingInterpreter",
    "CatalogError",
    "ToolchainFileError",
    "ConfigError",
    "InstallError",
    "DownloadError",
    "ExtractionError",
    "UnsupportedPlatformError",
    "BuildStepError",
    "ShimError",
    "CommandFailedError",
    # Monitoring
    "DirectoryDiffMonitor",
]
