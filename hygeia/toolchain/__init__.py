"""
Toolchain management for hygeia.

Versions and requirements, the remote catalog cache, the installed-toolchain
registry, the project marker file and the selector that ties them together.
"""

from hygeia.toolchain.version import (
    SemanticVersion,
    VersionRequirement,
    Any,
    Exact,
    Compatible,
)
from hygeia.toolchain.catalog import (
    RemoteToolchainDescriptor,
    CatalogFlavor,
    PosixCatalogFlavor,
    WindowsCatalogFlavor,
    CatalogFetcher,
    HttpCatalogFetcher,
    ToolchainCache,
)
from hygeia.toolchain.installed import (
    INFO_FILE,
    InstalledToolchain,
    InstalledToolchainRegistry,
)
from hygeia.toolchain.toolchain_file import (
    TOOLCHAIN_FILE,
    ToolchainFile,
    save_version,
    save_path,
)
from hygeia.toolchain.selector import (
    Fallback,
    SelectorConfig,
    ToolchainSelector,
    resolve,
    active_selector,
)

__all__ = [
    "SemanticVersion",
    "VersionRequirement",
    "Any",
    "Exact",
    "Compatible",
    "RemoteToolchainDescriptor",
    "CatalogFlavor",
    "PosixCatalogFlavor",
    "WindowsCatalogFlavor",
    "CatalogFetcher",
    "HttpCatalogFetcher",
    "ToolchainCache",
    "INFO_FILE",
    "InstalledToolchain",
    "InstalledToolchainRegistry",
    "TOOLCHAIN_FILE",
    "ToolchainFile",
    "save_version",
    "save_path",
    "Fallback",
    "SelectorConfig",
    "ToolchainSelector",
    "resolve",
    "active_selector",
]
