"""
Toolchain installation for hygeia.

The pipeline is platform-neutral; ``create_installer`` composes it with the
Unix (configure/make) or Windows (embeddable zip) implementation.
"""

from hygeia.install.base import (
    InstallationJob,
    Stage,
    ToolchainInstaller,
    step_header,
    write_provenance_file,
)
from hygeia.install.extras import (
    ExtraPackagesInstaller,
    ExtrasResult,
    load_extra_packages,
)
from hygeia.install.pipeline import InstallationPipeline, create_installer

__all__ = [
    "InstallationJob",
    "Stage",
    "ToolchainInstaller",
    "step_header",
    "write_provenance_file",
    "ExtraPackagesInstaller",
    "ExtrasResult",
    "load_extra_packages",
    "InstallationPipeline",
    "create_installer",
]
