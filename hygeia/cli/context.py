"""
Composition root shared by the CLI commands and the shim entry point.

Everything environment-dependent (home directory, PATH, platform, user
settings) is read here once and handed to the components as values.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

from hygeia.config.settings import Settings, load_settings
from hygeia.core.directory import EnvPathsProvider, PathsProvider
from hygeia.core.platform import PlatformInfo, detect_platform
from hygeia.install.extras import Confirm, ExtraPackagesInstaller
from hygeia.install.pipeline import InstallationPipeline, create_installer
from hygeia.shim.dispatcher import ShimDispatcher
from hygeia.toolchain.catalog import (
    CatalogFetcher,
    HttpCatalogFetcher,
    ToolchainCache,
    flavor_for_platform,
)
from hygeia.toolchain.installed import InstalledToolchainRegistry
from hygeia.toolchain.linking import ShimLinkManager

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Wired-up hygeia components for one process."""

    paths: PathsProvider
    settings: Settings
    platform: PlatformInfo
    fetcher: CatalogFetcher = field(default_factory=HttpCatalogFetcher)
    _registry: Optional[InstalledToolchainRegistry] = field(default=None, repr=False)

    @classmethod
    def from_env(cls, paths: Optional[PathsProvider] = None) -> "AppContext":
        """
        Build a context from the environment.

        Raises:
            ConfigError: If ``config.yaml`` is invalid
        """
        paths = paths or EnvPathsProvider()
        settings = load_settings(paths.config_file())
        return cls(paths=paths, settings=settings, platform=detect_platform())

    @property
    def registry(self) -> InstalledToolchainRegistry:
        if self._registry is None:
            self._registry = InstalledToolchainRegistry(
                self.paths, discover_system=self.settings.discover_system_toolchains
            )
        return self._registry

    def catalog(self) -> ToolchainCache:
        return ToolchainCache.load_or_refresh(
            self.paths,
            self.fetcher,
            flavor=flavor_for_platform(self.platform),
            catalog_url=self.settings.catalog_url,
            max_age=timedelta(days=self.settings.cache_max_age_days),
        )

    def shim_links(self) -> ShimLinkManager:
        return ShimLinkManager(self.paths, self.platform)

    def pipeline(self, confirm: Optional[Confirm] = None) -> InstallationPipeline:
        extras = ExtraPackagesInstaller(
            self.paths,
            confirm=confirm,
            shim_links=self.shim_links(),
            show_progress=self.settings.progress,
        )
        return InstallationPipeline(
            self.paths,
            self.catalog(),
            self.registry,
            create_installer(self.paths, self.settings, self.platform),
            settings=self.settings,
            extras=extras,
        )

    def dispatcher(self, cwd: Optional[Path] = None) -> ShimDispatcher:
        return ShimDispatcher(
            self.paths,
            self.registry,
            platform=self.platform,
            shim_links=self.shim_links(),
            cwd=cwd,
        )


def context_from_args(args) -> AppContext:
    """The context attached to ``args`` by the caller, or one built from the environment."""
    context = getattr(args, "context", None)
    if context is not None:
        return context
    return AppContext.from_env()
