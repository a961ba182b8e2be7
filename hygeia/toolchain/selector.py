"""
Resolve which installed toolchain a command should use.

Resolution inputs are gathered in an immutable ``SelectorConfig`` and
resolved by the free function :func:`resolve`. ``ToolchainSelector`` is a
fluent wrapper that returns a new config on every call; nothing touches the
filesystem before ``resolve()``.

Precedence:

1. The base requirement comes from the configured source: an explicit
   string, or the project marker file (a missing file means "no requirement").
2. A shim override (``python3`` -> any 3.x) narrows the candidates to the
   toolchains it matches. Among those, the ones that also satisfy the base
   requirement win; otherwise the highest override match is used, with a
   warning. An explicit requirement with ``ERROR_IF_MISSING`` has no such
   fallback: nothing is selected.
3. Without an override, the highest toolchain satisfying the base
   requirement is used.
4. If nothing matched and the fallback is ``PICK_LATEST``, the highest
   installed toolchain is returned with a warning.

On equal versions a managed install is preferred over a system one.
"""

import enum
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from hygeia.toolchain.installed import (
    InstalledToolchain,
    InstalledToolchainRegistry,
    best_of,
)
from hygeia.toolchain.toolchain_file import ToolchainFile
from hygeia.toolchain.version import Any, VersionRequirement

logger = logging.getLogger(__name__)


class Source(enum.Enum):
    UNSET = "unset"
    EXPLICIT = "explicit"
    PROJECT_FILE = "project-file"


class Fallback(enum.Enum):
    ERROR_IF_MISSING = "error-if-missing"
    PICK_LATEST = "pick-latest"


@dataclass(frozen=True)
class SelectorConfig:
    """Everything :func:`resolve` needs, captured before any I/O."""

    source: Source = Source.UNSET
    explicit: Optional[str] = None
    override: Optional[VersionRequirement] = None
    fallback: Fallback = Fallback.ERROR_IF_MISSING
    search_from: Optional[Path] = None


def base_request(config: SelectorConfig) -> Optional[ToolchainFile]:
    """
    The request named by the configured source.

    Raises:
        InvalidRequirementError: If the explicit string is not a requirement
        ToolchainFileError: If the marker file exists but cannot be used
    """
    if config.source is Source.EXPLICIT:
        if config.explicit is None:
            return None
        # Explicit strings may be versions or toolchain paths, like marker lines
        return ToolchainFile.parse(config.explicit, base_dir=config.search_from)
    if config.source is Source.PROJECT_FILE:
        return ToolchainFile.load(config.search_from)
    return None


def _explicit_and_required(config: SelectorConfig) -> bool:
    return config.source is Source.EXPLICIT and config.fallback is Fallback.ERROR_IF_MISSING


def resolve(
    config: SelectorConfig, registry: InstalledToolchainRegistry
) -> Optional[InstalledToolchain]:
    """
    Pick an installed toolchain for ``config``.

    Returns:
        The toolchain, or None when nothing matches and no fallback applies.
        Callers decide whether None is fatal.
    """
    request = base_request(config)

    if request is not None and request.is_path:
        toolchain = registry.find_by_location(request.path) or InstalledToolchain.from_path(
            request.path, runner=registry.runner
        )
        if toolchain is not None and (config.override is None or config.override.matches(toolchain.version)):
            logger.debug(f"Selected {toolchain} from path {request.path}")
            return toolchain
        if toolchain is None:
            logger.warning(f"No interpreter found in {request.path}")
        if _explicit_and_required(config):
            return None
        requirement = None
    else:
        requirement = request.requirement if request is not None else None

    selected = None
    if config.override is not None:
        candidates = registry.compatible(config.override)
        if requirement is not None:
            preferred = [t for t in candidates if requirement.matches(t.version)]
            selected = best_of(preferred)
            if selected is None and _explicit_and_required(config):
                return None
        if selected is None:
            selected = best_of(candidates)
            if selected is not None and requirement is not None:
                logger.warning(
                    f"No installed toolchain matches {requirement} and {config.override}, "
                    f"using {selected}"
                )
    elif requirement is not None:
        selected = registry.find_compatible(requirement)

    if selected is not None:
        logger.debug(f"Selected {selected}")
        return selected

    if config.fallback is Fallback.PICK_LATEST:
        latest = registry.latest()
        if latest is not None:
            wanted = config.override or requirement or Any()
            logger.warning(
                f"No installed toolchain matches {wanted}, using latest installed: {latest}"
            )
        return latest

    return None


class ToolchainSelector:
    """
    Fluent builder over :class:`SelectorConfig`.

    Example:
        >>> toolchain = (
        ...     ToolchainSelector()
        ...     .from_project_file()
        ...     .overridden_by(VersionRequirement.parse("~3"))
        ...     .pick_latest_if_missing()
        ...     .resolve(registry)
        ... )
    """

    def __init__(self, config: Optional[SelectorConfig] = None):
        self.config = config or SelectorConfig()

    def _with(self, **changes) -> "ToolchainSelector":
        return ToolchainSelector(replace(self.config, **changes))

    def from_string(self, text: str) -> "ToolchainSelector":
        return self._with(source=Source.EXPLICIT, explicit=text)

    def from_project_file(self, start: Optional[Path] = None) -> "ToolchainSelector":
        return self._with(source=Source.PROJECT_FILE, explicit=None, search_from=start)

    def overridden_by(self, requirement: Optional[VersionRequirement]) -> "ToolchainSelector":
        return self._with(override=requirement)

    def pick_latest_if_missing(self) -> "ToolchainSelector":
        return self._with(fallback=Fallback.PICK_LATEST)

    def error_if_missing(self) -> "ToolchainSelector":
        return self._with(fallback=Fallback.ERROR_IF_MISSING)

    def resolve(self, registry: InstalledToolchainRegistry) -> Optional[InstalledToolchain]:
        return resolve(self.config, registry)


def active_selector(requested: Optional[str] = None, start: Optional[Path] = None) -> ToolchainSelector:
    """
    Selector for the interpreter in effect: ``requested`` if given, else the
    marker file found from ``start``, with the latest install as fallback.
    """
    selector = ToolchainSelector()
    if requested is not None:
        selector = selector.from_string(requested)
    else:
        selector = selector.from_project_file(start)
    return selector.pick_latest_if_missing()
