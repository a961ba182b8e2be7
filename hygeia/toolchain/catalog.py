"""
Remote toolchain catalog and its on-disk cache.

The catalog is python.org's FTP directory listing: every ``<a href="X.Y.Z/">``
anchor names a release directory. Two flavours turn those directories into
downloadable archives:

- ``PosixCatalogFlavor``: source tarballs, ``<dir>/Python-<ver>.tgz``
- ``WindowsCatalogFlavor``: embeddable zips, ``<dir>/python-<ver>-embed-amd64.zip``

``ToolchainCache`` keeps the parsed list in
``cache/available_toolchains.json`` and refetches it when it is missing,
corrupted or older than the freshness window (10 days by default).

Example:
    >>> cache = ToolchainCache.load_or_refresh(paths, HttpCatalogFetcher())
    >>> descriptor = cache.query(VersionRequirement.parse("~3.7"))
    >>> descriptor.url
    'https://www.python.org/ftp/python/3.7.17/Python-3.7.17.tgz'
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import requests
from requests.exceptions import RequestException

from hygeia.config.settings import DEFAULT_CACHE_MAX_AGE_DAYS, DEFAULT_CATALOG_URL
from hygeia.core.directory import PathsProvider
from hygeia.core.exceptions import (
    CatalogError,
    InvalidVersionError,
    NoCompatibleVersionFound,
)
from hygeia.core.platform import PlatformInfo, detect_platform
from hygeia.toolchain.version import SemanticVersion, VersionRequirement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteToolchainDescriptor:
    """One downloadable toolchain archive."""

    version: SemanticVersion
    base_url: str
    archive_name: str

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.archive_name}"

    def to_dict(self) -> dict:
        return {
            "version": str(self.version),
            "base_url": self.base_url,
            "archive_name": self.archive_name,
        }


# ============================================================================
# Catalog flavours
# ============================================================================


class CatalogFlavor(ABC):
    """How directory anchors of the index page map to archives."""

    name = "abstract"
    anchor_pattern: "re.Pattern[str]"

    @abstractmethod
    def archive_name(self, version: SemanticVersion, directory: Optional[str] = None) -> str:
        pass

    def accepts(self, version: SemanticVersion) -> bool:
        return True

    def parse_index(self, index_html: str, catalog_url: str) -> List[RemoteToolchainDescriptor]:
        """
        Parse an index page into descriptors sorted descending by version.

        Anchors whose text is not a semantic version are logged and skipped.
        The sort is stable, so entries sharing a version keep page order.
        """
        if not catalog_url.endswith("/"):
            catalog_url += "/"

        seen = set()
        descriptors = []
        for match in self.anchor_pattern.finditer(index_html):
            directory = match.group("directory")
            text = match.group("version")
            # Two-component directories ("3.2") are releases of x.y.0
            if text.count(".") == 1:
                text = f"{text}.0"

            try:
                version = SemanticVersion.parse(text)
            except InvalidVersionError as e:
                logger.error(f"Failed to parse version ({text!r}), skipping: {e}")
                continue

            if not self.accepts(version):
                logger.debug(f"{self.name} catalog: no archive for {version}, skipping")
                continue

            descriptor = RemoteToolchainDescriptor(
                version=version,
                base_url=f"{catalog_url}{directory}/",
                archive_name=self.archive_name(version, directory),
            )
            if descriptor in seen:
                continue
            seen.add(descriptor)
            descriptors.append(descriptor)

        descriptors.sort(key=lambda d: d.version, reverse=True)
        return descriptors


class PosixCatalogFlavor(CatalogFlavor):
    """Source tarballs built with configure/make."""

    name = "posix"
    anchor_pattern = re.compile(r'<a\s+href="(?P<directory>(?P<version>\d+[\d.]+))/">')

    def archive_name(self, version: SemanticVersion, directory: Optional[str] = None) -> str:
        """
        Example:
            >>> PosixCatalogFlavor().archive_name(SemanticVersion.parse("3.7.2-rc1"))
            'Python-3.7.2rc1.tgz'
            >>> PosixCatalogFlavor().archive_name(SemanticVersion.parse("3.2.0"), "3.2")
            'Python-3.2.tgz'
        """
        if directory is not None and not version.is_prerelease:
            return f"Python-{directory}.tgz"
        return f"Python-{str(version).replace('-', '')}.tgz"


class WindowsCatalogFlavor(CatalogFlavor):
    """Pre-built embeddable zips (published since 3.5.0)."""

    name = "windows"
    anchor_pattern = re.compile(
        r'<a\s+href="(?P<directory>(?P<version>\d+\.\d+(?:\.\d+)?)(?:\.post\d+)?)/">'
    )
    minimum = SemanticVersion(3, 5, 0)

    def accepts(self, version: SemanticVersion) -> bool:
        return version >= self.minimum

    def archive_name(self, version: SemanticVersion, directory: Optional[str] = None) -> str:
        """
        Example:
            >>> WindowsCatalogFlavor().archive_name(SemanticVersion.parse("3.7.2"), "3.7.2.post1")
            'python-3.7.2.post1-embed-amd64.zip'
        """
        label = directory if directory is not None else str(version).replace("-", "")
        return f"python-{label}-embed-amd64.zip"


def flavor_for_platform(info: Optional[PlatformInfo] = None) -> CatalogFlavor:
    info = info or detect_platform()
    return WindowsCatalogFlavor() if info.is_windows else PosixCatalogFlavor()


# ============================================================================
# Fetching
# ============================================================================


class CatalogFetcher(ABC):
    """Capability to fetch the text of a URL. Tests substitute a stub."""

    @abstractmethod
    def get_text(self, url: str) -> str:
        pass


class HttpCatalogFetcher(CatalogFetcher):
    """Fetch the catalog over HTTP(S) with requests."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 30):
        self.session = session
        self.timeout = timeout

    def get_text(self, url: str) -> str:
        logger.debug(f"Fetching catalog from {url}")
        getter = self.session.get if self.session is not None else requests.get
        try:
            response = getter(url, timeout=self.timeout)
            response.raise_for_status()
        except RequestException as e:
            raise CatalogError(f"Failed to fetch catalog {url}: {e}") from e
        return response.text


# ============================================================================
# Cache
# ============================================================================


def _directory_of(base_url: str) -> str:
    """Last path segment of a release directory URL (``.../python/3.2/`` -> ``3.2``)."""
    return base_url.rstrip("/").rsplit("/", 1)[-1]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ToolchainCache:
    """
    Parsed catalog plus the time it was fetched.

    Entries are sorted descending by version, so the first entry matching a
    requirement is the highest compatible version.
    """

    def __init__(
        self,
        paths: PathsProvider,
        fetcher: CatalogFetcher,
        flavor: Optional[CatalogFlavor] = None,
        catalog_url: str = DEFAULT_CATALOG_URL,
        last_refreshed: Optional[datetime] = None,
        entries: Iterable[RemoteToolchainDescriptor] = (),
    ):
        self.paths = paths
        self.fetcher = fetcher
        self.flavor = flavor or flavor_for_platform()
        self.catalog_url = catalog_url
        self.last_refreshed = last_refreshed
        self.entries: List[RemoteToolchainDescriptor] = list(entries)

    @property
    def cache_file(self) -> Path:
        return self.paths.available_toolchains_cache_file()

    @classmethod
    def load_or_refresh(
        cls,
        paths: PathsProvider,
        fetcher: CatalogFetcher,
        flavor: Optional[CatalogFlavor] = None,
        catalog_url: str = DEFAULT_CATALOG_URL,
        max_age: timedelta = timedelta(days=DEFAULT_CACHE_MAX_AGE_DAYS),
        now: Optional[Callable[[], datetime]] = None,
    ) -> "ToolchainCache":
        """
        Load the persisted cache, refreshing it when needed.

        A refresh happens when the cache file is missing, cannot be
        deserialized (corruption is logged, never raised) or was last
        refreshed more than ``max_age`` ago.

        Raises:
            CatalogError: If a needed refresh cannot fetch the catalog
        """
        now = now or _utcnow
        cache = cls(paths, fetcher, flavor=flavor, catalog_url=catalog_url)

        if not cache.cache_file.exists():
            logger.debug(f"No catalog cache at {cache.cache_file}, fetching")
            cache.refresh(now())
            return cache

        try:
            cache._load()
        except (OSError, ValueError, KeyError, TypeError, InvalidVersionError) as e:
            logger.warning(f"Catalog cache {cache.cache_file} is corrupted ({e}), refetching")
            cache.refresh(now())
            return cache

        age = now() - cache.last_refreshed
        if age > max_age:
            logger.info(f"Catalog cache is {age.days} days old, refetching")
            cache.refresh(now())
        else:
            logger.debug(f"Using catalog cache from {cache.last_refreshed.isoformat()}")

        return cache

    def refresh(self, now: Optional[datetime] = None) -> None:
        """Fetch and parse the catalog, then persist it."""
        index_html = self.fetcher.get_text(self.catalog_url)
        self.entries = self.flavor.parse_index(index_html, self.catalog_url)
        self.last_refreshed = now or _utcnow()
        logger.debug(f"Catalog lists {len(self.entries)} toolchains")
        self.save()

    def query(self, requirement: VersionRequirement) -> RemoteToolchainDescriptor:
        """
        Return the highest catalog entry matching ``requirement``.

        Raises:
            NoCompatibleVersionFound: If nothing matches
        """
        for entry in self.entries:
            if requirement.matches(entry.version):
                logger.debug(f"Catalog match for {requirement}: {entry.version}")
                return entry
        raise NoCompatibleVersionFound(requirement)

    def save(self) -> None:
        """Persist to the cache file (plain overwrite)."""
        data = {
            "last_updated": self.last_refreshed.isoformat(),
            "available": [entry.to_dict() for entry in self.entries],
        }
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        self.cache_file.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def _load(self) -> None:
        with open(self.cache_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict) or not isinstance(data.get("available"), list):
            raise ValueError("unexpected cache layout")

        last_refreshed = _parse_timestamp(data["last_updated"])
        entries = []
        for item in data["available"]:
            version = SemanticVersion.parse(item["version"])
            base_url = item["base_url"]
            if not isinstance(base_url, str):
                raise ValueError(f"base_url must be a string, got {base_url!r}")
            archive_name = item.get("archive_name") or self.flavor.archive_name(
                version, _directory_of(base_url)
            )
            entries.append(RemoteToolchainDescriptor(version, base_url, archive_name))

        entries.sort(key=lambda d: d.version, reverse=True)
        self.last_refreshed = last_refreshed
        self.entries = entries
