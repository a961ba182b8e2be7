"""
Unit tests for the remote catalog and its on-disk cache.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
import responses

from hygeia.core.exceptions import CatalogError, NoCompatibleVersionFound
from hygeia.toolchain.catalog import (
    HttpCatalogFetcher,
    PosixCatalogFlavor,
    RemoteToolchainDescriptor,
    ToolchainCache,
    WindowsCatalogFlavor,
)
from hygeia.toolchain.version import SemanticVersion, VersionRequirement
from tests.fixtures.toolchains import POSIX_INDEX_HTML, WINDOWS_INDEX_HTML, StubFetcher

CATALOG_URL = "https://www.python.org/ftp/python/"
NOW = datetime(2019, 11, 1, 12, 0, tzinfo=timezone.utc)


def write_cache(paths, last_updated, versions=("3.7.5", "3.6.8")):
    cache_file = paths.available_toolchains_cache_file()
    cache_file.parent.mkdir(parents=True, exist_ok=True)
    cache_file.write_text(
        json.dumps(
            {
                "last_updated": last_updated.isoformat(),
                "available": [
                    {"version": version, "base_url": f"{CATALOG_URL}{version}/"}
                    for version in versions
                ],
            }
        )
    )
    return cache_file


class TestPosixCatalogFlavor:
    """Test parsing the python.org index for source tarballs."""

    def test_parses_release_directories(self):
        """Test only version directories become descriptors."""
        descriptors = PosixCatalogFlavor().parse_index(POSIX_INDEX_HTML, CATALOG_URL)

        assert [str(d.version) for d in descriptors] == [
            "3.8.0",
            "3.7.17",
            "3.7.5",
            "3.7.2",
            "3.6.8",
            "3.2.0",
            "2.7.16",
            "2.0.0",
        ]

    def test_sorted_strictly_descending(self):
        """Test descriptors are strictly descending by version."""
        descriptors = PosixCatalogFlavor().parse_index(POSIX_INDEX_HTML, CATALOG_URL)
        versions = [d.version for d in descriptors]
        assert all(a > b for a, b in zip(versions, versions[1:]))

    def test_urls(self):
        """Test base URL and archive name for a full version."""
        descriptors = PosixCatalogFlavor().parse_index(POSIX_INDEX_HTML, CATALOG_URL)
        descriptor = next(d for d in descriptors if str(d.version) == "3.7.5")

        assert descriptor.base_url == f"{CATALOG_URL}3.7.5/"
        assert descriptor.url == f"{CATALOG_URL}3.7.5/Python-3.7.5.tgz"

    def test_two_component_directory(self):
        """Test '3.2/' is version 3.2.0 with archive Python-3.2.tgz."""
        descriptors = PosixCatalogFlavor().parse_index(POSIX_INDEX_HTML, CATALOG_URL)
        descriptor = next(d for d in descriptors if str(d.version) == "3.2.0")

        assert descriptor.url == f"{CATALOG_URL}3.2/Python-3.2.tgz"

    def test_prerelease_archive_name(self):
        """Test the prerelease dash is dropped from the archive name."""
        name = PosixCatalogFlavor().archive_name(SemanticVersion.parse("3.7.2-rc1"))
        assert name == "Python-3.7.2rc1.tgz"

    def test_duplicate_anchors_are_dropped(self):
        """Test an anchor listed twice yields one descriptor."""
        html = '<a href="3.7.5/">3.7.5/</a>\n<a href="3.7.5/">3.7.5/</a>\n'
        assert len(PosixCatalogFlavor().parse_index(html, CATALOG_URL)) == 1

    def test_missing_trailing_slash_on_catalog_url(self):
        """Test the base URL is joined correctly without a trailing slash."""
        html = '<a href="3.7.5/">3.7.5/</a>'
        descriptors = PosixCatalogFlavor().parse_index(html, CATALOG_URL.rstrip("/"))
        assert descriptors[0].base_url == f"{CATALOG_URL}3.7.5/"


class TestWindowsCatalogFlavor:
    """Test parsing the python.org index for embeddable zips."""

    def test_skips_versions_without_embeddable_zip(self):
        """Test versions below 3.5.0 are dropped."""
        descriptors = WindowsCatalogFlavor().parse_index(WINDOWS_INDEX_HTML, CATALOG_URL)
        assert all(d.version >= SemanticVersion(3, 5, 0) for d in descriptors)

    def test_post_release_kept_as_distinct_entry(self):
        """Test 3.7.2 and 3.7.2.post1 are two descriptors of the same version."""
        descriptors = WindowsCatalogFlavor().parse_index(WINDOWS_INDEX_HTML, CATALOG_URL)
        same_version = [d for d in descriptors if str(d.version) == "3.7.2"]

        assert sorted(d.archive_name for d in same_version) == [
            "python-3.7.2-embed-amd64.zip",
            "python-3.7.2.post1-embed-amd64.zip",
        ]
        assert {d.base_url for d in same_version} == {
            f"{CATALOG_URL}3.7.2/",
            f"{CATALOG_URL}3.7.2.post1/",
        }

    def test_descending_order(self):
        """Test order is descending, stable for equal versions."""
        descriptors = WindowsCatalogFlavor().parse_index(WINDOWS_INDEX_HTML, CATALOG_URL)
        assert [str(d.version) for d in descriptors] == ["3.8.0", "3.7.2", "3.7.2"]
        assert descriptors[1].archive_name == "python-3.7.2-embed-amd64.zip"


class TestHttpCatalogFetcher:
    """Test fetching the index page with requests."""

    @responses.activate
    def test_returns_body(self):
        """Test a 200 response body is returned."""
        responses.add(responses.GET, CATALOG_URL, body=POSIX_INDEX_HTML, status=200)
        assert HttpCatalogFetcher().get_text(CATALOG_URL) == POSIX_INDEX_HTML

    @responses.activate
    def test_http_error_raises_catalog_error(self):
        """Test non-2xx status raises CatalogError."""
        responses.add(responses.GET, CATALOG_URL, status=503)
        with pytest.raises(CatalogError, match="Failed to fetch catalog"):
            HttpCatalogFetcher().get_text(CATALOG_URL)


class TestToolchainCacheFreshness:
    """Test load_or_refresh decides when to refetch."""

    def test_fresh_cache_is_not_refetched(self, hygeia_paths):
        """Test a cache updated one day ago performs zero fetches."""
        write_cache(hygeia_paths, NOW - timedelta(days=1))
        fetcher = StubFetcher()

        cache = ToolchainCache.load_or_refresh(
            hygeia_paths, fetcher, flavor=PosixCatalogFlavor(), now=lambda: NOW
        )

        assert fetcher.calls == []
        assert [str(e.version) for e in cache.entries] == ["3.7.5", "3.6.8"]

    def test_stale_cache_is_refetched_once(self, hygeia_paths):
        """Test a cache updated eleven days ago performs exactly one fetch."""
        write_cache(hygeia_paths, NOW - timedelta(days=11))
        fetcher = StubFetcher()

        cache = ToolchainCache.load_or_refresh(
            hygeia_paths, fetcher, flavor=PosixCatalogFlavor(), now=lambda: NOW
        )

        assert fetcher.calls == [CATALOG_URL]
        assert cache.entries[0].version == SemanticVersion.parse("3.8.0")
        assert cache.last_refreshed == NOW

    @pytest.mark.parametrize(
        "content",
        ["{not json", "[]", '{"available": []}', '{"last_updated": 3, "available": []}',
         '{"last_updated": "2019-10-31T00:00:00+00:00", "available": [{"version": "x"}]}'],
    )
    def test_corrupted_cache_is_refetched_once(self, hygeia_paths, content):
        """Test a corrupted cache file performs exactly one fetch."""
        cache_file = hygeia_paths.available_toolchains_cache_file()
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(content)
        fetcher = StubFetcher()

        ToolchainCache.load_or_refresh(
            hygeia_paths, fetcher, flavor=PosixCatalogFlavor(), now=lambda: NOW
        )

        assert len(fetcher.calls) == 1

    def test_missing_cache_is_fetched_and_persisted(self, hygeia_paths):
        """Test a missing cache file is fetched and written."""
        fetcher = StubFetcher()

        ToolchainCache.load_or_refresh(
            hygeia_paths, fetcher, flavor=PosixCatalogFlavor(), now=lambda: NOW
        )

        data = json.loads(hygeia_paths.available_toolchains_cache_file().read_text())
        assert len(fetcher.calls) == 1
        assert data["available"][0] == {
            "version": "3.8.0",
            "base_url": f"{CATALOG_URL}3.8.0/",
            "archive_name": "Python-3.8.0.tgz",
        }
        assert datetime.fromisoformat(data["last_updated"]) == NOW

    def test_max_age_is_configurable(self, hygeia_paths):
        """Test a shorter max_age refetches a one day old cache."""
        write_cache(hygeia_paths, NOW - timedelta(days=1))
        fetcher = StubFetcher()

        ToolchainCache.load_or_refresh(
            hygeia_paths,
            fetcher,
            flavor=PosixCatalogFlavor(),
            max_age=timedelta(hours=1),
            now=lambda: NOW,
        )

        assert len(fetcher.calls) == 1

    def test_saved_cache_loads_back(self, hygeia_paths):
        """Test entries survive a save/load cycle."""
        ToolchainCache.load_or_refresh(
            hygeia_paths, StubFetcher(), flavor=PosixCatalogFlavor(), now=lambda: NOW
        )
        fetcher = StubFetcher()

        cache = ToolchainCache.load_or_refresh(
            hygeia_paths, fetcher, flavor=PosixCatalogFlavor(), now=lambda: NOW
        )

        assert fetcher.calls == []
        assert cache.entries[0].url == f"{CATALOG_URL}3.8.0/Python-3.8.0.tgz"

    def test_archive_name_from_directory(self, hygeia_paths):
        """Test entries without an archive name take it from their release directory."""
        cache_file = hygeia_paths.available_toolchains_cache_file()
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(
            json.dumps(
                {
                    "last_updated": (NOW - timedelta(days=1)).isoformat(),
                    "available": [
                        {"version": "3.2.1", "base_url": f"{CATALOG_URL}3.2.1/"},
                        {"version": "3.2.0", "base_url": f"{CATALOG_URL}3.2/"},
                    ],
                }
            )
        )

        cache = ToolchainCache.load_or_refresh(
            hygeia_paths, StubFetcher(), flavor=PosixCatalogFlavor(), now=lambda: NOW
        )

        assert [e.archive_name for e in cache.entries] == ["Python-3.2.1.tgz", "Python-3.2.tgz"]


class TestToolchainCacheQuery:
    """Test ToolchainCache.query."""

    @pytest.fixture
    def cache(self, hygeia_paths):
        return ToolchainCache.load_or_refresh(
            hygeia_paths, StubFetcher(), flavor=PosixCatalogFlavor(), now=lambda: NOW
        )

    def test_highest_compatible_version(self, cache):
        """Test ~3.7 picks the highest 3.7.x."""
        descriptor = cache.query(VersionRequirement.parse("~3.7"))
        assert str(descriptor.version) == "3.7.17"

    def test_any_picks_latest(self, cache):
        """Test latest picks the highest version."""
        assert str(cache.query(VersionRequirement.parse("latest")).version) == "3.8.0"

    def test_exact(self, cache):
        """Test an exact requirement picks that version."""
        assert str(cache.query(VersionRequirement.parse("3.7.5")).version) == "3.7.5"

    def test_idempotent(self, cache):
        """Test two queries with the same requirement return the same descriptor."""
        requirement = VersionRequirement.parse("~3.7")
        assert cache.query(requirement) == cache.query(requirement)

    def test_no_match(self, cache):
        """Test an unmatched requirement raises NoCompatibleVersionFound."""
        with pytest.raises(NoCompatibleVersionFound, match="4.0"):
            cache.query(VersionRequirement.parse("~4.0"))


class TestRemoteToolchainDescriptor:
    """Test descriptor helpers."""

    def test_url_and_dict(self):
        """Test url joins base URL and archive name."""
        descriptor = RemoteToolchainDescriptor(
            SemanticVersion.parse("3.7.5"), f"{CATALOG_URL}3.7.5/", "Python-3.7.5.tgz"
        )
        assert descriptor.url == f"{CATALOG_URL}3.7.5/Python-3.7.5.tgz"
        assert descriptor.to_dict()["version"] == "3.7.5"
