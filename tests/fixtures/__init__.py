"""Test fixtures for hygeia tests.

This package provides reusable pytest fixtures and helpers for testing
hygeia components:

- toolchains: isolated home directories, fake installed toolchains,
  catalog index pages and a stub catalog fetcher
- installers: offline stand-ins for the download and build steps

Import fixtures in your tests using:
    from tests.fixtures.toolchains import make_toolchain, StubFetcher
"""

__all__ = [
    "toolchains",
    "installers",
]
