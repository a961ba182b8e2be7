"""
Tests for the shim entry point and launcher name detection.
"""

import pytest

from hygeia.__main__ import is_cli_invocation
from hygeia.cli.context import AppContext
from hygeia.config.settings import Settings
from hygeia.shim.main import run_shim
from hygeia.toolchain.toolchain_file import TOOLCHAIN_FILE
from tests.fixtures.toolchains import StubFetcher, make_executable, make_toolchain


@pytest.fixture
def context(hygeia_paths, linux_platform):
    return AppContext(
        paths=hygeia_paths,
        settings=Settings(discover_system_toolchains=False, progress=False),
        platform=linux_platform,
        fetcher=StubFetcher(),
    )


class TestIsCliInvocation:
    """Test telling the CLI apart from shims."""

    @pytest.mark.parametrize(
        "argv0,expected",
        [
            ("hygeia", True),
            ("/home/me/.hygeia/shims/hygeia", True),
            ("C:\\Users\\me\\.hygeia\\shims\\hygeia.exe", True),
            ("/usr/lib/python3/site-packages/hygeia/__main__.py", True),
            ("python3", False),
            ("/home/me/.hygeia/shims/pip", False),
        ],
    )
    def test_names(self, argv0, expected):
        """Test launcher names and shim names."""
        assert is_cli_invocation(argv0.replace("\\", "/")) is expected


class TestRunShim:
    """Test the exit codes a shim reports."""

    def test_success(self, context, hygeia_paths, project_dir, posix_only):
        """Test a successful command exits 0."""
        make_toolchain(hygeia_paths, "3.7.5")
        assert run_shim("python3", [], context) == 0

    def test_child_exit_code(self, context, hygeia_paths, project_dir, posix_only):
        """Test the child's exit code is passed through."""
        bin_dir = make_toolchain(hygeia_paths, "3.7.5")
        make_executable(bin_dir / "python3", "#!/bin/sh\nexit 3\n")
        (project_dir / TOOLCHAIN_FILE).write_text("= 3.7.5\n")

        assert run_shim("python3", ["-c", "pass"], context) == 3

    def test_no_interpreter(self, context, project_dir):
        """Test exit code 1 when nothing is installed."""
        assert run_shim("python3", [], context) == 1

    def test_broken_marker(self, context, hygeia_paths, project_dir):
        """Test an unusable marker file is reported as an error."""
        make_toolchain(hygeia_paths, "3.7.5")
        (project_dir / TOOLCHAIN_FILE).write_text("./does-not-exist\n")
        assert run_shim("python3", [], context) == 1
