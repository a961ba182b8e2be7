"""
Tests for the CLI commands against an offline, isolated hygeia home.
"""

import pytest

from hygeia.cli.commands import install as install_command
from hygeia.cli.context import AppContext, context_from_args
from hygeia.cli.parser import CLI
from hygeia.config.settings import Settings
from hygeia.core.exceptions import (
    InvalidRequirementError,
    MissingInterpreter,
    ResolutionError,
    ToolchainNotInstalledError,
)
from hygeia.install.extras import ExtraPackagesInstaller
from hygeia.install.pipeline import InstallationPipeline
from hygeia.toolchain.toolchain_file import TOOLCHAIN_FILE
from hygeia.toolchain.version import Compatible
from tests.fixtures.installers import RecordingInstaller, StubDownloader
from tests.fixtures.toolchains import StubFetcher, make_executable, make_toolchain


class OfflineContext(AppContext):
    """Context whose pipeline never touches the network or a compiler."""

    def pipeline(self, confirm=None):
        extras = ExtraPackagesInstaller(
            self.paths,
            confirm=confirm,
            runner=self.pip_runner,
            shim_links=self.shim_links(),
            show_progress=False,
        )
        return InstallationPipeline(
            self.paths,
            self.catalog(),
            self.registry,
            self.installer,
            settings=self.settings,
            downloader=self.downloader,
            extras=extras,
        )


class RecordingPip:
    def __init__(self):
        self.packages = []

    def __call__(self, header, version, command, arguments, cwd, logs_dir, env=None, show_progress=True):
        self.packages.append(arguments[-1])
        return logs_dir / "pip.log"


@pytest.fixture
def context(hygeia_paths, linux_platform):
    context = OfflineContext(
        paths=hygeia_paths,
        settings=Settings(discover_system_toolchains=False, progress=False),
        platform=linux_platform,
        fetcher=StubFetcher(),
    )
    context.installer = RecordingInstaller()
    context.downloader = StubDownloader()
    context.pip_runner = RecordingPip()
    return context


def parse(context, *argv):
    args = CLI().parse_args(list(argv))
    args.context = context
    return args


class TestContextFromArgs:
    """Test how commands obtain their context."""

    def test_attached(self, context):
        """Test an attached context is used."""
        assert context_from_args(parse(context, "list")) is context

    def test_from_environment(self, isolated_home):
        """Test a context is built from the environment otherwise."""
        args = CLI().parse_args(["list"])
        context = context_from_args(args)
        assert context.paths.home() == isolated_home / ".hygeia"


class TestInstallCommand:
    """Test 'hygeia install'."""

    def test_install_version(self, context, project_dir):
        """Test the highest matching release is installed."""
        assert install_command.run(parse(context, "install", "~3.7")) == 0

        installed = context.registry.all()
        assert [str(t.version) for t in installed] == ["3.7.17"]
        assert not (project_dir / TOOLCHAIN_FILE).exists()

    def test_install_from_marker(self, context, project_dir):
        """Test the marker's requirement is used without an argument."""
        (project_dir / TOOLCHAIN_FILE).write_text("~3.6\n")

        install_command.run(parse(context, "install"))

        assert [str(t.version) for t in context.registry.all()] == ["3.6.8"]

    def test_no_version_anywhere(self, context, project_dir):
        """Test a missing version and marker is a resolution error."""
        if (project_dir / TOOLCHAIN_FILE).exists():
            pytest.skip("unexpected marker")
        with pytest.raises(ResolutionError, match="No version given"):
            install_command.run(parse(context, "install"))

    def test_path_marker(self, context, project_dir, tmp_path):
        """Test a path marker cannot be installed."""
        (project_dir / TOOLCHAIN_FILE).write_text(f"{tmp_path}\n")
        with pytest.raises(ResolutionError, match="cannot be installed"):
            install_command.requested_requirement(None, project_dir)

    def test_invalid_version(self, context, project_dir):
        """Test an invalid requirement is rejected."""
        with pytest.raises(InvalidRequirementError):
            install_command.run(parse(context, "install", "three"))

    def test_select(self, context, project_dir):
        """Test --select pins the installed version."""
        install_command.run(parse(context, "install", "3", "--select"))
        assert (project_dir / TOOLCHAIN_FILE).read_text() == "= 3.8.0\n"

    def test_release(self, context, project_dir):
        """Test --release turns on optimized builds."""
        install_command.run(parse(context, "install", "3.6.8", "--release"))
        assert context.settings.release_build is True

    def test_extras(self, context, project_dir, tmp_path):
        """Test --extra and --extra-from feed pip with --yes."""
        extra_file = tmp_path / "mine.txt"
        extra_file.write_text("black\n")

        install_command.run(
            parse(context, "install", "3.7.5", "--extra", "--extra-from", str(extra_file), "--yes")
        )

        assert context.pip_runner.packages == ["pip", "setuptools", "wheel", "black"]
        assert context.paths.default_extra_package_file().exists()


class TestUseCommand:
    """Test 'hygeia use'."""

    def test_installed(self, context, project_dir):
        """Test an installed match is selected without installing."""
        from hygeia.cli.commands import use

        make_toolchain(context.paths, "3.7.5")

        assert use.run(parse(context, "use", "~3.7")) == 0

        assert (project_dir / TOOLCHAIN_FILE).read_text() == "= 3.7.5\n"
        assert context.downloader.urls == []

    def test_installs_missing(self, context, project_dir):
        """Test a missing version is installed first."""
        from hygeia.cli.commands import use

        use.run(parse(context, "use", "3.6.8"))

        assert (project_dir / TOOLCHAIN_FILE).read_text() == "= 3.6.8\n"
        assert len(context.downloader.urls) == 1


class TestSelectCommand:
    """Test 'hygeia select'."""

    def test_version(self, context, project_dir):
        """Test an installed version is pinned exactly."""
        from hygeia.cli.commands import select

        make_toolchain(context.paths, "3.7.5")
        make_toolchain(context.paths, "3.8.0")

        select.run(parse(context, "select", "~3"))

        assert (project_dir / TOOLCHAIN_FILE).read_text() == "= 3.8.0\n"

    def test_version_not_installed(self, context, project_dir):
        """Test selecting a missing version fails without writing."""
        from hygeia.cli.commands import select

        with pytest.raises(ToolchainNotInstalledError):
            select.run(parse(context, "select", "3.9"))
        assert not (project_dir / TOOLCHAIN_FILE).exists()

    def test_path(self, context, project_dir):
        """Test a toolchain directory is pinned by path."""
        from hygeia.cli.commands import select

        bin_dir = make_toolchain(context.paths, "3.7.5")

        select.run(parse(context, "select", str(bin_dir)))

        assert (project_dir / TOOLCHAIN_FILE).read_text().strip() == str(bin_dir.resolve())

    def test_path_without_interpreter(self, context, project_dir, tmp_path):
        """Test a directory with no interpreter is rejected."""
        from hygeia.cli.commands import select

        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(MissingInterpreter):
            select.run(parse(context, "select", str(empty)))


class TestListCommand:
    """Test 'hygeia list'."""

    def test_marks_active(self, context, project_dir, capsys):
        """Test installed toolchains are listed and the active one marked."""
        from hygeia.cli.commands import list as list_command

        make_toolchain(context.paths, "3.7.5")
        make_toolchain(context.paths, "3.8.0")
        (project_dir / TOOLCHAIN_FILE).write_text("= 3.7.5\n")

        assert list_command.run(parse(context, "list")) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["Active", "Version", "Managed", "Location"]
        assert lines[2].split()[:2] == ["3.8.0", "yes"]
        assert lines[3].split()[:3] == ["*", "3.7.5", "yes"]

    def test_marker_not_installed(self, context, project_dir, capsys):
        """Test a marker without an installed match is shown first."""
        from hygeia.cli.commands import list as list_command

        make_toolchain(context.paths, "3.8.0")
        (project_dir / TOOLCHAIN_FILE).write_text("~3.6\n")

        list_command.run(parse(context, "list"))

        lines = capsys.readouterr().out.splitlines()
        assert lines[2].split() == ["*", "~3.6", "not", "installed"]

    def test_nothing_installed(self, context, project_dir, capsys):
        """Test an empty registry prints no table."""
        from hygeia.cli.commands import list as list_command

        assert list_command.run(parse(context, "list")) == 0
        assert capsys.readouterr().out == ""


class TestPathAndVersionCommands:
    """Test 'hygeia path' and 'hygeia version'."""

    def test_active(self, context, project_dir, capsys):
        """Test the marker's toolchain is printed."""
        from hygeia.cli.commands import path, version

        make_toolchain(context.paths, "3.7.5")
        make_toolchain(context.paths, "3.8.0")
        (project_dir / TOOLCHAIN_FILE).write_text("~3.7\n")

        assert version.run(parse(context, "version")) == 0
        assert path.run(parse(context, "path")) == 0

        out = capsys.readouterr().out.splitlines()
        assert out == ["3.7.5", str(context.paths.bin_dir("3.7.5"))]

    def test_requested(self, context, project_dir, capsys):
        """Test --version overrides the marker."""
        from hygeia.cli.commands import version

        make_toolchain(context.paths, "3.7.5")
        make_toolchain(context.paths, "3.8.0")

        version.run(parse(context, "version", "--version", "~3.7"))

        assert capsys.readouterr().out.strip() == "3.7.5"

    def test_latest_fallback(self, context, project_dir, capsys):
        """Test the latest toolchain is used when nothing matches."""
        from hygeia.cli.commands import version

        make_toolchain(context.paths, "3.8.0")
        (project_dir / TOOLCHAIN_FILE).write_text("= 2.7.16\n")

        version.run(parse(context, "version"))

        assert capsys.readouterr().out.strip() == "3.8.0"

    @pytest.mark.parametrize("command", ["path", "version"])
    def test_nothing_installed(self, context, project_dir, capsys, command):
        """Test an empty line and exit code 1 when nothing is installed."""
        import importlib

        module = importlib.import_module(f"hygeia.cli.commands.{command}")

        assert module.run(parse(context, command)) == 1
        assert capsys.readouterr().out == "\n"


class TestRunCommand:
    """Test 'hygeia run'."""

    def test_exit_code(self, context, project_dir, posix_only):
        """Test the command's exit code is returned."""
        from hygeia.cli.commands import run

        bin_dir = make_toolchain(context.paths, "3.7.5")
        make_executable(bin_dir / "python3", "#!/bin/sh\nexit 4\n")

        assert run.run(parse(context, "run", "python -c 'raise SystemExit(4)'")) == 4

    def test_success(self, context, project_dir, posix_only):
        """Test a successful command returns 0."""
        from hygeia.cli.commands import run

        make_toolchain(context.paths, "3.7.5")

        assert run.run(parse(context, "run", "--version", "~3.7", "python")) == 0

    def test_missing_version(self, context, project_dir):
        """Test --version must name an installed interpreter."""
        from hygeia.cli.commands import run

        make_toolchain(context.paths, "3.7.5")

        with pytest.raises(MissingInterpreter):
            run.run(parse(context, "run", "--version", "3.9.1", "python"))


class TestRequestedRequirement:
    """Test choosing the install requirement."""

    def test_argument(self):
        """Test an explicit argument wins."""
        assert install_command.requested_requirement("~3") == Compatible(3)
