"""
Tests for installing extra packages with pip (runner stubbed).
"""

from hygeia.core.exceptions import BuildStepError
from hygeia.install.base import InstallationJob
from hygeia.install.extras import (
    DEFAULT_EXTRA_PACKAGES,
    ExtraPackagesInstaller,
    load_extra_packages,
    write_default_extra_packages,
)
from hygeia.toolchain.catalog import RemoteToolchainDescriptor
from hygeia.toolchain.linking import ShimLinkManager
from hygeia.toolchain.version import SemanticVersion
from tests.fixtures.toolchains import make_executable


def make_job(paths):
    version = SemanticVersion.parse("3.7.5")
    descriptor = RemoteToolchainDescriptor(version, "https://example.com/3.7.5/", "Python-3.7.5.tgz")
    return InstallationJob(
        descriptor=descriptor,
        install_dir=paths.install_dir(version),
        bin_dir=paths.bin_dir(version),
        archive_path=paths.downloaded() / descriptor.archive_name,
    )


class FakePip:
    """Runner that 'installs' a console script per package, failing some."""

    def __init__(self, scripts_dir, failing=()):
        self.scripts_dir = scripts_dir
        self.failing = set(failing)
        self.calls = []

    def __call__(self, header, version, command, arguments, cwd, logs_dir, env=None, show_progress=True):
        package = arguments[-1]
        self.calls.append((header, command, list(arguments)))
        if package in self.failing:
            raise BuildStepError(header, str(command), arguments, returncode=1)
        make_executable(self.scripts_dir / package)
        return logs_dir / f"{package}.log"


class TestPackageFiles:
    """Test reading and writing package lists."""

    def test_load_skips_comments(self, tmp_path):
        """Test blank lines and comments are ignored."""
        path = tmp_path / "extras.txt"
        path.write_text("# tools\nblack\n\n  pytest  \n#flake8\n")
        assert load_extra_packages(path) == ["black", "pytest"]

    def test_write_default_once(self, tmp_path):
        """Test the default list is written only if missing."""
        path = tmp_path / "home" / "extra-packages-to-install.txt"

        assert write_default_extra_packages(path) is True
        assert path.read_text() == DEFAULT_EXTRA_PACKAGES
        path.write_text("custom\n")
        assert write_default_extra_packages(path) is False
        assert path.read_text() == "custom\n"

    def test_default_packages(self, tmp_path):
        """Test the default list names pip tooling."""
        path = tmp_path / "extras.txt"
        write_default_extra_packages(path)
        assert load_extra_packages(path) == ["pip", "setuptools", "wheel"]


class TestSelect:
    """Test the confirmation flow."""

    def test_accept_all(self, hygeia_paths):
        """Test everything is selected without a confirm callback."""
        installer = ExtraPackagesInstaller(hygeia_paths)
        assert installer.select(["black", "pytest"]) == ["black", "pytest"]

    def test_per_package(self, hygeia_paths):
        """Test declined packages are dropped."""
        questions = []

        def confirm(question):
            questions.append(question)
            return "pytest" not in question

        installer = ExtraPackagesInstaller(hygeia_paths, confirm=confirm)

        assert installer.select(["black", "pytest"]) == ["black"]
        assert questions[0].startswith("Install extra Python packages")
        assert questions[1] == "    [ 1/2] black"
        assert questions[-1].startswith("Selected packages: black.")

    def test_declined_overall(self, hygeia_paths):
        """Test declining the first question selects nothing."""
        installer = ExtraPackagesInstaller(hygeia_paths, confirm=lambda q: False)
        assert installer.select(["black"]) == []

    def test_declined_final(self, hygeia_paths):
        """Test declining the summary selects nothing."""
        installer = ExtraPackagesInstaller(
            hygeia_paths, confirm=lambda q: not q.startswith("Selected")
        )
        assert installer.select(["black"]) == []

    def test_empty(self, hygeia_paths):
        """Test nothing is asked for an empty list."""
        installer = ExtraPackagesInstaller(hygeia_paths, confirm=lambda q: 1 / 0)
        assert installer.select([]) == []


class TestInstall:
    """Test running pip per package."""

    def test_install_and_mirror(self, hygeia_paths, linux_platform, tmp_path, posix_only):
        """Test packages are installed in order, failures continue, new scripts become shims."""
        job = make_job(hygeia_paths)
        scripts_dir = job.bin_dir
        scripts_dir.mkdir(parents=True)
        shim_links = ShimLinkManager(hygeia_paths, linux_platform)
        make_executable(shim_links.launcher)
        pip = FakePip(scripts_dir, failing={"broken"})
        package_file = tmp_path / "extras.txt"
        package_file.write_text("black\nbroken\npytest\n")

        installer = ExtraPackagesInstaller(
            hygeia_paths, runner=pip, shim_links=shim_links, show_progress=False
        )
        result = installer.install(
            job, interpreter=scripts_dir / "python3", scripts_dir=scripts_dir, package_files=[package_file]
        )

        assert result.installed == ["black", "pytest"]
        assert result.failed == ["broken"]
        assert sorted(result.shims) == ["black", "pytest"]
        assert (hygeia_paths.shims() / "black").exists()
        assert [c[0] for c in pip.calls] == [
            "[6/15] pip install --upgrade black",
            "[7/15] pip install --upgrade broken",
            "[8/15] pip install --upgrade pytest",
        ]
        assert pip.calls[0][2] == ["-m", "pip", "install", "--verbose", "--upgrade", "black"]

    def test_nothing_selected(self, hygeia_paths, tmp_path):
        """Test pip never runs when nothing is selected."""
        job = make_job(hygeia_paths)
        pip = FakePip(tmp_path)
        package_file = tmp_path / "extras.txt"
        package_file.write_text("black\n")

        installer = ExtraPackagesInstaller(hygeia_paths, confirm=lambda q: False, runner=pip)
        result = installer.install(job, tmp_path / "python3", tmp_path, [package_file])

        assert pip.calls == []
        assert result.installed == []
