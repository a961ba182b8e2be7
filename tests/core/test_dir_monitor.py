"""
Unit tests for DirectoryDiffMonitor.
"""

from hygeia.core.dir_monitor import DirectoryDiffMonitor


class TestDirectoryDiffMonitor:
    """Test detecting new directory entries."""

    def test_unchanged(self, tmp_path):
        """Test an unchanged directory reports nothing."""
        (tmp_path / "python3").write_text("")
        monitor = DirectoryDiffMonitor(tmp_path)
        assert monitor.check() == set()

    def test_new_file(self, tmp_path):
        """Test exactly the added entry is reported."""
        (tmp_path / "python3").write_text("")
        monitor = DirectoryDiffMonitor(tmp_path)

        (tmp_path / "black").write_text("")

        assert monitor.check() == {tmp_path / "black"}

    def test_cumulative(self, tmp_path):
        """Test checks always compare against the construction snapshot."""
        monitor = DirectoryDiffMonitor(tmp_path)
        (tmp_path / "a").write_text("")
        monitor.check()
        (tmp_path / "b").write_text("")

        assert monitor.check() == {tmp_path / "a", tmp_path / "b"}

    def test_removed_entries_ignored(self, tmp_path):
        """Test deletions are not reported."""
        (tmp_path / "old").write_text("")
        monitor = DirectoryDiffMonitor(tmp_path)
        (tmp_path / "old").unlink()
        assert monitor.check() == set()

    def test_missing_directory(self, tmp_path):
        """Test a directory created after construction reports its entries."""
        directory = tmp_path / "bin"
        monitor = DirectoryDiffMonitor(directory)
        assert monitor.baseline == frozenset()

        directory.mkdir()
        (directory / "python").write_text("")

        assert monitor.check() == {directory / "python"}
