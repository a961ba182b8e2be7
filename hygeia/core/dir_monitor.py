"""
Detect files created in a directory by an external process.

``make install`` and ``pip install`` drop new executables into a toolchain's
``bin`` directory; hygeia snapshots the directory before running them and
mirrors whatever appeared into the shim directory afterwards.
"""

import logging
from pathlib import Path
from typing import FrozenSet, Set

logger = logging.getLogger(__name__)


class DirectoryDiffMonitor:
    """
    Snapshot of a directory's entries taken at construction time.

    ``check()`` always compares against that original snapshot, so repeated
    calls answer "what is new since construction", cumulatively.

    Example:
        >>> monitor = DirectoryDiffMonitor(bin_dir)
        >>> run_pip_install()
        >>> for new_file in monitor.check():
        ...     print(new_file.name)
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._baseline = self._snapshot()
        logger.debug(f"Monitoring {self.directory} ({len(self._baseline)} entries)")

    @property
    def baseline(self) -> FrozenSet[Path]:
        return self._baseline

    def check(self) -> Set[Path]:
        """Return entries present now that were not present at construction."""
        return set(self._snapshot() - self._baseline)

    def _snapshot(self) -> FrozenSet[Path]:
        if not self.directory.is_dir():
            return frozenset()
        return frozenset(entry for entry in self.directory.iterdir())
