"""
Run external build steps with a per-step log file and a progress spinner.

Every build/install step (configure, make, make install, pip) runs through
:func:`run_logged_command`: stdout and stderr are merged and read line by
line on the calling thread, every line is appended with a timestamp to
``cache/logs/Python_v<version>_step_<name>.log`` and forwarded to a
:class:`~hygeia.core.progress.ProgressReporter` thread.
"""

import logging
import shlex
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional, Sequence, TextIO, Union

from hygeia.core.exceptions import BuildStepError
from hygeia.core.progress import ProgressReporter

logger = logging.getLogger(__name__)


def timestamp() -> str:
    """Current local time in RFC 3339 format."""
    return datetime.now().astimezone().isoformat()


def step_log_name(version, header: str) -> str:
    """
    Build the log file name for one step of a version's install.

    Example:
        >>> step_log_name("3.7.5", "[3/15] Configure")
        'Python_v3.7.5_step_3_of_15_Configure.log'
    """
    name = (
        header.replace(" ", "_")
        .replace("[", "")
        .replace("/", "_of_")
        .replace("]", "")
        .replace("-", "")
    )
    return f"Python_v{version}_step_{name}.log"


class StepLog:
    """Timestamped, append-only log for one install step."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._file: Optional[TextIO] = None

    def __enter__(self) -> "StepLog":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "a", encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def write(self, line: str) -> None:
        if self._file is None:
            raise RuntimeError(f"Log file {self.path} is not open")
        self._file.write(f"{timestamp()} - {line.rstrip()}\n")
        self._file.flush()


def run_logged_command(
    header: str,
    version,
    command: Union[str, Path],
    arguments: Sequence[str],
    cwd: Path,
    logs_dir: Path,
    env: Optional[Mapping[str, str]] = None,
    show_progress: bool = True,
) -> Path:
    """
    Run one external step to completion.

    Args:
        header: Step header shown by the spinner, e.g. ``"[4/15] Make"``
        version: Toolchain version being installed (used in the log name)
        command: Executable to run
        arguments: Its arguments
        cwd: Working directory
        logs_dir: Directory for the per-step log file
        env: Full environment for the child (inherits ours when None)
        show_progress: Draw the spinner on stderr

    Returns:
        Path of the step's log file

    Raises:
        BuildStepError: If the process cannot be spawned, its output stream
            fails, or it exits with a non-zero status
    """
    command = str(command)
    arguments = [str(a) for a in arguments]
    log_path = Path(logs_dir) / step_log_name(version, header)
    command_line = " ".join(shlex.quote(part) for part in [command, *arguments])

    logger.debug(f"{header}: running {command_line} in {cwd} (log: {log_path})")

    with StepLog(log_path) as log, ProgressReporter(header, enabled=show_progress) as progress:
        log.write(f"cd {cwd}")
        log.write(command_line)

        try:
            process = subprocess.Popen(
                [command, *arguments],
                cwd=str(cwd),
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            log.write(f"Failed to spawn process: {e}")
            raise BuildStepError(
                header, command, arguments, log_file=log_path,
                reason=f"Could not be started: {e}",
            ) from e

        with process:
            try:
                for line in process.stdout:
                    log.write(line)
                    progress.update(line)
            except (OSError, ValueError) as e:
                process.kill()
                process.wait()
                log.write(f"Failed to read process output: {e}")
                raise BuildStepError(
                    header, command, arguments, log_file=log_path,
                    reason=f"Output stream failed: {e}",
                ) from e
            returncode = process.wait()

        log.write(f"Exit status {returncode}")

    if returncode != 0:
        raise BuildStepError(
            header, command, arguments, returncode=returncode, log_file=log_path
        )

    return log_path
