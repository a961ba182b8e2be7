"""
Console progress indicator driven from a background thread.

The main thread does the blocking work (reading a download stream or a
subprocess's output) and only posts messages; the reporter thread owns the
terminal line and animates a spinner while it waits for the next message.

Example:
    >>> with ProgressReporter("[1/15] Download") as progress:
    ...     for line in lines:
    ...         progress.update(line)
"""

import logging
import queue
import sys
import threading
from dataclasses import dataclass
from typing import Optional, TextIO, Union

logger = logging.getLogger(__name__)

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
POLL_INTERVAL = 0.1  # seconds


@dataclass(frozen=True)
class TextUpdate:
    """New status text to display next to the spinner."""

    text: str


@dataclass(frozen=True)
class Stop:
    """Ask the reporter thread to finish."""

    success: bool = True


Message = Union[TextUpdate, Stop]


class ProgressReporter:
    """
    Spinner rendered by a worker thread fed through an unbounded queue.

    Args:
        header: Fixed prefix shown before the latest status text
        stream: Where to draw (defaults to stderr)
        enabled: When False nothing is drawn, but messages are still consumed
        width: Maximum rendered line width
    """

    def __init__(
        self,
        header: str,
        stream: Optional[TextIO] = None,
        enabled: bool = True,
        width: int = 100,
    ):
        self.header = header
        self.stream = stream if stream is not None else sys.stderr
        self.enabled = enabled
        self.width = width
        self._queue: "queue.Queue[Message]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._frame = 0
        self._text = ""

    def start(self) -> "ProgressReporter":
        if self._thread is not None:
            raise RuntimeError("Progress reporter already started")
        self._thread = threading.Thread(
            target=self._run, name=f"progress-{self.header}", daemon=True
        )
        self._thread.start()
        return self

    def update(self, text: str) -> None:
        """Post a status update (never blocks)."""
        self._queue.put(TextUpdate(text))

    def stop(self, success: bool = True) -> None:
        """Post the stop signal and wait for the thread to finish drawing."""
        if self._thread is None:
            return
        self._queue.put(Stop(success))
        self._thread.join()
        self._thread = None

    def __enter__(self) -> "ProgressReporter":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop(success=exc_type is None)

    def _run(self) -> None:
        while True:
            try:
                message = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                self._draw()
                continue

            if isinstance(message, Stop):
                self._finish(message.success)
                return
            self._text = message.text.strip()
            self._draw()

    def _draw(self) -> None:
        if not self.enabled:
            return
        frame = SPINNER_FRAMES[self._frame % len(SPINNER_FRAMES)]
        self._frame += 1
        line = f"{frame} {self.header}: {self._text}" if self._text else f"{frame} {self.header}"
        self._write("\r" + line[: self.width].ljust(self.width))

    def _finish(self, success: bool) -> None:
        if not self.enabled:
            return
        mark = "✓" if success else "✗"
        self._write("\r" + f"{mark} {self.header}".ljust(self.width) + "\n")

    def _write(self, text: str) -> None:
        try:
            self.stream.write(text)
            self.stream.flush()
        except (OSError, ValueError, UnicodeEncodeError) as e:
            # Closed stream or a console that cannot encode the spinner
            logger.debug(f"Progress output disabled: {e}")
            self.enabled = False
