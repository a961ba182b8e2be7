"""
Shared utilities for CLI commands.

Provides common functionality used across multiple CLI commands: user
prompts, consistent error output and plain-text tables.
"""

import logging
import sys
from typing import Callable, List, Optional, Sequence, TextIO

logger = logging.getLogger(__name__)


# ============================================================================
# User Interaction
# ============================================================================


def ask_yes_no(
    question: str,
    default: bool = True,
    input_func: Callable[[str], str] = input,
) -> bool:
    """
    Ask a yes/no question on the terminal.

    Args:
        question: Question text (may span several lines)
        default: Answer used for an empty reply or when stdin is closed
        input_func: Replacement for :func:`input` (tests)

    Returns:
        True for yes, False for no
    """
    hint = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            reply = input_func(f"{question} {hint} ").strip().lower()
        except EOFError:
            return default
        if not reply:
            return default
        if reply in ("y", "yes"):
            return True
        if reply in ("n", "no"):
            return False
        print("Please answer 'y' or 'n'.")


def always_yes(question: str) -> bool:
    """Non-interactive confirmation used by ``--yes``."""
    logger.debug(f"Auto-accepting: {question}")
    return True


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """
    Format rows as a left-aligned text table with a dashed header rule.

    Example:
        >>> print(format_table(["Version"], [["3.7.5"]]))
        Version
        -------
        3.7.5
    """
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    def _line(cells: Sequence[str]) -> str:
        return "  ".join(str(c).ljust(w) for c, w in zip(cells, widths)).rstrip()

    lines: List[str] = [_line(headers), _line(["-" * w for w in widths])]
    lines.extend(_line(row) for row in rows)
    return "\n".join(lines)


def print_table(
    headers: Sequence[str], rows: Sequence[Sequence[str]], file: Optional[TextIO] = None
):
    """Print :func:`format_table` output."""
    print(format_table(headers, rows), file=file)
