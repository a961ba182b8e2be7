"""
Entry point used when hygeia runs under a shim name.

Logging stays at WARNING so the shim is quiet around the real command's
output; set ``HYGEIA_LOG=debug`` to see how a command was resolved.
"""

import logging
import os
from typing import List, Optional

from hygeia.cli.context import AppContext
from hygeia.core.exceptions import CommandFailedError, HygeiaError

logger = logging.getLogger(__name__)

LOG_ENV_VAR = "HYGEIA_LOG"


def _configure_logging() -> None:
    level_name = os.environ.get(LOG_ENV_VAR, "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="hygeia %(levelname)s [%(name)s] %(message)s",
        force=True,
    )


def run_shim(command: str, arguments: List[str], context: Optional[AppContext] = None) -> int:
    """
    Dispatch ``command`` and return the exit code to use.

    Args:
        command: Name the shim was invoked as (``sys.argv[0]``)
        arguments: Remaining command-line arguments, passed through untouched
        context: Optional pre-built :class:`~hygeia.cli.context.AppContext`

    Returns:
        The real command's exit code, or 1 if it could not be run
    """
    _configure_logging()

    try:
        context = context or AppContext.from_env()
        context.dispatcher().dispatch(command, arguments)
    except CommandFailedError as e:
        logger.error(str(e))
        return e.returncode
    except HygeiaError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        return 130
    return 0

