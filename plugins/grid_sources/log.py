"""
Logging setup

All modules log through loguru's shared `logger`. Call configure_logging()
once from the host application to pick a level and sink; library code
never adds sinks on import.
"""

import sys

from loguru import logger

LOG_FORMAT = "{time:HH:mm:ss} | {level} | {name} | {message}"


def configure_logging(level="INFO", sink=None):
    """Replace loguru's handlers with a single sink at `level`.

    Args:
        level: Minimum level name ("DEBUG" shows per-step aux frames and
            materialized delays)
        sink: Anything loguru accepts as a sink (default: stderr)

    Returns:
        The loguru handler id
    """
    logger.remove()
    return logger.add(
        sink if sink is not None else sys.stderr,
        level=level,
        format=LOG_FORMAT,
        backtrace=True,
        diagnose=False,
    )
