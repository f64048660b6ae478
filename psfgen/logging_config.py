"""Logging configuration for psfgen.

The library logs through loguru and is disabled on import. Applications
opt in with :func:`setup_logging` or ``logger.enable("psfgen")``.
"""

import sys
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger

__all__ = ["setup_logging"]


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    show_time: bool = True,
    show_level: bool = True,
) -> Any:
    """Route psfgen log records to stderr and optionally to a file.

    Replaces every existing loguru sink.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_file: Optional path of a rotating log file.
        show_time: Prefix records with a timestamp.
        show_level: Prefix records with the level name.

    Returns:
        The configured loguru logger.

    Example:
        ```python
        from psfgen.logging_config import setup_logging

        setup_logging(level="DEBUG")
        volume = PSFEngine(model, optics, geometry).compute()
        ```
    """
    logger.remove()
    logger.enable("psfgen")

    parts = []
    if show_time:
        parts.append("<green>{time:YYYY-MM-DD HH:mm:ss}</green>")
    if show_level:
        parts.append("<level>{level: <8}</level>")
    parts.append("<cyan>{thread.name}</cyan>")
    parts.append("<level>{message}</level>")
    format_str = " | ".join(parts)

    logger.add(sys.stderr, format=format_str, level=level, colorize=True)

    if log_file:
        logger.add(
            log_file,
            format=format_str,
            level=level,
            rotation="10 MB",
            retention="7 days",
        )

    return logger
