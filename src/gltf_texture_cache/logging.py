"""Centralized logging configuration using loguru.

The cache, the scene readers and the CLI all log through loguru's global
``logger``. This module installs the handlers once, at CLI startup or from a
host pipeline that embeds the cache.

Example:
    from gltf_texture_cache.logging import setup_logging

    setup_logging(level="DEBUG")

    from loguru import logger
    logger.info("Import started")

"""

import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Configure loguru for texture resolution.

    Args:
        level: Minimum log level to capture. One of: DEBUG, INFO, WARNING, ERROR, CRITICAL.
        json_output: If True, serialize records as JSON (for import farms / CI logs).
        log_file: Optional file path to also write logs to.

    Returns:
        The configured loguru logger instance.

    """
    logger.remove()

    if json_output:
        logger.add(
            sys.stderr,
            format="{message}",
            serialize=True,
            level=level,
        )
    else:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=level,
            colorize=True,
        )

    if log_file:
        logger.add(
            log_file,
            format=CONSOLE_FORMAT,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
        )

    return logger
