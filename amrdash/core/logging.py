"""
AMR Dashboard logging

Unified log management built on loguru
"""

import sys
from typing import Optional

from loguru import logger

from .config import AppSettings

# Guard against configuring sinks twice
_logging_initialized = False


def setup_logging(settings: Optional[AppSettings] = None) -> None:
    """Configure the log sinks

    Without settings only the stderr sink is installed, at INFO.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    level = settings.log_level if settings else "INFO"

    # Drop the default handler
    logger.remove()

    # Console - coloured
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=settings.debug if settings else False,
    )

    if settings is not None:
        # File - everything
        logger.add(
            settings.log_dir / "amrdash_{time:YYYY-MM-DD}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level=level,
            rotation="00:00",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )

        # Errors in their own file
        logger.add(
            settings.log_dir / "error_{time:YYYY-MM-DD}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}\n{exception}",
            level="ERROR",
            rotation="00:00",
            retention="90 days",
            compression="zip",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    _logging_initialized = True
    logger.info(
        f"Logging initialized - Level: {level}"
        + (f", Log dir: {settings.log_dir}" if settings else "")
    )


def get_logger(name: str):
    """
    Get a logger

    Args:
        name: logger name, usually __name__

    Returns:
        logger bound to the given name
    """
    return logger.bind(name=name)
