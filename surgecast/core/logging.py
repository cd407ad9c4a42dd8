"""
SurgeCast Logging

Unified logging based on loguru
"""

import sys

from loguru import logger

from .config import AppSettings

# Guard against double initialisation
_logging_initialized = False


def setup_logging(settings: AppSettings) -> None:
    """Configure loguru sinks"""
    global _logging_initialized

    if _logging_initialized:
        return

    # Drop the default handler
    logger.remove()

    # Console - coloured
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.log_level,
        colorize=True,
        backtrace=True,
        diagnose=settings.is_development,
    )

    if settings.log_to_file:
        # The sink owns its directory
        settings.log_dir.mkdir(parents=True, exist_ok=True)

        # All logs
        logger.add(
            settings.log_dir / "surgecast_{time:YYYY-MM-DD}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level=settings.log_level,
            rotation="00:00",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )

        # Errors only
        logger.add(
            settings.log_dir / "error_{time:YYYY-MM-DD}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}\n{exception}",
            level="ERROR",
            rotation="00:00",
            retention="90 days",
            compression="zip",
            enqueue=True,
            backtrace=True,
        )

    _logging_initialized = True
    logger.info(f"Logging initialized - Level: {settings.log_level}, Log dir: {settings.log_dir}")


def get_logger(name: str):
    """
    Get a logger bound to a module name

    Args:
        name: logger name, usually __name__

    Returns:
        bound loguru logger
    """
    return logger.bind(name=name)
