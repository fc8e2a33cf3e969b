"""
Logging infrastructure.

Provides logging utilities shared by the orchestration engine,
the workflow definitions and the infrastructure adapters.
"""
import logging
from typing import Union


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Top-level packages whose loggers follow the configured level
_PACKAGES = ("orchestration", "core")


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance.

    Args:
        name: Logger name (usually module name)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(LOG_FORMAT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """
    Apply a log level to every logger of the application packages.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    for package in _PACKAGES:
        logging.getLogger(package).setLevel(level)

    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and name.startswith(_PACKAGES):
            logger.setLevel(level)
