import logging
import os
import sys


LOGGER_NAME = "forge-relay"
LOG_LEVEL_ENV = "FORGE_RELAY_LOG_LEVEL"


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """
    Attach a stdout handler to the forge-relay logger tree.

    The level comes from `level`, else FORGE_RELAY_LOG_LEVEL, else INFO.
    """
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "INFO").upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance under the forge-relay tree."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
