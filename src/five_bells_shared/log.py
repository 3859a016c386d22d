from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

PACKAGE_LOGGER = "five_bells_shared"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Set up root output and the level of this package's loggers."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    return logger
