import logging
import sys

from app import config


def configure_logging() -> logging.Logger:
    """Attach a single console handler to the ``app`` logger tree."""

    logger = logging.getLogger("app")
    if logger.handlers:
        return logger

    logger.setLevel(config.LOG_LEVEL.upper())
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
