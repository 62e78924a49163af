import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Create a logger with the given name and level"""
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    return logger


def setup_logging(verbose: bool = False) -> None:
    """Attach one stream handler to the package logger."""
    logger = logging.getLogger("stellarcli")

    if not logger.handlers:  # Only add handler if none exists
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
