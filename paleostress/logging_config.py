"""
Logging setup for the paleostress package.

Every module logs through ``logging.getLogger(__name__)`` so the whole
package hangs off the ``paleostress`` logger configured here.
"""

import logging
import sys
from typing import Optional


LOGGER_NAME = "paleostress"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the ``paleostress`` logger.

    Parameters
    ----------
    level : logging level (e.g. logging.DEBUG while tuning a search)
    log_file : optional path; search runs are also written there

    Returns
    -------
    logger : the configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-running setup (notebooks, repeated CLI calls) must not duplicate output
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
    return logger
