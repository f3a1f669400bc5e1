"""
Logging configuration utilities.

This module provides functions for setting up and configuring logging.
"""
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Args:
        debug: Whether to enable debug logging
        log_file: Optional path of a file receiving a full debug-level copy of the log
    """
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT
    )

    logger = logging.getLogger('cryptstrap')
    logger.setLevel(logging.DEBUG if log_file else level)

    if log_file:
        # The console handler keeps the requested level, the file gets everything
        for handler in logging.getLogger().handlers:
            handler.setLevel(level)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)
