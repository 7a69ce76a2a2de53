"""
Logging utilities for consistent logging setup across the application.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


def setup_logger(
    logger: logging.Logger, log_level: int, log_file: Path | None = None
) -> None:
    """
    Set up a logger with a console handler and, optionally, a rotating log file.

    Calling it again for the same logger only updates the level and adds
    a file handler for a log file not seen before.

    Args:
        logger: The logger instance to configure
        log_level: The logging level to set
        log_file: Optional path of a rotating log file
    """
    logger.setLevel(log_level)
    formatter = logging.Formatter(LOG_FORMAT)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file is not None:
        file_name = os.path.abspath(log_file)
        if not any(
            isinstance(h, logging.handlers.RotatingFileHandler)
            and h.baseFilename == file_name
            for h in logger.handlers
        ):
            Path(file_name).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                file_name, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    for handler in logger.handlers:
        handler.setLevel(log_level)

    # urllib3 logs every gateway connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(log_level, logging.WARNING))
