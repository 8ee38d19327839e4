"""Logging setup: one session log file per run plus plain console output."""

import logging
import sys
from datetime import datetime

import config


def setup_logger(
    name: str = config.LOGGER_NAME,
    log_file: str | None = None,
    level: int = config.LOG_LEVEL,
) -> logging.Logger:
    """
    Configure the application logger for one CLI session.

    The session file gets timestamps and levels; the console only gets the
    message, since that is what the learner reads.

    Args:
        name: Logger name
        log_file: File name under config.LOGS_DIR; defaults to
            "<LOG_FILE_PREFIX>_<timestamp>.log"
        level: Logging level for both handlers

    Returns:
        Configured logger instance
    """
    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)

    if log_file is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"{config.LOG_FILE_PREFIX}_{timestamp}.log"

    log_path = config.LOGS_DIR / log_file

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Re-running main() in one process must not stack handlers
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(config.LOG_FILE_FORMAT, datefmt=config.LOG_DATE_FORMAT))
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    logger.debug(f"Session log: {log_path}")

    return logger


def get_logger(name: str = config.LOGGER_NAME) -> logging.Logger:
    """Module-level access to the application logger."""
    return logging.getLogger(name)
