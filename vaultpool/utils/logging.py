"""Logging configuration for vaultpool."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log every HTTP request or pool checkout at INFO/DEBUG
QUIET_LOGGERS = ("hvac", "urllib3", "apscheduler", "sqlalchemy")


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Setup logging for the CLI.

    Calling it again replaces the handlers installed by the previous call,
    so a long-running host can reconfigure verbosity without duplicate lines.

    Args:
        verbose: Enable debug logging, including every armed rotation
        log_file: Optional log file path (always written at debug level)
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_vaultpool", False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler._vaultpool = True
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler._vaultpool = True
        root_logger.addHandler(file_handler)

    root_logger.setLevel(logging.DEBUG if log_file else level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
