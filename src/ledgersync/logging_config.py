"""
Logging configuration for ledgersync.
"""

import logging
from logging.handlers import RotatingFileHandler


def setup_logging(
    log_file: str = "ledgersync.log", level: int = logging.INFO
) -> logging.Logger:
    """
    Configure logging with console and file handlers.

    ## Parameters
    - `log_file`: Path of the rotating warning/error log
    - `level`: Console level (INFO by default)

    ## Returns
    - Configured logger instance
    """
    log_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(log_formatter)

    # Only WARNING and ERROR reach the file, rotated to bound disk usage
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB per file
        backupCount=5,
    )
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(log_formatter)

    logging.basicConfig(
        level=level,
        handlers=[console_handler, file_handler],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger("ledgersync")
