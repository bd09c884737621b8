"""
Process-wide logging: console output plus size-rotated files under ``log_dir``
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ERROR_LOG_FILE = "errors.log"
ERROR_LOG_MEGABYTES = 5
ERROR_LOG_BACKUPS = 3

# Library loggers held above the application level
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def _rotating_handler(path: Path, level: int, megabytes: int, backups: int,
                      formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=megabytes * 1024 * 1024,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO",
    log_dir: Union[str, Path] = "logs",
    file_name: str = "print-analytics.log",
    max_megabytes: int = 10,
    backup_count: int = 5,
) -> Path:
    """
    Route every logger through the root logger

    Records below ``level`` are dropped everywhere; a second file keeps
    errors only.

    Returns:
        Path of the main log file
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    app_level = logging.getLevelName(level.upper())
    if not isinstance(app_level, int):
        app_level = logging.INFO

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(app_level)
    console_handler.setFormatter(formatter)

    main_file = log_dir / file_name
    handlers = [
        console_handler,
        _rotating_handler(main_file, logging.DEBUG, max_megabytes, backup_count, formatter),
        _rotating_handler(log_dir / ERROR_LOG_FILE, logging.ERROR,
                          ERROR_LOG_MEGABYTES, ERROR_LOG_BACKUPS, formatter),
    ]

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(app_level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, app_level))

    logging.getLogger(__name__).info(f"Logging to {main_file} at {logging.getLevelName(app_level)}")
    return main_file
