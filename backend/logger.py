"""
Logger initialization from the resolved logger settings.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List

from backend.settings import LoggerConfigs
from utils.error_logging import attach_error_log_file

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def init(app_name: str, logger_settings: LoggerConfigs) -> List[logging.Handler]:
    """
    Configure the root logger.

    Args:
        app_name: Name of the application, used in the log file name
        logger_settings: The resolved logger settings

    Returns:
        The handlers installed on the root logger
    """
    root = logging.getLogger()
    root.setLevel(LEVELS[logger_settings.log_level])

    # Remove any existing handlers
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: List[logging.Handler] = []

    if logger_settings.is_stdout_emitted:
        # Use stderr for logs to keep stdout clean
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        handlers.append(stream_handler)

    files = logger_settings.files_emitted
    if files.is_emitted and files.dir is not None:
        file_handler = RotatingFileHandler(
            files.dir / f"{files.files_prefix}.{app_name}.log",
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
        attach_error_log_file(files.dir)

    for handler in handlers:
        root.addHandler(handler)

    return handlers
