"""
Error logging configuration for the dedicated system error log.

The ``errors.system`` logger always exists; a rotating file handler is only
attached once the logger settings tell us where log files belong.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union


ERROR_LOG_NAME = "system_errors.log"


def setup_error_logger() -> logging.Logger:
    """
    Set up the logger used for core system errors.

    Returns:
        The ``errors.system`` logger
    """
    system_logger = logging.getLogger('errors.system')
    system_logger.setLevel(logging.ERROR)
    return system_logger


def attach_error_log_file(directory: Union[str, Path]) -> RotatingFileHandler:
    """
    Persist system errors to a rotating file inside ``directory``.

    Args:
        directory: Existing directory for the error log

    Returns:
        The handler writing to the error log, reused if already attached
    """
    log_path = os.path.abspath(Path(directory) / ERROR_LOG_NAME)
    for existing in system_error_logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == log_path:
            return existing

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler = RotatingFileHandler(
        log_path,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5
    )
    handler.setFormatter(detailed_formatter)
    system_error_logger.addHandler(handler)
    return handler


system_error_logger = setup_error_logger()
