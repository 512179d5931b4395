"""
Custom exception hierarchy for the gallery settings system.

This module defines standardized error codes, messages, and categorization
for the errors that can occur while resolving configuration at startup.
"""
from contextlib import contextmanager
from enum import Enum
import logging
from typing import Optional, Dict, Any, Type
import uuid

from utils.error_logging import system_error_logger


class ErrorCode(Enum):
    """
    Enumeration of error codes for standardized error handling.

    Error codes are grouped by category for easier identification:
    - 1xx: Configuration errors
    - 3xx: File system errors
    - 4xx: Settings registry errors
    - 9xx: Uncategorized/system errors
    """
    # Configuration errors (1xx)
    CONFIG_NOT_FOUND = 101
    INVALID_CONFIG = 102
    MISSING_ENV_VAR = 103
    CONFIG_PARSE_ERROR = 104
    CONFIG_VALIDATION_ERROR = 105
    INVALID_PROFILE = 106

    # File system errors (3xx)
    DIRECTORY_NOT_FOUND = 308
    NOT_A_DIRECTORY = 309

    # Settings registry errors (4xx)
    SETTINGS_NOT_INITIALIZED = 401
    SETTINGS_ALREADY_INITIALIZED = 402

    # Uncategorized/system errors (9xx)
    UNKNOWN_ERROR = 901
    INITIALIZATION_FAILED = 906


class GalleryError(Exception):
    """
    Base exception class for all gallery errors.

    All other custom exceptions inherit from this class, allowing for
    standardized error handling throughout the system.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize a new GalleryError.

        Args:
            message: Human-readable error message
            code: Error code from the ErrorCode enum
            details: Additional error details for debugging or logging
        """
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


class ConfigError(GalleryError):
    """Exception raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_CONFIG,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


class ConfigsDirError(ConfigError):
    """
    Raised when the configuration directory cannot be resolved.

    ``details["source"]`` names where the bad path came from: the command
    line, the environment variable or the default value.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DIRECTORY_NOT_FOUND,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)

    @property
    def source(self) -> Optional[str]:
        return self.details.get("source")


class DirectoryPathError(ConfigError, ValueError):
    """
    Raised when a directory-typed value fails validation.

    Also a ValueError so pydantic reports it as a regular validation error
    when it is raised from inside a model field.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DIRECTORY_NOT_FOUND,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


class ExtractionError(ConfigError):
    """Exception raised when a configuration group cannot be extracted."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


class SettingsNotInitializedError(GalleryError):
    """Raised when a settings slot is read before it was initialized."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SETTINGS_NOT_INITIALIZED,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


class SettingsAlreadyInitializedError(GalleryError):
    """Raised when a settings slot is initialized a second time."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SETTINGS_ALREADY_INITIALIZED,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


class InitImportConfigError(GalleryError):
    """Raised when one configuration group fails during startup import."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INITIALIZATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


@contextmanager
def error_context(
    component_name: str,
    operation: Optional[str] = None,
    error_class: Type[GalleryError] = GalleryError,
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
    logger: Optional[logging.Logger] = None
):
    """
    Context manager for standardized error handling across the system.

    Provides consistent error handling, logging, and error wrapping
    for any component operation. Use with a 'with' statement to wrap code
    that may raise exceptions.

    Args:
        component_name: Name of the component (for error messages)
        operation: Description of the operation (for error messages)
        error_class: The GalleryError subclass to use for wrapping
        error_code: Error code to use for non-GalleryError exceptions
        logger: Logger to use (if None, creates a new one)

    Yields:
        Control to the wrapped code block

    Raises:
        GalleryError: With appropriate error information
    """
    if logger is None:
        logger = logging.getLogger(f"error.{component_name}")

    try:
        yield
    except GalleryError as e:
        error_id = str(uuid.uuid4())
        system_error_logger.error(f"[{error_id}] {component_name} - {e}")
        raise
    except Exception as e:
        error_id = str(uuid.uuid4())

        error_msg = f"Error in {component_name}"
        if operation:
            error_msg += f" during {operation}"

        # Redact potentially sensitive information
        error_string = str(e)
        if any(sensitive in error_string.lower() for sensitive in ["token", "password", "secret"]):
            error_string = "[REDACTED SENSITIVE INFORMATION]"

        logger.debug(f"[{error_id}] {error_msg}", exc_info=True)
        system_error_logger.error(f"[{error_id}] {error_msg}: {error_string}")

        raise error_class(
            f"{error_msg}: {error_string}",
            error_code,
            {"original_error": error_string, "error_id": error_id}
        ) from e


def handle_error(error: Exception) -> str:
    """
    Utility function for standardized error handling.

    Converts exceptions to operator-friendly error messages and logs them.

    Args:
        error: The exception to handle

    Returns:
        A user-friendly error message
    """
    logger = logging.getLogger("errors")
    if isinstance(error, GalleryError):
        logger.error(f"ERROR [{error.code.name}]: {error.message}")
        cause = error.__cause__
        if cause is not None:
            return f"Error: {error.message} (caused by: {cause})"
        return f"Error: {error.message}"

    logger.error(f"UNEXPECTED ERROR: {error}")
    return f"An unexpected error occurred: {error}"
