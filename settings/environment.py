"""
Runtime environment (profile) selection.

The runtime environment picks which table of a TOML configuration file is
merged during extraction. Parsing is lenient by default: any value that is not
recognized as production falls back to development.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from errors import ConfigError, ErrorCode

logger = logging.getLogger(__name__)

_PRODUCTION_ALIASES = ("production", "prod")
_DEVELOPMENT_ALIASES = ("development", "dev")


class RuntimeEnvironment(str, Enum):
    """The two deployment profiles a process can run under."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def default(cls) -> "RuntimeEnvironment":
        return cls.DEVELOPMENT

    @classmethod
    def from_str(cls, value: str, strict: bool = False) -> "RuntimeEnvironment":
        """
        Parse a runtime environment name.

        Lenient profile parsing: "production" and "prod" (any case) select
        production, everything else selects development. With ``strict``
        enabled an unrecognized value raises instead.

        Args:
            value: The name to parse
            strict: Reject values that are neither a production nor a
                development alias

        Returns:
            The parsed runtime environment

        Raises:
            ConfigError: If ``strict`` is set and the value is unrecognized
        """
        normalized = str(value).strip().lower()
        if normalized in _PRODUCTION_ALIASES:
            return cls.PRODUCTION
        if normalized in _DEVELOPMENT_ALIASES:
            return cls.DEVELOPMENT

        if strict:
            raise ConfigError(
                f"Unknown runtime environment: {value!r}",
                ErrorCode.INVALID_PROFILE,
                {"value": value}
            )
        logger.warning(f"Unknown runtime environment {value!r}, falling back to development")
        return cls.DEVELOPMENT

    def __str__(self) -> str:
        return self.value

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def _coerce(cls, value: Any) -> "RuntimeEnvironment":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_str(value)
        raise ValueError(f"runtime environment must be a string, got {type(value).__name__}")
