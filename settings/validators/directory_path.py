"""
Directory path validator.

``DirectoryPath`` is a path that is known to exist and to be a directory. It
can be used as a pydantic field type: user-supplied values are validated with
``try_from`` and fail extraction when invalid. Only compiled-in defaults go
through ``from_default``, which may ask the developer for a replacement path
on an interactive terminal.
"""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from errors import DirectoryPathError, ErrorCode

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

PROMPT_MESSAGE = "Please insert a new directory path: "


class DirectoryPath(os.PathLike):
    """A path that exists and is a directory."""

    __slots__ = ("_path",)

    def __init__(self, path: PathLike):
        """Prefer ``try_from``; the constructor validates the same way."""
        self._path = self._validate(path)

    @staticmethod
    def _validate(raw_path: PathLike) -> Path:
        # Path("") is Path("."), so an empty value would silently become the cwd
        if not str(os.fspath(raw_path)).strip():
            raise DirectoryPathError(
                "The path is empty",
                ErrorCode.DIRECTORY_NOT_FOUND,
                {"path": str(os.fspath(raw_path))}
            )
        path = Path(raw_path)
        if not path.exists():
            raise DirectoryPathError(
                f"The path does not exist: {path}",
                ErrorCode.DIRECTORY_NOT_FOUND,
                {"path": str(path)}
            )
        if not path.is_dir():
            raise DirectoryPathError(
                f"The path is not a directory: {path}",
                ErrorCode.NOT_A_DIRECTORY,
                {"path": str(path)}
            )
        return path

    @classmethod
    def try_from(cls, path: Union[PathLike, "DirectoryPath"]) -> "DirectoryPath":
        """
        Validate ``path`` without creating anything.

        Raises:
            DirectoryPathError: DIRECTORY_NOT_FOUND or NOT_A_DIRECTORY
        """
        if isinstance(path, cls):
            return path
        return cls(path)

    @classmethod
    def prompt(
        cls,
        input_func: Optional[Callable[[str], str]] = None,
        message: str = PROMPT_MESSAGE,
    ) -> "DirectoryPath":
        """
        Ask for a directory path until a valid one is entered.

        Developer default recovery only: never call this for user-supplied
        configuration values.

        Args:
            input_func: Reads one line given a prompt, ``input`` by default
            message: Prompt shown for every attempt

        Returns:
            The first valid directory entered

        Raises:
            SystemExit: If the input stream cannot be read
        """
        read = input_func or input
        while True:
            try:
                answer = read(message)
            except (EOFError, OSError) as e:
                logger.critical(f"Failed to get the directory path from the user: {e!r}")
                raise SystemExit(f"Failed to get the directory path from the user: {e!r}") from e

            try:
                return cls.try_from(answer.strip())
            except DirectoryPathError as e:
                logger.warning(f"The inserted directory path is not valid. {e.message}")

    @classmethod
    def from_default(
        cls,
        path: PathLike,
        field_name: Optional[str] = None,
        input_func: Optional[Callable[[str], str]] = None,
    ) -> "DirectoryPath":
        """
        Validate a compiled-in default, prompting for a replacement if it is invalid.

        Args:
            path: The default literal
            field_name: Dotted field name, used in the log message
            input_func: Forwarded to ``prompt``
        """
        try:
            return cls.try_from(path)
        except DirectoryPathError as e:
            logger.warning(
                f"Failed to parse the default value for {field_name or 'a directory setting'}. "
                f"Error: {e.message}"
            )
            return cls.prompt(input_func=input_func)

    @property
    def path(self) -> Path:
        return self._path

    def __fspath__(self) -> str:
        return os.fspath(self._path)

    def __str__(self) -> str:
        return str(self._path)

    def __repr__(self) -> str:
        return f"DirectoryPath({str(self._path)!r})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, DirectoryPath):
            return self._path == other._path
        if isinstance(other, (str, Path)):
            return self._path == Path(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._path)

    def __truediv__(self, other: PathLike) -> Path:
        return self._path / other

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def _coerce(cls, value: Any) -> "DirectoryPath":
        if isinstance(value, (str, os.PathLike)):
            return cls.try_from(value)
        raise ValueError(f"directory path must be a string, got {type(value).__name__}")
