"""
Layered settings extraction.

``extract`` builds one configuration group from four layers, lowest
precedence first:

1. the group's compiled-in defaults
2. the TOML file (``[default]`` table, then the selected profile table)
3. environment variables under a prefix
4. an override structure, usually the parsed command line

Each layer is merged into the previous ones field by field.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from errors import ErrorCode, ExtractionError
from settings.environment import RuntimeEnvironment
from settings.sources import deep_merge, override_to_dict, read_env, read_toml_profile

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def default_instance(dest: Type[T]) -> T:
    """
    Build the compiled-in default instance of a configuration group.

    Groups whose defaults cannot all be declared on the fields (for example
    validated directories) provide a ``default()`` classmethod.
    """
    factory = getattr(dest, "default", None)
    if callable(factory):
        return factory()
    return dest()


def merge_sources(
    profile: Optional[RuntimeEnvironment] = None,
    file_path: Optional[Union[str, Path]] = None,
    env_prefix: Optional[str] = None,
    override: Any = None,
) -> Dict[str, Any]:
    """Merge the file, environment and override layers into one document."""
    document: Dict[str, Any] = {}

    if file_path is not None:
        document = deep_merge(document, read_toml_profile(file_path, profile))

    if env_prefix:
        document = deep_merge(document, read_env(env_prefix))

    if override is not None:
        document = deep_merge(document, override_to_dict(override))

    return document


def extract(
    dest: Type[T],
    profile: Optional[RuntimeEnvironment] = None,
    file_path: Optional[Union[str, Path]] = None,
    env_prefix: Optional[str] = None,
    override: Any = None,
) -> T:
    """
    Extract a configuration group from all of its sources.

    If validation fails only because required fields are missing, the full
    default instance is merged underneath the document and validation is
    retried once. Wrong types or malformed values are never papered over.

    Args:
        dest: The pydantic model to extract
        profile: Selects the profile table of the TOML file
        file_path: TOML file; a missing file contributes nothing
        env_prefix: Prefix of the environment variables to merge
        override: Structure whose present fields win over everything else

    Returns:
        A validated instance of ``dest``

    Raises:
        ExtractionError: If a source cannot be parsed or the merged document
            does not fit ``dest``
    """
    group = dest.__name__
    document = merge_sources(profile, file_path, env_prefix, override)

    try:
        return dest.model_validate(document)
    except ValidationError as e:
        if not _only_missing_fields(e):
            raise _extraction_failed(group, e)
        missing = [".".join(str(loc) for loc in error["loc"]) for error in e.errors()]
        logger.warning(
            f"Failed to extract {group} due to missing fields ({', '.join(missing)}). "
            "Trying to join with default settings..."
        )

    try:
        defaults = default_instance(dest).model_dump(mode="json")
    except (ValidationError, ExtractionError) as e:
        raise _extraction_failed(group, e)

    try:
        return dest.model_validate(deep_merge(defaults, document))
    except ValidationError as e:
        raise _extraction_failed(group, e)


def _only_missing_fields(error: ValidationError) -> bool:
    errors = error.errors()
    return bool(errors) and all(item["type"] == "missing" for item in errors)


def _extraction_failed(group: str, cause: Exception) -> ExtractionError:
    details: Dict[str, Any] = {"group": group}
    if isinstance(cause, ValidationError):
        details["errors"] = cause.errors(include_url=False)
    error = ExtractionError(
        f"Failed to extract settings for {group}: {cause}",
        ErrorCode.CONFIG_VALIDATION_ERROR,
        details
    )
    error.__cause__ = cause
    return error
