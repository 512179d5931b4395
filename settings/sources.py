"""
Configuration sources.

Locates the configuration directory and turns each configuration source
(TOML file, environment variables, override structure) into a plain nested
dictionary that the extractor can merge.
"""

import argparse
import json
import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from errors import ConfigsDirError, ErrorCode, ExtractionError
from settings.environment import RuntimeEnvironment

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
NESTED_ENV_DELIMITER = "__"

SOURCE_COMMAND_LINE = "command line"
SOURCE_ENVIRONMENT = "environment variable"
SOURCE_DEFAULT = "default value"


def resolve_configs_dir(
    default_path: Union[str, Path],
    env_key: str,
    cli_override: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Get the path to the configuration files.

    The command line argument wins over the environment variable, which wins
    over the default path.

    Args:
        default_path: Fallback path to the configuration files
        env_key: Name of the environment variable holding the path
        cli_override: Path given on the command line, if any

    Returns:
        The resolved configuration directory

    Raises:
        ConfigsDirError: If the chosen path does not exist or is not a directory
    """
    if cli_override is not None:
        source, raw_path = SOURCE_COMMAND_LINE, cli_override
    elif os.environ.get(env_key) is not None:
        source, raw_path = SOURCE_ENVIRONMENT, os.environ[env_key]
    else:
        source, raw_path = SOURCE_DEFAULT, default_path

    details = {"source": source, "path": str(raw_path), "env_key": env_key}

    # Checked before Path(), which turns "" into the working directory
    if not str(raw_path).strip():
        raise ConfigsDirError(
            f"The path chosen with the {source} is empty",
            ErrorCode.DIRECTORY_NOT_FOUND,
            details
        )

    configs_dir = Path(raw_path)
    if not configs_dir.exists():
        raise ConfigsDirError(
            f"The directory chosen with the {source} does not exist: {configs_dir}",
            ErrorCode.DIRECTORY_NOT_FOUND,
            details
        )
    if not configs_dir.is_dir():
        raise ConfigsDirError(
            f"The path chosen with the {source} is not a directory: {configs_dir}",
            ErrorCode.NOT_A_DIRECTORY,
            details
        )

    logger.debug(f"Using configs directory {configs_dir} (from {source})")
    return configs_dir


def deep_merge(base: Dict[str, Any], overlay: Mapping) -> Dict[str, Any]:
    """
    Merge ``overlay`` into a copy of ``base`` field by field.

    Nested mappings are merged recursively; any other value in ``overlay``
    replaces the one in ``base``.
    """
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        elif isinstance(value, Mapping):
            merged[key] = deep_merge({}, value)
        else:
            merged[key] = value
    return merged


def read_toml_profile(
    file_path: Union[str, Path],
    profile: Optional[RuntimeEnvironment] = None,
) -> Dict[str, Any]:
    """
    Read the tables of a TOML file that apply to ``profile``.

    The ``[default]`` table is merged first, then the table named after the
    profile. Top-level keys outside those tables are ignored. A missing file
    contributes nothing.

    Raises:
        ExtractionError: If the file exists but cannot be read or parsed
    """
    path = Path(file_path)
    if not path.exists():
        logger.debug(f"Settings file {path} does not exist, skipping it")
        return {}

    try:
        with open(path, "rb") as f:
            document = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ExtractionError(
            f"Invalid TOML in settings file {path}: {e}",
            ErrorCode.CONFIG_PARSE_ERROR,
            {"file": str(path)}
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"Error reading settings file {path}: {e}",
            ErrorCode.CONFIG_PARSE_ERROR,
            {"file": str(path)}
        ) from e

    data: Dict[str, Any] = {}
    for table_name in _profile_tables(profile):
        table = document.get(table_name)
        if table is None:
            continue
        if not isinstance(table, dict):
            raise ExtractionError(
                f"Expected [{table_name}] to be a table in settings file {path}",
                ErrorCode.CONFIG_PARSE_ERROR,
                {"file": str(path), "table": table_name}
            )
        data = deep_merge(data, table)
    return data


def _profile_tables(profile: Optional[RuntimeEnvironment]):
    yield DEFAULT_PROFILE
    if profile is not None and str(profile) != DEFAULT_PROFILE:
        yield str(profile)


def read_env(prefix: str, environ: Optional[Mapping] = None) -> Dict[str, Any]:
    """
    Collect environment variables that start with ``prefix``.

    The prefix match is case-insensitive. The prefix is stripped, the rest
    is lower-cased and split on ``__`` into nested keys.

    Examples:
        BACKEND_SERVER_PORT=7000          -> {"port": "7000"}
        BACKEND_LOGGER_FILES_EMITTED__DIR -> {"files_emitted": {"dir": ...}}

    Values are kept as strings for pydantic to coerce, except JSON arrays
    and objects which are decoded.
    """
    environ = os.environ if environ is None else environ
    upper_prefix = prefix.upper()
    data: Dict[str, Any] = {}

    for name, value in environ.items():
        if not name.upper().startswith(upper_prefix):
            continue
        key = name[len(prefix):].lower()
        if not key:
            continue
        parts = [part for part in key.split(NESTED_ENV_DELIMITER) if part]
        if not parts:
            continue

        node = data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = _parse_env_value(value)

    return data


def _parse_env_value(value: str) -> Any:
    stripped = value.strip()
    if stripped[:1] in ("[", "{"):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            # Use as string if not valid JSON
            return value
    return value


def override_to_dict(override: Any) -> Dict[str, Any]:
    """
    Turn an override structure into a dictionary of its present fields.

    Accepts a pydantic model (unset fields are dropped), an
    ``argparse.Namespace`` or a mapping. ``None`` values are dropped
    everywhere so they never clobber a lower layer.
    """
    if isinstance(override, BaseModel):
        data = override.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    elif isinstance(override, argparse.Namespace):
        data = vars(override)
    elif isinstance(override, Mapping):
        data = override
    else:
        raise TypeError(
            f"Unsupported override type {type(override).__name__}; "
            "expected a pydantic model, argparse.Namespace or mapping"
        )
    return _drop_none(data)


def _drop_none(data: Mapping) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, BaseModel):
            value = override_to_dict(value)
        elif isinstance(value, Mapping):
            value = _drop_none(value)
        cleaned[key] = value
    return cleaned
