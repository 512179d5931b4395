"""
Layered settings resolution.

This package resolves strongly typed configuration groups from compiled-in
defaults, profile-scoped TOML files, environment variables and command line
overrides, and stores them in write-once slots for the rest of the process.

Usage:
    from settings import extract, resolve_configs_dir, RuntimeEnvironment

    configs_dir = resolve_configs_dir("./configs/backend/", "BACKEND_CONFIGS_DIR", args.configs_dir)
    server = extract(
        ServerConfigs,
        profile=RuntimeEnvironment.PRODUCTION,
        file_path=configs_dir / "server.toml",
        env_prefix="BACKEND_SERVER_",
        override=cli_args.server,
    )
"""

from settings.environment import RuntimeEnvironment
from settings.extractor import default_instance, extract
from settings.registry import SettingsSlot, get, init_once
from settings.sources import resolve_configs_dir
from settings.validators import DirectoryPath

__all__ = [
    "DirectoryPath",
    "RuntimeEnvironment",
    "SettingsSlot",
    "default_instance",
    "extract",
    "get",
    "init_once",
    "resolve_configs_dir",
]
