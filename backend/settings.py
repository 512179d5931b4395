"""
Backend settings.

Declares the backend configuration groups and the command line flags that
override them, and imports every group at startup in dependency order:
general first, since its runtime environment selects the profile used by
the other groups.
"""

import argparse
import logging
from ipaddress import IPv4Address
from pathlib import Path
from typing import Literal, NamedTuple, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from errors import ConfigError, InitImportConfigError
from settings import DirectoryPath, RuntimeEnvironment, SettingsSlot, extract

logger = logging.getLogger(__name__)

DEFAULT_CONFIGS_DIR = "./configs/backend/"
DEFAULT_ENV_PREFIX = "BACKEND"
DEFAULT_LOGS_DIR = "./logs"

LogLevel = Literal["trace", "debug", "info", "warn", "error"]

G = TypeVar("G", bound=BaseModel)


class GeneralConfigs(BaseModel):
    """General application settings."""

    model_config = ConfigDict(frozen=True)

    app_name: str = Field(
        default="backend",
        description="Application name shown in logs"
    )
    about: str = Field(
        default="Photo gallery backend",
        description="Short description of the application"
    )
    run_env: RuntimeEnvironment = Field(
        default=RuntimeEnvironment.DEVELOPMENT,
        description="Runtime environment, selects the profile of the other settings files"
    )


class ServerConfigs(BaseModel):
    """HTTP server settings."""

    model_config = ConfigDict(frozen=True)

    addr: IPv4Address = Field(
        default=IPv4Address("127.0.0.1"),
        description="Listen address"
    )
    port: int = Field(
        default=5555,
        ge=1024,
        le=65535,
        description="Listen port"
    )
    static_dir: DirectoryPath = Field(
        description="Directory with the static files"
    )
    assets_dir: DirectoryPath = Field(
        description="Directory with the assets files"
    )

    @classmethod
    def default(cls) -> "ServerConfigs":
        return cls(
            static_dir=DirectoryPath.from_default("./build/static", "server.static_dir"),
            assets_dir=DirectoryPath.from_default("./assets", "server.assets_dir"),
        )


class LoggerFilesEmittedSubconfig(BaseModel):
    """Settings for writing logs to rotating files."""

    model_config = ConfigDict(frozen=True)

    is_emitted: bool = Field(
        default=False,
        description="Whether logs are written to files"
    )
    dir: Optional[DirectoryPath] = Field(
        default=None,
        validate_default=True,
        description=f"Directory for the log files, {DEFAULT_LOGS_DIR} when is_emitted is set"
    )
    files_prefix: str = Field(
        default="backend.dev",
        description="Prefix of the log file names"
    )

    @field_validator("dir", mode="after")
    @classmethod
    def _default_dir_when_emitted(cls, value, info: ValidationInfo):
        # is_emitted is declared first, so it is already validated here
        if value is None and info.data.get("is_emitted"):
            return DirectoryPath.from_default(DEFAULT_LOGS_DIR, "logger.files_emitted.dir")
        return value


class LoggerConfigs(BaseModel):
    """Logging settings."""

    model_config = ConfigDict(frozen=True)

    log_level: LogLevel = Field(
        default="debug",
        description="Minimum log level (trace, debug, info, warn, error)"
    )
    is_stdout_emitted: bool = Field(
        default=True,
        description="Whether logs are written to stderr"
    )
    files_emitted: LoggerFilesEmittedSubconfig = Field(
        default_factory=LoggerFilesEmittedSubconfig,
        description="File output settings"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _lowercase_level(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class DatabaseConfigs(BaseModel):
    """Database connection settings."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(
        default="postgres://localhost:5432/gallery",
        description="Database connection URL"
    )
    max_connections: int = Field(
        default=5,
        ge=1,
        description="Maximum size of the connection pool"
    )
    connect_timeout: int = Field(
        default=30,
        ge=1,
        description="Connection timeout in seconds"
    )


class AppConfig(BaseModel):
    """All backend settings, resolved once at startup."""

    model_config = ConfigDict(frozen=True)

    general: GeneralConfigs
    server: ServerConfigs
    logger: LoggerConfigs
    database: DatabaseConfigs


class SettingsSlots(NamedTuple):
    general: SettingsSlot[GeneralConfigs]
    server: SettingsSlot[ServerConfigs]
    logger: SettingsSlot[LoggerConfigs]
    database: SettingsSlot[DatabaseConfigs]


def new_slots() -> SettingsSlots:
    return SettingsSlots(
        general=SettingsSlot("GENERAL", GeneralConfigs),
        server=SettingsSlot("SERVER", ServerConfigs),
        logger=SettingsSlot("LOGGER", LoggerConfigs),
        database=SettingsSlot("DATABASE", DatabaseConfigs),
    )


SLOTS = new_slots()
GENERAL = SLOTS.general
SERVER = SLOTS.server
LOGGER = SLOTS.logger
DATABASE = SLOTS.database


# Command line overrides. Every flag defaults to None so that only the flags
# the user actually passed end up in the override layer.

class CliArgsGeneral(BaseModel):
    run_env: Optional[str] = None


class CliArgsServer(BaseModel):
    addr: Optional[IPv4Address] = None
    port: Optional[int] = None
    static_dir: Optional[str] = None
    assets_dir: Optional[str] = None


class CliArgsLogger(BaseModel):
    log_level: Optional[str] = None


class CliArgsDatabase(BaseModel):
    url: Optional[str] = None


class CliArgs(BaseModel):
    configs_dir: Optional[str] = None
    env_prefix: Optional[str] = None
    general: CliArgsGeneral = Field(default_factory=CliArgsGeneral)
    server: CliArgsServer = Field(default_factory=CliArgsServer)
    logger: CliArgsLogger = Field(default_factory=CliArgsLogger)
    database: CliArgsDatabase = Field(default_factory=CliArgsDatabase)


def _port(value: str) -> int:
    port = int(value)
    if not 1024 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be in 1024..65535, got {port}")
    return port


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the backend command line parser."""
    parser = argparse.ArgumentParser(description='Photo gallery backend')
    parser.add_argument(
        '--configs-dir',
        type=str,
        help=f'Directory with the configuration files (env: <PREFIX>_CONFIGS_DIR, default: {DEFAULT_CONFIGS_DIR})'
    )
    parser.add_argument(
        '--env-prefix',
        type=str,
        help=f'Prefix of the environment variables to import settings (default: {DEFAULT_ENV_PREFIX})'
    )
    parser.add_argument(
        '--run-env', '-e',
        choices=['development', 'production'],
        help='Set the runtime environment'
    )
    parser.add_argument('--addr', '-a', type=IPv4Address, help='Set the listen address')
    parser.add_argument('--port', '-p', type=_port, help='Set the listen port')
    parser.add_argument('--static-dir', '-s', type=str, help='Set the static files directory')
    parser.add_argument('--assets-dir', type=str, help='Set the assets files directory')
    parser.add_argument(
        '--log-level', '-l',
        choices=['trace', 'debug', 'info', 'warn', 'error'],
        help='Set the log level'
    )
    parser.add_argument('--database-url', type=str, help='Set the database connection URL')
    return parser


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> CliArgs:
    """
    Parse the command line into override structures, one per settings group.

    Args:
        argv: Arguments to parse, ``sys.argv[1:]`` by default

    Returns:
        The parsed overrides
    """
    args = build_arg_parser().parse_args(argv)
    return CliArgs(
        configs_dir=args.configs_dir,
        env_prefix=args.env_prefix,
        general=CliArgsGeneral(run_env=args.run_env),
        server=CliArgsServer(
            addr=args.addr,
            port=args.port,
            static_dir=args.static_dir,
            assets_dir=args.assets_dir,
        ),
        logger=CliArgsLogger(log_level=args.log_level),
        database=CliArgsDatabase(url=args.database_url),
    )


def _import_group(
    name: str,
    dest: Type[G],
    configs_dir: Path,
    file_name: str,
    env_prefix: str,
    override: BaseModel,
    profile: Optional[RuntimeEnvironment] = None,
) -> G:
    try:
        configs = extract(
            dest,
            profile=profile,
            file_path=configs_dir / file_name,
            env_prefix=f"{env_prefix}_{name}_",
            override=override,
        )
    except ConfigError as e:
        raise InitImportConfigError(
            f"Failed to import the configs of {name}.",
            details={"group": name, "cause": str(e)}
        ) from e

    logger.debug(f"Imported {name} settings")
    return configs


def load(
    configs_dir: Path,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_args: Optional[CliArgs] = None,
) -> AppConfig:
    """
    Import every backend settings group.

    The files ``general.toml``, ``server.toml``, ``logger.toml`` and
    ``database.toml`` are read from ``configs_dir``; environment variables
    are read under ``<env_prefix>_<GROUP>_``.

    Raises:
        InitImportConfigError: Naming the group that failed
    """
    cli_args = cli_args or CliArgs()
    configs_dir = Path(configs_dir)
    env_prefix = env_prefix.upper()

    general = _import_group(
        "GENERAL", GeneralConfigs, configs_dir, "general.toml", env_prefix, cli_args.general
    )
    run_env = general.run_env
    logger.debug(f"Runtime environment: {run_env}")

    server = _import_group(
        "SERVER", ServerConfigs, configs_dir, "server.toml", env_prefix, cli_args.server, run_env
    )
    logger_configs = _import_group(
        "LOGGER", LoggerConfigs, configs_dir, "logger.toml", env_prefix, cli_args.logger, run_env
    )
    database = _import_group(
        "DATABASE", DatabaseConfigs, configs_dir, "database.toml", env_prefix, cli_args.database, run_env
    )

    return AppConfig(general=general, server=server, logger=logger_configs, database=database)


def install(app_config: AppConfig, slots: Optional[SettingsSlots] = None) -> None:
    """Write each group of ``app_config`` into its slot, the process-wide ones by default."""
    slots = slots or SLOTS
    slots.general.init_once(app_config.general)
    slots.server.init_once(app_config.server)
    slots.logger.init_once(app_config.logger)
    slots.database.init_once(app_config.database)


def setup(
    configs_dir: Path,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_args: Optional[CliArgs] = None,
    slots: Optional[SettingsSlots] = None,
) -> AppConfig:
    """
    Import all settings and install them into the process-wide slots.

    Returns:
        The aggregate of all groups, for callers that prefer passing it around
    """
    app_config = load(configs_dir, env_prefix, cli_args)
    install(app_config, slots)
    return app_config
