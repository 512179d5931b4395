"""
Main entry point of the backend.

Parses the command line, resolves the configuration directory, imports and
installs all settings groups, and initializes logging. Serving requests is
left to the HTTP layer, which reads its settings through the slots in
``backend.settings``.
"""
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from backend import logger as backend_logger
from backend import settings
from errors import ErrorCode, InitImportConfigError, error_context, handle_error
from settings import get, resolve_configs_dir


def boot(argv: Optional[Sequence[str]] = None) -> settings.AppConfig:
    """
    Resolve and install all settings, then set up logging.

    Args:
        argv: Command line arguments, ``sys.argv[1:]`` by default

    Returns:
        The resolved settings
    """
    # Variables already set in the environment win over the .env file
    load_dotenv()

    cli_args = settings.parse_cli_args(argv)
    env_prefix = (cli_args.env_prefix or settings.DEFAULT_ENV_PREFIX).upper()

    with error_context(
        component_name="Settings",
        operation="startup import",
        error_class=InitImportConfigError,
        error_code=ErrorCode.INITIALIZATION_FAILED,
    ):
        configs_dir = resolve_configs_dir(
            settings.DEFAULT_CONFIGS_DIR,
            f"{env_prefix}_CONFIGS_DIR",
            cli_args.configs_dir,
        )
        app_config = settings.setup(configs_dir, env_prefix, cli_args)

    general = get(settings.GENERAL)
    backend_logger.init(general.app_name, get(settings.LOGGER))

    server = get(settings.SERVER)
    logging.getLogger("backend").info(
        f"Starting {general.app_name} ({general.run_env}) on {server.addr}:{server.port}"
    )
    return app_config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the application."""
    try:
        boot(argv)
    except Exception as e:
        print(handle_error(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
