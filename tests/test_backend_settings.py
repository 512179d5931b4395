"""
Tests for the backend settings groups and their startup import.
"""
from ipaddress import IPv4Address
from unittest import mock

import pytest
from pydantic import ValidationError

from backend import settings
from errors import ErrorCode, InitImportConfigError, SettingsAlreadyInitializedError
from settings import DirectoryPath, RuntimeEnvironment, get

ENV_PREFIX = "GALLERYTEST"


@pytest.fixture
def backend_configs(configs_dir, write_toml, web_dirs):
    """A configuration directory with server paths and a profiled port."""
    static_dir, assets_dir = web_dirs
    write_toml(configs_dir / "server.toml", f"""
        [default]
        static_dir = "{static_dir}"
        assets_dir = "{assets_dir}"

        [development]
        port = 6000

        [production]
        addr = "0.0.0.0"
        port = 8080
    """)
    return configs_dir


def test_load_defaults_with_server_paths(backend_configs, clean_env, web_dirs):
    app_config = settings.load(backend_configs, ENV_PREFIX)

    assert app_config.general == settings.GeneralConfigs()
    assert app_config.general.run_env is RuntimeEnvironment.DEVELOPMENT
    assert app_config.server.addr == IPv4Address("127.0.0.1")
    assert app_config.server.port == 6000
    assert app_config.server.static_dir == web_dirs[0]
    assert app_config.logger == settings.LoggerConfigs()
    assert app_config.database == settings.DatabaseConfigs()


def test_general_run_env_selects_profile_of_other_groups(backend_configs, write_toml, clean_env):
    write_toml(backend_configs / "general.toml", """
        [default]
        app_name = "gallery"
        run_env = "prod"
    """)

    app_config = settings.load(backend_configs, ENV_PREFIX)

    assert app_config.general.app_name == "gallery"
    assert app_config.general.run_env is RuntimeEnvironment.PRODUCTION
    assert app_config.server.addr == IPv4Address("0.0.0.0")
    assert app_config.server.port == 8080


def test_run_env_from_environment(backend_configs, clean_env):
    clean_env.setenv(f"{ENV_PREFIX}_GENERAL_RUN_ENV", "production")
    assert settings.load(backend_configs, ENV_PREFIX).server.port == 8080


def test_env_prefix_is_upper_cased(backend_configs, clean_env):
    clean_env.setenv(f"{ENV_PREFIX}_SERVER_PORT", "7000")
    assert settings.load(backend_configs, ENV_PREFIX.lower()).server.port == 7000


def test_cli_overrides_win(backend_configs, clean_env):
    clean_env.setenv(f"{ENV_PREFIX}_SERVER_PORT", "7000")
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_LOG_LEVEL", "INFO")
    cli_args = settings.parse_cli_args(["-e", "production", "-p", "9000", "-l", "error"])

    app_config = settings.load(backend_configs, ENV_PREFIX, cli_args)

    assert app_config.general.run_env is RuntimeEnvironment.PRODUCTION
    # addr comes from the [production] table, port from the command line
    assert app_config.server.addr == IPv4Address("0.0.0.0")
    assert app_config.server.port == 9000
    assert app_config.logger.log_level == "error"


def test_env_log_level_is_case_insensitive(backend_configs, clean_env):
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_LOG_LEVEL", "WARN")
    assert settings.load(backend_configs, ENV_PREFIX).logger.log_level == "warn"


def test_logger_files_from_env(backend_configs, clean_env, tmp_path):
    logs_dir = tmp_path / "logs"
    logs_dir.mkdir()
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_FILES_EMITTED__IS_EMITTED", "true")
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_FILES_EMITTED__DIR", str(logs_dir))

    files = settings.load(backend_configs, ENV_PREFIX).logger.files_emitted

    assert files.is_emitted is True
    assert files.dir == logs_dir
    assert files.files_prefix == "backend.dev"


def test_logger_files_default_dir_when_emitted(backend_configs, clean_env, monkeypatch, tmp_path):
    """Emitting files without a directory uses ./logs."""
    (tmp_path / "logs").mkdir()
    monkeypatch.chdir(tmp_path)
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_FILES_EMITTED__IS_EMITTED", "true")

    files = settings.load(backend_configs, ENV_PREFIX).logger.files_emitted

    assert files.is_emitted is True
    assert files.dir.path.resolve() == (tmp_path / "logs").resolve()


def test_logger_files_prompt_for_missing_default_dir(backend_configs, clean_env, monkeypatch, tmp_path):
    """A dev machine without ./logs is asked for a replacement directory."""
    replacement = tmp_path / "var-logs"
    replacement.mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("builtins.input", lambda message: str(replacement))
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_FILES_EMITTED__IS_EMITTED", "true")

    files = settings.load(backend_configs, ENV_PREFIX).logger.files_emitted

    assert files.dir == replacement


def test_logger_files_not_emitted_never_prompts(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    with mock.patch.object(DirectoryPath, "prompt") as prompt:
        files = settings.LoggerFilesEmittedSubconfig()
    prompt.assert_not_called()
    assert files.dir is None


def test_logger_files_invalid_user_dir_fails(backend_configs, clean_env, tmp_path):
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_FILES_EMITTED__IS_EMITTED", "true")
    clean_env.setenv(f"{ENV_PREFIX}_LOGGER_FILES_EMITTED__DIR", str(tmp_path / "missing"))
    with mock.patch.object(DirectoryPath, "prompt") as prompt:
        with pytest.raises(InitImportConfigError) as exc_info:
            settings.load(backend_configs, ENV_PREFIX)
    prompt.assert_not_called()
    assert exc_info.value.details["group"] == "LOGGER"


def test_empty_static_dir_is_not_the_working_directory(configs_dir, write_toml, web_dirs, clean_env):
    """An empty path is rejected instead of serving the working directory."""
    write_toml(configs_dir / "server.toml", f"""
        [default]
        static_dir = ""
        assets_dir = "{web_dirs[1]}"
    """)
    with mock.patch.object(DirectoryPath, "prompt") as prompt:
        with pytest.raises(InitImportConfigError) as exc_info:
            settings.load(configs_dir, ENV_PREFIX)
    prompt.assert_not_called()
    assert exc_info.value.details["group"] == "SERVER"


def test_empty_static_dir_flag_fails(backend_configs, clean_env):
    cli_args = settings.parse_cli_args(["--static-dir", ""])
    with pytest.raises(InitImportConfigError):
        settings.load(backend_configs, ENV_PREFIX, cli_args)


def test_invalid_value_names_the_group(backend_configs, write_toml, clean_env):
    write_toml(backend_configs / "database.toml", """
        [development]
        max_connections = "many"
    """)

    with pytest.raises(InitImportConfigError) as exc_info:
        settings.load(backend_configs, ENV_PREFIX)

    error = exc_info.value
    assert error.code == ErrorCode.INITIALIZATION_FAILED
    assert error.details["group"] == "DATABASE"
    assert "DATABASE" in error.message


def test_invalid_user_directory_fails_without_prompting(backend_configs, clean_env, tmp_path):
    cli_args = settings.parse_cli_args(["--static-dir", str(tmp_path / "missing")])
    with mock.patch.object(DirectoryPath, "prompt") as prompt:
        with pytest.raises(InitImportConfigError) as exc_info:
            settings.load(backend_configs, ENV_PREFIX, cli_args)
    prompt.assert_not_called()
    assert exc_info.value.details["group"] == "SERVER"


def test_server_defaults_used_when_paths_missing(configs_dir, clean_env, monkeypatch, tmp_path):
    """Without configured paths, the compiled-in defaults are joined in."""
    (tmp_path / "build" / "static").mkdir(parents=True)
    (tmp_path / "assets").mkdir()
    monkeypatch.chdir(tmp_path)

    server = settings.load(configs_dir, ENV_PREFIX).server

    assert server.static_dir.path.resolve() == (tmp_path / "build" / "static").resolve()
    assert server.assets_dir.path.resolve() == (tmp_path / "assets").resolve()
    assert server.port == 5555


def test_server_default_prompts_for_missing_default_dir(configs_dir, clean_env, monkeypatch, tmp_path):
    """A missing compiled-in default directory is recovered interactively."""
    (tmp_path / "assets").mkdir()
    replacement = tmp_path / "public"
    replacement.mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("builtins.input", lambda message: str(replacement))

    server = settings.load(configs_dir, ENV_PREFIX).server

    assert server.static_dir == replacement


def test_setup_installs_slots(backend_configs, clean_env, fresh_slots):
    app_config = settings.setup(backend_configs, ENV_PREFIX)

    assert get(settings.GENERAL) is app_config.general
    assert get(settings.SERVER) is app_config.server
    assert get(settings.LOGGER) is app_config.logger
    assert get(settings.DATABASE) is app_config.database


def test_setup_twice_raises(backend_configs, clean_env, fresh_slots):
    settings.setup(backend_configs, ENV_PREFIX)
    with pytest.raises(SettingsAlreadyInitializedError):
        settings.setup(backend_configs, ENV_PREFIX)


def test_install_into_explicit_slots(backend_configs, clean_env):
    slots = settings.new_slots()
    app_config = settings.load(backend_configs, ENV_PREFIX)

    settings.install(app_config, slots)

    assert slots.server.get() is app_config.server


def test_settings_are_frozen(backend_configs, clean_env):
    app_config = settings.load(backend_configs, ENV_PREFIX)
    with pytest.raises(ValidationError):
        app_config.server.port = 1


def test_parse_cli_args_only_sets_given_flags():
    cli_args = settings.parse_cli_args(["--addr", "0.0.0.0", "--configs-dir", "/etc/gallery"])

    assert cli_args.server.addr == IPv4Address("0.0.0.0")
    assert str(cli_args.configs_dir) == "/etc/gallery"
    assert cli_args.env_prefix is None
    assert cli_args.server.port is None
    assert cli_args.general.run_env is None


@pytest.mark.parametrize("argv", [
    ["--port", "80"],
    ["--port", "http"],
    ["--addr", "localhost"],
    ["--run-env", "staging"],
])
def test_parse_cli_args_rejects_invalid_flags(argv):
    with pytest.raises(SystemExit):
        settings.parse_cli_args(argv)
