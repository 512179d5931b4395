"""
Pytest configuration and fixtures for the settings tests.

This module provides shared fixtures for writing configuration files and
isolating the environment variables the tests touch.
"""
import os
import textwrap
from pathlib import Path

import pytest

from backend import settings as backend_settings

ENV_PREFIX = "GALLERYTEST"


@pytest.fixture
def configs_dir(tmp_path):
    """Provide an empty configuration directory."""
    directory = tmp_path / "configs"
    directory.mkdir()
    return directory


@pytest.fixture
def write_toml():
    """Write a dedented TOML document and return its path."""
    def _write(path: Path, content: str) -> Path:
        path.write_text(textwrap.dedent(content).lstrip())
        return path

    return _write


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable under the test prefix for the test's duration."""
    for name in list(os.environ):
        if name.upper().startswith(ENV_PREFIX):
            monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture
def fresh_slots(monkeypatch):
    """Replace the process-wide backend slots with empty ones."""
    slots = backend_settings.new_slots()
    monkeypatch.setattr(backend_settings, "SLOTS", slots)
    monkeypatch.setattr(backend_settings, "GENERAL", slots.general)
    monkeypatch.setattr(backend_settings, "SERVER", slots.server)
    monkeypatch.setattr(backend_settings, "LOGGER", slots.logger)
    monkeypatch.setattr(backend_settings, "DATABASE", slots.database)
    return slots


@pytest.fixture
def web_dirs(tmp_path):
    """Create static and assets directories for the server settings."""
    static_dir = tmp_path / "static"
    assets_dir = tmp_path / "assets"
    static_dir.mkdir()
    assets_dir.mkdir()
    return static_dir, assets_dir
