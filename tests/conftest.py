"""
Global test configuration.
"""

from collections.abc import Callable
import logging
import os
from typing import Any

import pytest

from quote_assist.config import FrozenConfig
from quote_assist.config.schema import ENV_PREFIX, QuoteAssistSettings


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_quote_assist_env(request, monkeypatch):
    """Ensure a clean QUOTE_ASSIST_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def isolated_project_dir(request, monkeypatch, tmp_path):
    """Run each test from an empty directory so no real pyproject.toml is read."""
    if request.node.get_closest_marker("allow_real_project"):
        return
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "allow_env_pollution: keep QUOTE_ASSIST_* variables from the real env",
        "allow_real_project: do not chdir into an empty project directory",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


@pytest.fixture
def mock_api_key():
    """Provide a consistent, fake API key for tests."""
    return "test_api_key_12345_67890_abcdef_ghijkl"


@pytest.fixture
def make_config(mock_api_key) -> Callable[..., FrozenConfig]:
    """Factory for frozen configs: schema defaults plus overrides."""

    def _make(**overrides: Any) -> FrozenConfig:
        values = {**QuoteAssistSettings.defaults(), "api_key": mock_api_key}
        values.update(overrides)
        return FrozenConfig(**values)

    return _make


@pytest.fixture
def frozen_config(make_config) -> FrozenConfig:
    return make_config()
