"""Shared fixtures for the agent updater tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import structlog

from agent_updater.config import Settings, get_settings

_ENV_VARS = (
    "AWS_REGION",
    "DEFAULT_REGION",
    "BUCKET_TEMPLATE",
    "MANIFEST_KEY",
    "DOWNLOAD_DIR",
    "LOG_LEVEL",
    "LOG_TO_FILE",
    "LOG_FILE_PATH",
    "ENVIRONMENT",
    "SERVICE_CONTROL_PATH",
    "SANITY_CHECK_ENABLED",
    "SANITY_CHECK_DELAY_SECONDS",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep host environment variables and cached settings out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_logging():
    """Restore structlog defaults and root handlers after each test."""
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level
    yield
    structlog.reset_defaults()
    logging.root.handlers.clear()
    logging.root.handlers.extend(original_handlers)
    logging.root.setLevel(original_level)


@pytest.fixture
def download_dir(tmp_path: Path) -> Path:
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture
def settings(download_dir: Path) -> Settings:
    """Settings isolated from .env files, downloading into a temp directory."""
    return Settings(
        _env_file=None,
        download_dir=str(download_dir),
        log_to_file=False,
        service_control_path="/opt/agent/bin/agent-ctl",
        sanity_check_delay_seconds=180,
    )
