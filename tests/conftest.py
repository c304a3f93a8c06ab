"""Shared fixtures for the git-autosync test suite."""

import logging
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from git_autosync.config import RepoConfig, Settings
from git_autosync.constants import APP_NAME


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path_factory: pytest.TempPathFactory, mocker: MagicMock) -> Any:
    """Keeps the user's global config file and the settings cache out of tests."""
    missing = tmp_path_factory.mktemp("global") / "config.toml"
    mocker.patch("git_autosync.config.CONFIG_FILE", missing)
    Settings._global_cache = None
    yield
    Settings._global_cache = None


@pytest.fixture
def repo_config(tmp_path: Path) -> RepoConfig:
    """A resolved configuration pointing at an empty temporary directory."""
    return RepoConfig(
        local_path=tmp_path.resolve(),
        remote_url="git@github.com:example/project.git",
        branch="main",
        interval=0,
    )


@pytest.fixture(autouse=True)
def reset_logger() -> Any:
    """Drops handlers installed by `setup_logging` so they don't leak between tests."""
    logger = logging.getLogger(APP_NAME)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
