import os
from pathlib import Path

"""Global constants and default values for git-autosync.

This module defines application identifiers, configuration file locations, and
the default loop settings applied when neither the command line nor a config
file provides a value.
"""

# --- Identity ---
APP_NAME = "git-autosync"
"""str: The human-readable application name, also used as the logger name."""

# --- Logging ---
LOG_PREFIX_ENV = "GIT_AUTOSYNC_LOGPREFIX"
"""str: Environment variable overriding the prefix printed before each log line."""

DEFAULT_LOG_PREFIX = "GIT_AUTOSYNC"
"""str: The log line prefix used when LOG_PREFIX_ENV is unset."""

MAX_LOG_SIZE = 5 * 1024 * 1024
"""int: Max bytes for the optional log file before rotation."""

# --- Configuration Paths ---
_XDG_CONFIG = os.environ.get("XDG_CONFIG_HOME")
CONFIG_DIR: Path = (
    Path(_XDG_CONFIG) if _XDG_CONFIG else Path.home() / ".config"
) / "git-autosync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The global configuration file path."""

LOCAL_CONFIG_NAME = "autosync.toml"
"""str: Name of the per-repository configuration file."""

# --- Loop Defaults ---
DEFAULT_INTERVAL = 5.0
"""float: Seconds to wait between polling ticks."""

DEFAULT_MAX_ITERATIONS = -1
"""int: Number of ticks before stopping. -1 (or 0) runs until terminated."""

DEFAULT_SYNC_COMMAND = "git pull"
"""str: The command used to bring the working copy up to date."""

DEFAULT_REMOTE = "origin"
"""str: The remote whose URL and tracking branch are consulted."""
