import logging
import math
import re
import shlex
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, ClassVar

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_INTERVAL,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_REMOTE,
    DEFAULT_SYNC_COMMAND,
    LOCAL_CONFIG_NAME,
)
from .errors import AutoSyncError, ErrorKind
from .git_wrapper import GitRepo
from .scope import DirectoryScope

logger = logging.getLogger(APP_NAME)


def parse_time(value: int | float | str) -> float:
    """Converts human-readable time strings (e.g., '5s', '2m', '1hr') to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().lower()
    match = re.match(r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)?s?$", text)
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2) or "s"
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return num * multiplier[unit]


def _check_interval(value: Any) -> float:
    seconds = parse_time(value)
    if not math.isfinite(seconds):
        raise ValueError(f"Interval must be a finite number, got {value}")
    if seconds < 0:
        raise ValueError(f"Interval must not be negative, got {value}")
    return seconds


def _check_max_iterations(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Max iterations must be an integer, got {value!r}")
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f"Max iterations must be an integer, got {value!r}") from e
    if isinstance(value, float) and value != count:
        raise ValueError(f"Max iterations must be an integer, got {value!r}")
    if count < -1:
        raise ValueError(f"Max iterations must be -1 (unbounded) or more, got {count}")
    return count


def _check_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected a non-empty string, got {value!r}")
    return value


def _check_flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected true or false, got {value!r}")
    return value


_CHECKS = {
    "interval": _check_interval,
    "max_iterations": _check_max_iterations,
    "sync_command": _check_text,
    "remote_name": _check_text,
    "async_mode": _check_flag,
    "shell": _check_flag,
}


@dataclass
class Settings:
    """Loop settings layered from defaults, config files and explicit overrides.

    Attributes:
        interval (float): Seconds between polling ticks.
        max_iterations (int): Ticks before stopping; -1 or 0 means unbounded.
        sync_command (str): The command that updates the working copy.
        remote_name (str): The remote to compare against.
        async_mode (bool): Whether to poll on a background thread.
        shell (bool): Whether `sync_command` is a raw shell string.
    """

    interval: float = DEFAULT_INTERVAL
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    sync_command: str = DEFAULT_SYNC_COMMAND
    remote_name: str = DEFAULT_REMOTE
    async_mode: bool = False
    shell: bool = False

    # Cache for the base global configuration
    _global_cache: ClassVar["Settings | None"] = None

    @classmethod
    def load(cls, repo_path: Path | None = None) -> "Settings":
        """Loads and merges settings from defaults, global, and local sources.

        Args:
            repo_path (Path | None): The repository directory to search for local config.

        Returns:
            Settings: The merged settings.
        """
        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance = instance._merge_from_file(CONFIG_FILE, section="sync")
            cls._global_cache = instance

        instance = replace(cls._global_cache)

        if repo_path:
            local_toml = repo_path / LOCAL_CONFIG_NAME
            pyproject = repo_path / "pyproject.toml"

            if local_toml.exists():
                instance = instance._merge_from_file(local_toml, section="sync")
            elif pyproject.exists():
                instance = instance._merge_from_file(
                    pyproject, section="tool.autosync.sync"
                )

        return instance

    def _merge_from_file(self, path: Path, section: str) -> "Settings":
        """Parses a TOML file and returns these settings updated from it.

        Args:
            path (Path): Path to the TOML file.
            section (str): Dot-separated table path (e.g., 'tool.autosync.sync').
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
            return self
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return self

        for key in section.split("."):
            if not isinstance(data, dict):
                break
            data = data.get(key, {})

        if not isinstance(data, dict):
            logger.warning(
                f"Config error in {path}: [{section}] must be a table. Ignoring."
            )
            return self

        if not data:
            return self

        valid_keys = {f.name for f in fields(self)}
        invalid_keys = set(data.keys()) - valid_keys
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        updates = {}
        for k, v in data.items():
            if k not in valid_keys:
                continue
            try:
                updates[k] = _CHECKS[k](v)
            except ValueError as e:
                logger.warning(f"Config error in [{section}].{k}: {e}. Ignoring value.")

        return replace(self, **updates)

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Applies explicit (e.g. command line) values on top of these settings.

        None values are skipped.

        Raises:
            ValueError: If any given value is invalid.
        """
        updates = {}
        for k, v in overrides.items():
            if v is None:
                continue
            updates[k] = _CHECKS[k](v)
        return replace(self, **updates)


@dataclass(frozen=True)
class RepoConfig:
    """Fully resolved configuration for one autosync invocation.

    Attributes:
        local_path (Path): Absolute path of the working copy.
        remote_url (str): The URL of the tracked remote.
        branch (str): The local branch compared against `<remote>/<branch>`.
        max_iterations (int): Ticks before stopping; -1 or 0 means unbounded.
        interval (float): Seconds between polling ticks.
        async_mode (bool): Whether to poll on a background thread.
        sync_command (str): The command that updates the working copy.
        remote_name (str): The remote tracking `remote_url`.
        shell (bool): Whether `sync_command` is run through the shell.
    """

    local_path: Path
    remote_url: str
    branch: str
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    interval: float = DEFAULT_INTERVAL
    async_mode: bool = False
    sync_command: str = DEFAULT_SYNC_COMMAND
    remote_name: str = DEFAULT_REMOTE
    shell: bool = False

    @property
    def remote_ref(self) -> str:
        """str: The remote tracking reference compared with `branch`."""
        return f"{self.remote_name}/{self.branch}"

    def sync_argv(self) -> list[str]:
        """Splits `sync_command` into an argument vector.

        Raises:
            ValueError: If the command has unbalanced quotes or is empty.
        """
        argv = shlex.split(self.sync_command)
        if not argv:
            raise ValueError("Sync command is empty")
        return argv


def resolve_config(
    local_path: str | Path = ".",
    repo_url: str | None = None,
    branch: str | None = None,
    interval: float | str | None = None,
    max_iterations: int | None = None,
    sync_command: str | None = None,
    async_mode: bool | None = None,
    remote_name: str | None = None,
    shell: bool | None = None,
) -> RepoConfig:
    """Produces a fully resolved RepoConfig for a working copy.

    Missing values are taken, in order, from explicit arguments, the repo-local
    config, the global config and built-in defaults. The remote URL and branch
    fall back to what the repository itself has configured.

    Args:
        local_path (str | Path, optional): The working copy. Defaults to '.'.
        repo_url (str | None): Remote URL; read from the repository if unset.
        branch (str | None): Branch name; the checked-out branch if unset.
        interval (float | str | None): Seconds (or e.g. '10s', '1m') between ticks.
        max_iterations (int | None): Ticks before stopping, -1 for unbounded.
        sync_command (str | None): The update command.
        async_mode (bool | None): Poll on a background thread.
        remote_name (str | None): The remote to compare against.
        shell (bool | None): Run `sync_command` through the shell.

    Returns:
        RepoConfig: The resolved configuration.

    Raises:
        AutoSyncError: PATH_RESOLUTION, INVALID_ARGUMENT, CONFIG_MISSING or
            DIRECTORY_ACCESS.
    """
    try:
        return _resolve(
            local_path,
            repo_url,
            branch,
            {
                "interval": interval,
                "max_iterations": max_iterations,
                "sync_command": sync_command,
                "async_mode": async_mode,
                "remote_name": remote_name,
                "shell": shell,
            },
        )
    except AutoSyncError as err:
        raise err.add_context("config.resolve_config")


def _resolve(
    local_path: str | Path,
    repo_url: str | None,
    branch: str | None,
    overrides: dict[str, Any],
) -> RepoConfig:
    try:
        path = Path(local_path).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise AutoSyncError(
            ErrorKind.PATH_RESOLUTION, f"Failed to resolve local path: {local_path}"
        ) from e

    if not path.is_dir():
        raise AutoSyncError(
            ErrorKind.PATH_RESOLUTION, f"Local path is not a directory: {path}"
        )

    try:
        repo = GitRepo(path)
    except ValueError as e:
        raise AutoSyncError(ErrorKind.PATH_RESOLUTION, str(e)) from e

    try:
        settings = Settings.load(path).with_overrides(**overrides)
    except ValueError as e:
        raise AutoSyncError(ErrorKind.INVALID_ARGUMENT, str(e)) from e

    if not settings.shell:
        try:
            shlex.split(settings.sync_command)
        except ValueError as e:
            raise AutoSyncError(
                ErrorKind.INVALID_ARGUMENT,
                f"Cannot parse sync command '{settings.sync_command}': {e}",
            ) from e

    with DirectoryScope(path):
        if not repo_url:
            repo_url = repo.remote_url(settings.remote_name)
            if not repo_url:
                raise AutoSyncError(
                    ErrorKind.CONFIG_MISSING,
                    f"Failed to retrieve git {settings.remote_name} url",
                )

        if not branch:
            try:
                branch = repo.current_branch()
            except RuntimeError as e:
                logger.debug(f"Branch lookup failed: {e}")
                branch = ""
            if not branch:
                raise AutoSyncError(
                    ErrorKind.CONFIG_MISSING, "Failed to retrieve git branch name"
                )
            if branch == "HEAD":
                logger.warning(f"{path.name}: HEAD is detached, comparing against HEAD")

    return RepoConfig(
        local_path=path,
        remote_url=repo_url,
        branch=branch,
        max_iterations=settings.max_iterations,
        interval=settings.interval,
        async_mode=settings.async_mode,
        sync_command=settings.sync_command,
        remote_name=settings.remote_name,
        shell=settings.shell,
    )
