import datetime
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from .config import RepoConfig, resolve_config
from .constants import APP_NAME
from .detector import detect
from .errors import AutoSyncError, ErrorKind, log_error
from .syncer import sync

logger = logging.getLogger(APP_NAME)


class LoopPhase(Enum):
    """The states of the polling state machine."""

    INITIALIZING = "initializing"
    POLLING = "polling"
    DETECTING = "detecting"
    SYNCING = "syncing"
    WAITING = "waiting"
    STOPPED = "stopped"


@dataclass
class LoopState:
    """Mutable bookkeeping for a single loop invocation.

    Attributes:
        iteration_count (int): Completed ticks that were not retried.
        last_error (ErrorKind | None): The most recent recovered error, cleared
            by the next successful tick.
        phase (LoopPhase): Where the state machine currently is.
    """

    iteration_count: int = 0
    last_error: ErrorKind | None = None
    phase: LoopPhase = LoopPhase.INITIALIZING


class SyncLoop:
    """Polls a remote for changes and syncs the working copy when it diverges.

    A single validation pass runs first; any failure there is fatal. After that,
    each tick detects changes, syncs if needed and waits `interval` seconds.
    Detection and sync failures are logged and retried on the next tick without
    counting towards `max_iterations`. DIRECTORY_ACCESS failures always
    propagate.

    Attributes:
        config (RepoConfig): The resolved configuration.
        state (LoopState): Counters for the current invocation.
        fatal_error (AutoSyncError | None): The error that ended a background
            loop, if any.
    """

    def __init__(self, config: RepoConfig):
        self.config = config
        self.state = LoopState()
        self.fatal_error: AutoSyncError | None = None

    @property
    def target(self) -> str:
        """str: A short description of what is being synced, for log lines."""
        return (
            f"{self.config.remote_url}/{self.config.branch} -> "
            f"{self.config.local_path}"
        )

    def initialize(self) -> list[str]:
        """Runs one detection pass to validate the configuration.

        Returns:
            list[str]: The changes pending at start-up.

        Raises:
            AutoSyncError: Any detection failure, which is not retried here.
        """
        self.state = LoopState(phase=LoopPhase.INITIALIZING)
        try:
            return detect(self.config)
        except AutoSyncError as err:
            logger.error(
                f"Failed to initialize remote repo autosync @ "
                f"{self.config.remote_url}/{self.config.branch} "
                f"to {self.config.local_path}"
            )
            raise err.add_context("loop.initialize")

    def start(self) -> threading.Thread | None:
        """Validates the configuration, then runs the loop.

        In blocking mode this returns once the loop stops. In async mode the loop
        runs on a new non-daemon thread, which is returned immediately; it keeps
        the process alive until the loop stops.

        Returns:
            threading.Thread | None: The background thread, or None when blocking.

        Raises:
            AutoSyncError: If validation fails, or (blocking mode) a fatal error
                ends the loop.
        """
        self.initialize()

        if not self.config.async_mode:
            self.run()
            return None

        thread = threading.Thread(
            target=self._run_in_background,
            name=f"git-autosync-{self.config.local_path.name}",
        )
        thread.start()
        return thread

    def _run_in_background(self) -> None:
        try:
            self.run()
        except AutoSyncError as err:
            self.fatal_error = err.add_context("loop.background")
            log_error(logger, err, logging.CRITICAL)

    def run(self) -> None:
        """Runs the polling loop on the calling thread until it stops."""
        logger.info(f"Starting sync: {self.target}")
        self.state.iteration_count = 0

        try:
            while True:
                self.state.phase = LoopPhase.POLLING
                if not self.tick():
                    break
                self.wait()
        except AutoSyncError as err:
            raise err.add_context("loop.run")

        self.state.phase = LoopPhase.STOPPED
        logger.info("Sync stopped")

    def tick(self) -> bool:
        """Performs one detect/sync pass and the iteration accounting.

        Returns:
            bool: False once the iteration limit has been reached.
        """
        self.state.phase = LoopPhase.DETECTING
        try:
            changes = detect(self.config)
        except AutoSyncError as err:
            self._recover(err)
            logger.error(
                "Could not get change list. "
                f"Re-attempting in {self.config.interval:g} [sec]."
            )
            return True

        if changes:
            logger.info("Repo has changed:")
            for path in changes:
                logger.info(f"  {path}")

            self.state.phase = LoopPhase.SYNCING
            try:
                sync(self.config)
            except AutoSyncError as err:
                self._recover(err)
                logger.error(
                    f"Failed to sync. Re-attempt in {self.config.interval:g} seconds."
                )
                return True

            timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            logger.info(f"Sync complete @ {timestamp}")

        self.state.last_error = None

        # The limit is checked before counting this tick.
        max_iterations = self.config.max_iterations
        if max_iterations > 0 and self.state.iteration_count >= max_iterations:
            return False

        self.state.iteration_count += 1
        return True

    def wait(self) -> None:
        """Sleeps for the configured interval."""
        self.state.phase = LoopPhase.WAITING
        time.sleep(self.config.interval)

    def _recover(self, err: AutoSyncError) -> None:
        """Logs a retryable error, re-raising anything that is not."""
        if not err.retryable:
            raise err
        self.state.last_error = err.kind
        log_error(logger, err)


def auto_sync(
    local_path: str | Path = ".", **overrides: Any
) -> threading.Thread | None:
    """Resolves configuration for a working copy and starts syncing it.

    Args:
        local_path (str | Path, optional): The working copy. Defaults to '.'.
        **overrides: Keyword arguments accepted by `resolve_config`
                     (repo_url, branch, interval, max_iterations, sync_command,
                     async_mode, remote_name, shell).

    Returns:
        threading.Thread | None: The background thread in async mode, else None.

    Raises:
        AutoSyncError: On any fatal error.
    """
    config = resolve_config(local_path, **overrides)
    return SyncLoop(config).start()
