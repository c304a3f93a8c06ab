import logging
import os
from pathlib import Path
from types import TracebackType

from .constants import APP_NAME
from .errors import AutoSyncError, ErrorKind

logger = logging.getLogger(APP_NAME)


class DirectoryScope:
    """Moves the process into a repository and back out again.

    The directory the caller was in is captured on `enter()` and consumed
    exactly once by `leave()`. Used as a context manager, the previous directory
    is restored on every exit path, including when the body raises.

    Example:
        with DirectoryScope(repo_path):
            ...  # relative paths now resolve inside the repository

    Attributes:
        path (Path): The directory to operate in.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._previous: Path | None = None

    @property
    def active(self) -> bool:
        """bool: True between a successful `enter()` and the matching `leave()`."""
        return self._previous is not None

    def enter(self) -> None:
        """Changes into `path`, remembering the current working directory.

        Raises:
            AutoSyncError: DIRECTORY_ACCESS if the current directory cannot be
                read or `path` cannot be entered.
            RuntimeError: If the scope is already active.
        """
        if self.active:
            raise RuntimeError(f"Directory scope for {self.path} already entered")

        try:
            previous = Path.cwd()
        except OSError as e:
            raise AutoSyncError(
                ErrorKind.DIRECTORY_ACCESS,
                f"Failed to read the current working directory: {e}",
            ).add_context("scope.enter") from e

        try:
            os.chdir(self.path)
        except OSError as e:
            raise AutoSyncError(
                ErrorKind.DIRECTORY_ACCESS, f"Failed to enter directory {self.path}"
            ).add_context("scope.enter") from e

        self._previous = previous
        logger.debug(f"Entered {self.path} (from {previous})")

    def leave(self) -> None:
        """Restores the working directory captured by `enter()`.

        Raises:
            AutoSyncError: DIRECTORY_ACCESS if the previous directory cannot be
                restored.
            RuntimeError: If the scope was not entered.
        """
        previous, self._previous = self._previous, None
        if previous is None:
            raise RuntimeError(f"Directory scope for {self.path} was not entered")

        try:
            os.chdir(previous)
        except OSError as e:
            raise AutoSyncError(
                ErrorKind.DIRECTORY_ACCESS, f"Failed to enter directory {previous}"
            ).add_context("scope.leave") from e

        logger.debug(f"Returned to {previous}")

    def __enter__(self) -> "DirectoryScope":
        self.enter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.leave()
