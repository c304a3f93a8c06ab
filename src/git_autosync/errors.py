"""Error taxonomy and context chaining for git-autosync.

Every failure raised by the sync engine is an `AutoSyncError` tagged with an
`ErrorKind`. The numeric value of the kind doubles as the process exit code.
Operations that let an error pass through them append their own name to the
error's context, so the top level can print the chain of operations that led
to the failure.
"""

import logging
from enum import IntEnum


class ErrorKind(IntEnum):
    """Categories of failure, valued by the exit code they map to."""

    INVALID_ARGUMENT = 2
    PATH_RESOLUTION = 3
    CONFIG_MISSING = 4
    DIRECTORY_ACCESS = 5
    REMOTE_UNREACHABLE = 6
    DIFF_FAILURE = 7
    SYNC_COMMAND_FAILED = 8


CONFIG_ERRORS = frozenset(
    {ErrorKind.INVALID_ARGUMENT, ErrorKind.PATH_RESOLUTION, ErrorKind.CONFIG_MISSING}
)
"""frozenset[ErrorKind]: Errors raised while resolving configuration."""

RETRYABLE_ERRORS = frozenset(
    {
        ErrorKind.REMOTE_UNREACHABLE,
        ErrorKind.DIFF_FAILURE,
        ErrorKind.SYNC_COMMAND_FAILED,
    }
)
"""frozenset[ErrorKind]: Errors the polling loop recovers from by waiting."""


class AutoSyncError(Exception):
    """A categorized failure carrying the chain of operations it passed through.

    Attributes:
        kind (ErrorKind): The failure category.
        message (str): A human-readable description of the failure.
        context (list[str]): Operation names, innermost first.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context: list[str] = []

    @property
    def code(self) -> int:
        """int: The process exit code for this error."""
        return int(self.kind)

    @property
    def retryable(self) -> bool:
        """bool: Whether the polling loop may retry after this error."""
        return self.kind in RETRYABLE_ERRORS

    def add_context(self, operation: str) -> "AutoSyncError":
        """Records that the error propagated through `operation`.

        Args:
            operation (str): An identifying name, e.g. 'detector.detect'.

        Returns:
            AutoSyncError: The same error, so callers can `raise err.add_context(...)`.
        """
        self.context.append(operation)
        return self

    def format_trace(self) -> list[str]:
        """Renders the context chain as numbered lines, innermost first."""
        return [f"{i}: {op}(...)" for i, op in enumerate(self.context, start=1)]

    def __str__(self) -> str:
        return f"{self.kind.name} (code {self.code}): {self.message}"


def log_error(
    logger: logging.Logger, err: AutoSyncError, level: int = logging.ERROR
) -> None:
    """Logs an error together with its synthesized operation trace.

    Args:
        logger (logging.Logger): The logger to write to.
        err (AutoSyncError): The error to report.
        level (int, optional): The log level. Defaults to logging.ERROR.
    """
    logger.log(level, f"{err.kind.name}, code: {err.code}")
    logger.log(level, f"Message: {err.message}")
    if err.context:
        logger.log(level, "Stack trace:")
        for line in err.format_trace():
            logger.log(level, line)
