"""Tests for the error taxonomy and context chaining."""

import logging

import pytest

from git_autosync.errors import (
    CONFIG_ERRORS,
    AutoSyncError,
    ErrorKind,
    log_error,
)


def test_error_codes_are_distinct_and_nonzero() -> None:
    """Verifies every kind maps to its own nonzero exit code."""
    codes = [kind.value for kind in ErrorKind]
    assert len(set(codes)) == len(codes)
    assert all(code > 0 for code in codes)
    assert AutoSyncError(ErrorKind.CONFIG_MISSING, "x").code == 4


def test_retryable_kinds() -> None:
    """Verifies only runtime polling failures are retryable."""
    assert AutoSyncError(ErrorKind.REMOTE_UNREACHABLE, "x").retryable
    assert AutoSyncError(ErrorKind.DIFF_FAILURE, "x").retryable
    assert AutoSyncError(ErrorKind.SYNC_COMMAND_FAILED, "x").retryable
    assert not AutoSyncError(ErrorKind.DIRECTORY_ACCESS, "x").retryable
    for kind in CONFIG_ERRORS:
        assert not AutoSyncError(kind, "x").retryable


def test_context_chain_accumulates_innermost_first() -> None:
    """Verifies that wrapping operations append to the chain in order."""

    def inner() -> None:
        raise AutoSyncError(ErrorKind.DIFF_FAILURE, "bad ref")

    def outer() -> None:
        try:
            inner()
        except AutoSyncError as err:
            raise err.add_context("detector.detect")

    with pytest.raises(AutoSyncError) as excinfo:
        try:
            outer()
        except AutoSyncError as err:
            raise err.add_context("loop.run")

    err = excinfo.value
    assert err.context == ["detector.detect", "loop.run"]
    assert err.format_trace() == ["1: detector.detect(...)", "2: loop.run(...)"]
    assert str(err) == "DIFF_FAILURE (code 7): bad ref"


def test_log_error_writes_kind_message_and_trace(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Verifies that logged errors carry severity, code and the synthesized trace."""
    caplog.set_level(logging.DEBUG, logger="git-autosync")
    logger = logging.getLogger("git-autosync")

    err = AutoSyncError(ErrorKind.SYNC_COMMAND_FAILED, "Failed sync 'git pull'")
    err.add_context("syncer.sync").add_context("loop.run")
    log_error(logger, err)

    assert "SYNC_COMMAND_FAILED, code: 8" in caplog.text
    assert "Message: Failed sync 'git pull'" in caplog.text
    assert "1: syncer.sync(...)" in caplog.text
    assert "2: loop.run(...)" in caplog.text
    assert all(r.levelno == logging.ERROR for r in caplog.records)


def test_log_error_without_context_has_no_trace(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Verifies errors raised at the top level skip the trace section."""
    caplog.set_level(logging.DEBUG, logger="git-autosync")
    log_error(
        logging.getLogger("git-autosync"),
        AutoSyncError(ErrorKind.INVALID_ARGUMENT, "bad flag"),
        logging.CRITICAL,
    )

    assert "Stack trace" not in caplog.text
    assert caplog.records[0].levelno == logging.CRITICAL
