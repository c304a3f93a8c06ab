"""Git Autosync: keep a working copy in step with its remote branch.

This package provides the polling loop that detects when a tracked remote
branch has moved and runs a sync command to catch the local copy up, along
with its configuration resolution and command-line interface.
"""

from . import (
    cli,
    config,
    constants,
    detector,
    errors,
    git_wrapper,
    loop,
    scope,
    syncer,
)
from .errors import AutoSyncError, ErrorKind
from .loop import SyncLoop, auto_sync

__all__ = [
    "AutoSyncError",
    "ErrorKind",
    "SyncLoop",
    "auto_sync",
    "cli",
    "config",
    "constants",
    "detector",
    "errors",
    "git_wrapper",
    "loop",
    "scope",
    "syncer",
]
