import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .constants import (
    APP_NAME,
    DEFAULT_INTERVAL,
    DEFAULT_LOG_PREFIX,
    DEFAULT_SYNC_COMMAND,
    LOG_PREFIX_ENV,
    MAX_LOG_SIZE,
)
from .errors import AutoSyncError, ErrorKind, log_error
from .loop import auto_sync

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)

DESCRIPTION = """Watches a git working copy and pulls whenever its remote branch moves.

Remote URL and branch default to the repository's own origin and checked-out
branch. Settings may also come from ~/.config/git-autosync/config.toml,
an autosync.toml next to the repository, or [tool.autosync.sync] in its
pyproject.toml; command line flags win.
"""

EPILOG = f"""environment:
  {LOG_PREFIX_ENV}  Text printed before each log line (default: {DEFAULT_LOG_PREFIX}).
"""


class AutoSyncArgumentParser(argparse.ArgumentParser):
    """An ArgumentParser that reports usage errors as INVALID_ARGUMENT."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise AutoSyncError(ErrorKind.INVALID_ARGUMENT, message).add_context(
            "cli.parse_args"
        )


def build_parser() -> argparse.ArgumentParser:
    """Builds the command line parser."""
    parser = AutoSyncArgumentParser(
        prog="git-autosync",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="The path to the repo (defaults to the current folder)",
    )
    parser.add_argument(
        "-r",
        "--repo-url",
        help="The repo url (defaults to the folder's remote url)",
    )
    parser.add_argument(
        "-b",
        "--branch",
        help="The name of the branch (defaults to the folder's current branch)",
    )
    parser.add_argument(
        "-n",
        "--max-times",
        type=int,
        dest="max_iterations",
        help="Max number of sync ticks, -1 for infinity (default: -1)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        help=f"Seconds between checks, e.g. 5, 30s, 2m (default: {DEFAULT_INTERVAL:g})",
    )
    parser.add_argument(
        "-a",
        "--async",
        action="store_true",
        default=None,
        dest="async_mode",
        help="Keep syncing in the background after the first successful check",
    )
    parser.add_argument(
        "--sync-command",
        help=f"The sync command to run (default: '{DEFAULT_SYNC_COMMAND}')",
    )
    parser.add_argument(
        "--shell",
        action="store_true",
        default=None,
        help="Run --sync-command through the system shell instead of directly",
    )
    parser.add_argument(
        "--remote",
        dest="remote_name",
        help="The remote to compare against (default: origin)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write logs to this file (rotated at 5MB)",
    )
    return parser


def setup_logging(log_file: Path | None = None) -> None:
    """Configures the logging subsystem.

    Log lines are printed to stdout as '<prefix>:<LEVEL>: <message>', where the
    prefix comes from the GIT_AUTOSYNC_LOGPREFIX environment variable.

    Args:
        log_file (Path | None): If given, logs are also written to this file,
                                with timestamps and rotation.
    """
    prefix = os.environ.get(LOG_PREFIX_ENV) or DEFAULT_LOG_PREFIX

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.INFO)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(
        logging.Formatter(f"{prefix}:%(levelname)s: %(message)s")
    )
    logger.addHandler(stream_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_SIZE, backupCount=5
        )
        file_handler.setFormatter(
            logging.Formatter(
                f"[%(asctime)s] {prefix}:%(levelname)s: %(message)s",
                "%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)


def run(argv: list[str]) -> int:
    """Parses arguments and runs autosync.

    Args:
        argv (list[str]): The command line arguments, without the program name.

    Returns:
        int: 0 on a graceful stop, otherwise the fatal error's code.
    """
    if "--as-lib" in argv:
        if len(argv) > 1:
            err = AutoSyncError(
                ErrorKind.INVALID_ARGUMENT,
                "git-autosync cannot be both loaded as a library and have command args.",
            ).add_context("cli.run")
            setup_logging()
            log_error(logger, err)
            return err.code
        # Nothing to execute; the package is importable as `git_autosync`.
        return 0

    try:
        args = build_parser().parse_args(argv)
    except AutoSyncError as err:
        setup_logging()
        log_error(logger, err)
        err_console.print(f"[bold red]ERROR:[/bold red] {escape(err.message)}")
        return err.code

    setup_logging(args.log_file)

    try:
        thread = auto_sync(
            args.path,
            repo_url=args.repo_url,
            branch=args.branch,
            interval=args.interval,
            max_iterations=args.max_iterations,
            sync_command=args.sync_command,
            async_mode=args.async_mode,
            remote_name=args.remote_name,
            shell=args.shell,
        )
    except AutoSyncError as err:
        log_error(logger, err, logging.CRITICAL)
        err_console.print(f"[bold red]FATAL:[/bold red] {escape(str(err))}")
        return err.code
    except KeyboardInterrupt:
        logger.info("Sync stopped")
        return 130

    if thread is not None:
        console.print(
            f"[bold green]SUCCESS:[/bold green] Syncing in the background "
            f"([dim]{thread.name}[/dim])."
        )
    return 0


def main() -> None:
    """Main entry point for the git-autosync CLI."""
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
