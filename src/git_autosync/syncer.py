import logging
import subprocess

from .config import RepoConfig
from .constants import APP_NAME
from .errors import AutoSyncError, ErrorKind
from .scope import DirectoryScope

logger = logging.getLogger(APP_NAME)


def sync(config: RepoConfig) -> None:
    """Runs the configured sync command inside the repository.

    The command is split into an argument vector and executed without a
    shell, unless `config.shell` is set, in which case the raw string is handed
    to the system shell as-is. Output goes straight to the terminal.

    Args:
        config (RepoConfig): The resolved configuration.

    Raises:
        AutoSyncError: SYNC_COMMAND_FAILED if the command cannot be started or
            exits non-zero, DIRECTORY_ACCESS if the repository cannot be entered
            or left.
    """
    command = config.sync_command
    try:
        with DirectoryScope(config.local_path):
            logger.info(f"Invoking sync with '{command}'...")
            try:
                if config.shell:
                    res = subprocess.run(command, shell=True)
                else:
                    res = subprocess.run(config.sync_argv())
            except (OSError, ValueError) as e:
                raise AutoSyncError(
                    ErrorKind.SYNC_COMMAND_FAILED,
                    f"Failed to start sync command '{command}': {e}",
                ) from e

        if res.returncode != 0:
            raise AutoSyncError(
                ErrorKind.SYNC_COMMAND_FAILED,
                f"Failed sync from remote using command '{command}' "
                f"(exit status {res.returncode})",
            )
    except AutoSyncError as err:
        raise err.add_context("syncer.sync")
