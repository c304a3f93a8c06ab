import logging

from .config import RepoConfig
from .constants import APP_NAME
from .errors import AutoSyncError, ErrorKind
from .git_wrapper import GitRepo
from .scope import DirectoryScope

logger = logging.getLogger(APP_NAME)


def detect(config: RepoConfig) -> list[str]:
    """Computes the paths that differ between the local and remote branch tips.

    Remote tracking data is refreshed first. If the refresh fails, no diff is
    attempted.

    Args:
        config (RepoConfig): The resolved configuration.

    Returns:
        list[str]: The changed paths. An empty list means already up to date.

    Raises:
        AutoSyncError: REMOTE_UNREACHABLE if the refresh fails, DIFF_FAILURE if
            the comparison fails, DIRECTORY_ACCESS if the repository cannot be
            entered or left.
    """
    try:
        with DirectoryScope(config.local_path):
            repo = GitRepo(config.local_path)

            try:
                update_log = repo.remote_update()
            except RuntimeError as e:
                raise AutoSyncError(
                    ErrorKind.REMOTE_UNREACHABLE,
                    f"Failed to update from remote {config.remote_url}: {e}",
                ) from e
            if update_log:
                logger.debug(update_log)

            try:
                changes = repo.diff_names(config.branch, config.remote_ref)
            except RuntimeError as e:
                raise AutoSyncError(
                    ErrorKind.DIFF_FAILURE,
                    f"Failed to diff {config.branch} against {config.remote_ref}: {e}",
                ) from e
    except ValueError as e:
        # The working copy vanished after configuration was resolved.
        raise AutoSyncError(ErrorKind.DIFF_FAILURE, str(e)).add_context(
            "detector.detect"
        ) from e
    except AutoSyncError as err:
        raise err.add_context("detector.detect")

    return changes
