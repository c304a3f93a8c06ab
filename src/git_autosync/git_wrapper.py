import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


def find_git_root(path: Path) -> Path | None:
    """Finds the working copy root containing `path`.

    Args:
        path (Path): A directory inside (or at the root of) a working copy.

    Returns:
        Path | None: The first ancestor holding a `.git` entry, or None.
    """
    for candidate in (path, *path.parents):
        # `.git` is a directory in a normal clone and a file in worktrees.
        if (candidate / ".git").exists():
            return candidate
    return None


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    Git is treated as an opaque external tool: every method shells out to
    `git` and only inspects the exit status and, where needed, the text on
    stdout.

    Attributes:
        path (Path): The directory commands are run from.
        root (Path): The working copy root containing `path`.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The repository root or a directory inside it.

        Raises:
            ValueError: If `path` is not inside a git working copy.
        """
        self.path = path
        root = find_git_root(self.path)
        if root is None:
            raise ValueError(f"Not a git repository: {self.path}")
        self.root = root

    def _run(self, args: list[str], capture: bool = True) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.

        Returns:
            str:    The stripped stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            RuntimeError: If the git command returns a non-zero exit code or
                          the git executable cannot be started.
        """
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=capture,
                text=True,
                check=True,
            )
            return res.stdout.strip() if capture else ""
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"Git error: {(e.stderr or '').strip() or e}") from e
        except OSError as e:
            raise RuntimeError(f"Git error: {e}") from e

    def remote_url(self, remote: str = "origin") -> str:
        """Reads the configured fetch URL of a remote.

        Args:
            remote (str, optional): The remote name. Defaults to 'origin'.

        Returns:
            str: The URL, or an empty string when the remote has none configured.
        """
        try:
            return self._run(["config", "--get", f"remote.{remote}.url"])
        except RuntimeError as e:
            # `git config --get` exits 1 for an unset key.
            logger.debug(f"No URL configured for remote '{remote}': {e}")
            return ""

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The abbreviated name of HEAD ('HEAD' when detached).

        Raises:
            RuntimeError: If HEAD cannot be resolved (e.g. no commits yet).
        """
        return self._run(["rev-parse", "--abbrev-ref", "HEAD"])

    def remote_update(self) -> str:
        """Refreshes remote tracking data for all configured remotes.

        Returns:
            str: The output of `git remote update`.

        Raises:
            RuntimeError: If any remote cannot be contacted.
        """
        return self._run(["remote", "update"])

    def diff_names(self, target: str, source: str) -> list[str]:
        """Lists the paths that differ between two references.

        Args:
            target (str): The base reference (e.g., 'main').
            source (str): The reference to compare (e.g., 'origin/main').

        Returns:
            list[str]: Changed paths in git's output order; empty when identical.

        Raises:
            RuntimeError: If either reference is unknown or the diff fails.
        """
        output = self._run(["diff", target, source, "--name-only"])
        return [line for line in output.splitlines() if line.strip()]
