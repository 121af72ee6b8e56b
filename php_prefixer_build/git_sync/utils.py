"""Shared helpers for running git commands through GitPython."""

import logging
import re

from git import Repo, GitCommandError

from ..errors import GitOperationError

_URL_CREDENTIALS = re.compile(r"://[^/@\s]+@")


def redact(text: str) -> str:
    """Hide credentials embedded in URLs."""
    return _URL_CREDENTIALS.sub("://***@", text)


def run_git(repo: Repo, command: str, *args) -> str:
    """
    Run a git sub-command in the repository and return its output.

    Args:
        repo: GitPython repository
        command: git sub-command, e.g. 'branch' or 'fetch'
        *args: command arguments

    Returns:
        Command stdout without the trailing newline

    Raises:
        GitOperationError: when git exits with a non-zero status
    """
    logger = logging.getLogger('php_prefixer_build.git_sync')
    logger.debug(redact(f"git {command} {' '.join(str(arg) for arg in args)}"))

    try:
        return getattr(repo.git, command.replace("-", "_"))(*args)
    except GitCommandError as e:
        stderr = redact((e.stderr or "").strip())
        raise GitOperationError(
            f"git {command} failed: {stderr or redact(str(e))}",
            command=command,
            stderr=stderr
        ) from e


def output_lines(output: str) -> list[str]:
    """Split command output into non-empty, stripped lines."""
    return [line.strip() for line in output.splitlines() if line.strip()]
