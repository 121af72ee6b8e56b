"""Remote repository utilities: existence, URLs, fetch and push."""

import logging
from typing import Optional, List

from git import Repo

from .utils import run_git


def get_remote_names(repo: Repo) -> List[str]:
    """Names of the remotes configured in the repository."""
    return [remote.name for remote in repo.remotes]


def check_remote_exists(repo: Repo, remote_name: str) -> bool:
    """Check if a remote with this name is configured."""
    return remote_name in get_remote_names(repo)


def get_remote_url(repo: Repo, remote_name: str) -> Optional[str]:
    """Fetch URL of a remote, or None when the remote is not configured."""
    if not check_remote_exists(repo, remote_name):
        return None
    return run_git(repo, "remote", "get-url", remote_name).strip() or None


def add_remote(repo: Repo, remote_name: str, url: str) -> None:
    """Register a remote, replacing the URL when the remote already exists."""
    logger = logging.getLogger('php_prefixer_build.git_sync.remote_utils')

    if check_remote_exists(repo, remote_name):
        logger.debug(f"Remote '{remote_name}' already configured, updating its URL")
        run_git(repo, "remote", "set-url", remote_name, url)
        return

    run_git(repo, "remote", "add", remote_name, url)


def fetch_remote(repo: Repo, remote_name: str, depth: Optional[int] = None) -> None:
    """
    Fetch branches and tags from a remote.

    Args:
        repo: GitPython repository
        remote_name: Remote to fetch
        depth: Optional history depth; None or 0 fetches everything
    """
    args = ["--tags", "--force"]
    if depth:
        args.append(f"--depth={depth}")
    args.append(remote_name)

    run_git(repo, "fetch", *args)


def push_refspecs(repo: Repo, remote_name: str, refspecs: List[str]) -> None:
    """Push explicit refspecs to a remote."""
    logger = logging.getLogger('php_prefixer_build.git_sync.remote_utils')
    logger.info(f"Pushing {', '.join(refspecs)} to '{remote_name}'")

    run_git(repo, "push", remote_name, *refspecs)
