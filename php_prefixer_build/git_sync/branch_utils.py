"""Branch and tag utilities using GitPython."""

import logging
from typing import Optional, List

from git import Repo

from ..errors import GitOperationError, TopologyError
from .utils import run_git, output_lines

TAG_REF_PREFIX = "refs/tags/"


def check_branch_exists(repo: Repo, pattern: str, remote_name: Optional[str] = None) -> bool:
    """
    Check if a branch matching the pattern exists.

    Args:
        repo: GitPython repository
        pattern: Branch name or glob pattern
        remote_name: When set, look for the remote-tracking branch '<remote_name>/<pattern>'

    Returns:
        True if at least one branch matches
    """
    if remote_name:
        output = run_git(repo, "branch", "--remotes", "--list", f"{remote_name}/{pattern}")
    else:
        output = run_git(repo, "branch", "--list", pattern)

    return len(output_lines(output)) > 0


def get_current_branch(repo: Repo) -> str:
    """Get the current branch name, or an empty string on a detached HEAD."""
    return run_git(repo, "branch", "--show-current").strip()


def list_matching_tags(repo: Repo, pattern: str) -> List[str]:
    """List tags matching the pattern, in git's listing order."""
    if pattern.startswith(TAG_REF_PREFIX):
        pattern = pattern[len(TAG_REF_PREFIX):]

    if not pattern:
        return []

    return output_lines(run_git(repo, "tag", "--list", pattern))


def find_branch_containing_tag(repo: Repo, tag: str) -> str:
    """
    Find the branch that contains a tag.

    Local branches are preferred; remote-tracking branches are used when the
    checkout has no local branch containing the tag (e.g. a tag checkout).

    Raises:
        TopologyError: when no branch contains the tag
    """
    logger = logging.getLogger('php_prefixer_build.git_sync.branch_utils')
    ref = f"{TAG_REF_PREFIX}{tag}"

    try:
        local = output_lines(run_git(repo, "branch", "--contains", ref, "--format=%(refname:short)"))
        # A detached HEAD is listed as "(HEAD detached at ...)"
        local = [name for name in local if not name.startswith("(")]
        if local:
            return local[0]

        remote = output_lines(run_git(repo, "branch", "--remotes", "--contains", ref, "--format=%(refname:short)"))
        for name in remote:
            if "/" not in name or name.endswith("/HEAD"):
                continue
            return name.split("/", 1)[1]
    except GitOperationError as e:
        logger.debug(f"Error looking up branches containing tag '{tag}': {e}")
        raise TopologyError("No branch found") from e

    raise TopologyError("No branch found")
