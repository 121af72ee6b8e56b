"""
Version-control facade for the prefixing pipeline.

`VersionControl` is the capability set the pipeline depends on. `GitHelper` is
its only backend, built on GitPython; construct it with `create_git_helper()`
from a `RepositorySettings` value.

The repository is opened lazily: a target working directory usually becomes a
git working tree only after the first file mirror copies the source `.git`
directory into it.

"No matching branch/tag" is returned as data (False / None). Failing git
commands raise `GitOperationError`; an unreachable tag raises `TopologyError`.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..errors import GitOperationError
from .branch_utils import (
    check_branch_exists,
    find_branch_containing_tag,
    get_current_branch,
    list_matching_tags,
)
from .remote_utils import (
    add_remote,
    check_remote_exists,
    fetch_remote,
    get_remote_url,
    push_refspecs,
)
from .utils import run_git

DEFAULT_USER_NAME = "PHP-Prefixer Build"
DEFAULT_USER_EMAIL = "build@php-prefixer.local"


@dataclass(frozen=True)
class RepositorySettings:
    """Where a working tree lives and how to bind to it."""
    path: Path
    initial_branch: Optional[str] = None


class VersionControl(Protocol):
    """Capability set of the version-control backend."""

    path: Path

    def init(self) -> None: ...
    def branch_exists(self, pattern: str, remote_name: Optional[str] = None) -> bool: ...
    def checkout(self, ref: str, start_point: str = "") -> None: ...
    def checkout_new_branch(self, branch: str) -> None: ...
    def checkout_to_branch(self, branch: str, remote_name: Optional[str] = None) -> bool: ...
    def current_branch(self) -> str: ...
    def current_revision(self) -> str: ...
    def current_tag(self) -> Optional[str]: ...
    def revision_timestamp(self, ref: str) -> datetime: ...
    def tag(self, tag: str) -> None: ...
    def tag_exists(self, pattern: str) -> bool: ...
    def last_matching_tag(self, pattern: str) -> Optional[str]: ...
    def branch_containing_tag(self, tag: str) -> str: ...
    def remote_add(self, remote_name: str, url: str) -> None: ...
    def remote_exists(self, remote_name: str) -> bool: ...
    def remote_url(self, remote_name: str) -> Optional[str]: ...
    def fetch_remote(self, remote_name: str, depth: Optional[int] = None) -> None: ...
    def status_porcelain(self) -> str: ...
    def stage_all_and_commit(self, message: str) -> None: ...
    def push(self, remote_name: str, *refspecs: str) -> None: ...
    def configure_identity(self) -> None: ...


class GitHelper:
    """GitPython implementation of the version-control facade."""

    def __init__(self, settings: RepositorySettings):
        self.settings = settings
        self.path = Path(settings.path)
        self.logger = logging.getLogger('php_prefixer_build.git_sync.helper')
        self._repo: Optional[Repo] = None
        self._advised = False

    @property
    def repo(self) -> Repo:
        if self._repo is None:
            try:
                self._repo = Repo(self.path)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise GitOperationError(f"Not a git repository: {self.path}") from e
        return self._repo

    def init(self) -> None:
        kwargs = {}
        if self.settings.initial_branch:
            kwargs['initial_branch'] = self.settings.initial_branch

        try:
            self._repo = Repo.init(self.path, mkdir=True, **kwargs)
        except GitCommandError as e:
            raise GitOperationError(f"git init failed: {e}", command="init") from e

        self.configure_identity()

    def configure_identity(self) -> None:
        """Set a repository-local committer identity when none is configured."""
        with self.repo.config_reader() as reader:
            user_name = reader.get_value("user", "name", default="")
            user_email = reader.get_value("user", "email", default="")

        if user_name and user_email:
            return

        with self.repo.config_writer() as writer:
            if not user_name:
                writer.set_value("user", "name", DEFAULT_USER_NAME)
            if not user_email:
                writer.set_value("user", "email", DEFAULT_USER_EMAIL)
        self.logger.debug("Configured default git identity")

    def branch_exists(self, pattern: str, remote_name: Optional[str] = None) -> bool:
        return check_branch_exists(self.repo, pattern, remote_name)

    def checkout(self, ref: str, start_point: str = "") -> None:
        if not self._advised:
            run_git(self.repo, "config", "advice.detachedHead", "false")
            self._advised = True

        if start_point:
            run_git(self.repo, "checkout", "--force", "-B", ref, start_point)
        else:
            run_git(self.repo, "checkout", "--force", ref)

    def checkout_new_branch(self, branch: str) -> None:
        run_git(self.repo, "checkout", "-b", branch)

    def checkout_to_branch(self, branch: str, remote_name: Optional[str] = None) -> bool:
        """
        Check out a branch, creating it when it exists nowhere yet.

        A branch known to the remote is reset to the remote tip; otherwise an
        existing local branch is checked out; otherwise the branch is created
        from the current position.

        Returns:
            True if the branch was created
        """
        if remote_name and self.branch_exists(branch, remote_name):
            self.checkout(branch, f"{remote_name}/{branch}")
            return False

        if self.branch_exists(branch):
            self.checkout(branch)
            return False

        self.checkout_new_branch(branch)
        return True

    def current_branch(self) -> str:
        return get_current_branch(self.repo)

    def current_revision(self) -> str:
        return run_git(self.repo, "rev-parse", "HEAD").strip()

    def current_tag(self) -> Optional[str]:
        try:
            return self.repo.git.describe("--tags", "--abbrev=0").strip() or None
        except GitCommandError:
            # No names found, cannot describe anything
            return None

    def revision_timestamp(self, ref: str) -> datetime:
        """Committer timestamp of a revision."""
        seconds = run_git(self.repo, "log", "-1", "--format=%ct", ref).strip()
        return datetime.fromtimestamp(int(seconds), tz=timezone.utc)

    def tag(self, tag: str) -> None:
        run_git(self.repo, "tag", tag)

    def tag_exists(self, pattern: str) -> bool:
        return len(list_matching_tags(self.repo, pattern)) > 0

    def last_matching_tag(self, pattern: str) -> Optional[str]:
        tags = list_matching_tags(self.repo, pattern)
        return tags[-1] if tags else None

    def branch_containing_tag(self, tag: str) -> str:
        return find_branch_containing_tag(self.repo, tag)

    def remote_add(self, remote_name: str, url: str) -> None:
        add_remote(self.repo, remote_name, url)

    def remote_exists(self, remote_name: str) -> bool:
        return check_remote_exists(self.repo, remote_name)

    def remote_url(self, remote_name: str) -> Optional[str]:
        return get_remote_url(self.repo, remote_name)

    def fetch_remote(self, remote_name: str, depth: Optional[int] = None) -> None:
        fetch_remote(self.repo, remote_name, depth)

    def status_porcelain(self) -> str:
        # List every untracked file, not just its top-level directory
        return run_git(self.repo, "status", "--porcelain", "--untracked-files=all")

    def stage_all_and_commit(self, message: str) -> None:
        run_git(self.repo, "add", "--all")
        run_git(self.repo, "commit", "--no-verify", "-m", message)

    def push(self, remote_name: str, *refspecs: str) -> None:
        push_refspecs(self.repo, remote_name, list(refspecs))


def create_git_helper(settings: RepositorySettings) -> GitHelper:
    """Create the version-control facade for a working tree."""
    return GitHelper(settings)
