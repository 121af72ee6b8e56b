"""
Repository synchronizer: prepares the target working clone.

Synchronization runs in two phases:

- `checkout_target()`: mirror the source into the target directory, link the
  back-reference remote, fetch it and check out (or create) the prefixed
  branch. The idempotency gate is evaluated after this phase.
- `refresh_target()`: install the source dependencies, re-mirror the source
  onto the prefixed branch and strip the files the prefixer regenerates.

A failure in either phase leaves the target directory in an unknown state;
the caller discards it with the pipeline cleanup.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .commands import DependencyInstaller, copy_version_control_dir, mirror, strip_paths
from .config import Config, ORIGIN_REMOTE
from .git_sync import VersionControl
from .platform import ensure_writable_directory
from .references import ResolvedReferences


@dataclass(frozen=True)
class TargetContext:
    """The target working clone owned by one invocation."""
    path: Path
    git: VersionControl
    backref_remote: str


class RepositorySynchronizer:
    """Brings the target clone's prefixed branch up to date with the source."""

    def __init__(
        self,
        source_dir: Path,
        source_git: VersionControl,
        target: TargetContext,
        config: Config,
        installer: DependencyInstaller,
        fetch_depth: Optional[int] = None
    ):
        self.source_dir = Path(source_dir)
        self.source_git = source_git
        self.target = target
        self.config = config
        self.installer = installer
        self.fetch_depth = fetch_depth
        self.logger = logging.getLogger('php_prefixer_build.synchronizer')

    def backref_url(self, references: ResolvedReferences) -> str:
        """Hosted origin of the source when it has one, its local path otherwise."""
        if references.has_remote_origin:
            url = self.source_git.remote_url(ORIGIN_REMOTE)
            if url:
                return url
        return str(self.source_dir)

    def mirror_source(self) -> None:
        ensure_writable_directory(self.target.path)

        if not (self.target.path / ".git").exists():
            copy_version_control_dir(self.source_dir, self.target.path)

        mirror(self.source_dir, self.target.path, self.config.mirror_excludes)

    def checkout_target(self, references: ResolvedReferences) -> bool:
        """
        Mirror the source and check out the prefixed branch in the target clone.

        Returns:
            True if the prefixed branch had to be created
        """
        self.mirror_source()

        remote = self.target.backref_remote
        self.target.git.remote_add(remote, self.backref_url(references))
        self.target.git.configure_identity()
        self.target.git.fetch_remote(remote, self.fetch_depth)

        branch_created = self.target.git.checkout_to_branch(references.target_branch, remote)

        self.logger.info(
            f"{'Created' if branch_created else 'Checked out'} {references.target_branch} "
            f"in {self.target.path}"
        )
        return branch_created

    def refresh_target(self) -> List[Path]:
        """
        Install source dependencies, re-mirror and strip regenerated files.

        Returns:
            Paths removed from the target working tree
        """
        self.installer.install_and_optimize(self.source_dir)

        self.mirror_source()

        return strip_paths(
            self.target.path,
            self.config.stripped_files,
            self.config.stripped_dirs
        )
