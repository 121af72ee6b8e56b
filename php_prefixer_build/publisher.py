"""Publisher: change detection, commit, tag and push of the prefixed output."""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .references import ResolvedReferences
from .synchronizer import TargetContext


def status_path(line: str) -> str:
    """Path of one `git status --porcelain` line; the new path for renames."""
    path = line[3:]
    if " -> " in path:
        path = path.split(" -> ", 1)[1]
    return path.strip('"')


def is_ignored(path: str, ignored_paths: Iterable[str]) -> bool:
    return any(path == ignored or path.endswith("/" + ignored) for ignored in ignored_paths)


def relevant_changes(status: str, ignored_paths: Iterable[str]) -> List[str]:
    """
    Filter `git status --porcelain` output through the ignore list.

    Autoloader files embed absolute paths and always show up as modified.
    A line is dropped when its path is an ignored path, or ends with one
    on a directory boundary.
    """
    ignored = list(ignored_paths)
    changes = []
    for line in status.splitlines():
        line = line.rstrip()
        if not line:
            continue
        if is_ignored(status_path(line), ignored):
            continue
        changes.append(line)
    return changes


def commit_message(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    timestamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"Publish prefixed build {timestamp}"


def branch_refspec(branch: str) -> str:
    return f"refs/heads/{branch}:refs/heads/{branch}"


def tag_refspec(tag: str) -> str:
    return f"refs/tags/{tag}:refs/tags/{tag}"


class Publisher:
    """Commits and pushes the prefixed working tree when it changed."""

    def __init__(self, target: TargetContext, references: ResolvedReferences, ignored_paths: Iterable[str]):
        self.target = target
        self.references = references
        self.ignored_paths = list(ignored_paths)
        self.logger = logging.getLogger('php_prefixer_build.publisher')

    def has_changes(self) -> bool:
        status = self.target.git.status_porcelain()
        changes = relevant_changes(status, self.ignored_paths)
        self.logger.debug(f"{len(changes)} relevant change(s) in {self.target.path}")
        return len(changes) > 0

    def tag_missing(self) -> bool:
        return self.references.tagged and not self.target.git.tag_exists(self.references.target_tag)

    def publish(self) -> bool:
        """
        Commit, tag and push the prefixed output.

        An unchanged tree is still tagged when the prefixed tag does not
        exist yet, e.g. a release cut on an already published commit.

        Returns:
            False when nothing relevant changed and no tag is owed, True after a push
        """
        git = self.target.git

        if self.has_changes():
            git.stage_all_and_commit(commit_message())
        elif self.tag_missing():
            self.logger.info(f"No changes, tagging the published tip as {self.references.target_tag}")
        else:
            self.logger.info("No changes to publish")
            return False

        refspecs = [branch_refspec(self.references.target_branch)]
        if self.references.tagged:
            if self.tag_missing():
                git.tag(self.references.target_tag)
            refspecs.append(tag_refspec(self.references.target_tag))

        git.push(self.target.backref_remote, *refspecs)

        self.logger.info(
            f"Published {self.references.target_branch}"
            + (f" and {self.references.target_tag}" if self.references.tagged else "")
        )
        return True
