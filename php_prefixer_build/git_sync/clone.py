"""Source repository cloning using GitPython."""

import logging
from pathlib import Path

from git import Repo, GitCommandError

from ..config import SourceSettings
from ..errors import GitOperationError, MissingPrerequisiteError
from .utils import redact

HEADS_REF_PREFIX = "refs/heads/"
TAGS_REF_PREFIX = "refs/tags/"


def _short_ref(ref: str) -> str:
    for prefix in (HEADS_REF_PREFIX, TAGS_REF_PREFIX):
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def clone_source(settings: SourceSettings, destination: Path) -> Path:
    """
    Clone the source repository and check out the requested ref.

    This function performs the following operations:
    1. Validates that the source can be located
    2. Clones it into the destination (full history unless a depth is set)
    3. Checks out the requested ref; a branch gets a local tracking branch,
       a tag leaves a detached HEAD

    Args:
        settings: Source repository settings
        destination: Empty directory receiving the clone

    Returns:
        Path to the cloned working tree

    Raises:
        MissingPrerequisiteError: when no URL or path identifies the source
        GitOperationError: when cloning or checking out fails
    """
    logger = logging.getLogger('php_prefixer_build.git_sync.clone')

    url = settings.clone_url()
    if not url:
        raise MissingPrerequisiteError("Cannot clone source: no repository configured")

    kwargs = {'no_single_branch': True}
    if settings.fetch_depth:
        kwargs['depth'] = settings.fetch_depth

    logger.info(f"Cloning source repository from {settings.redacted_url()}")

    try:
        repo = Repo.clone_from(url, destination, **kwargs)
    except GitCommandError as e:
        message = redact(str(e))
        if settings.auth_token:
            message = message.replace(settings.auth_token, "***")
        raise GitOperationError(f"Git clone failed: {message}", command="clone") from e

    ref = _short_ref(settings.ref)
    if ref:
        try:
            repo.git.fetch("--tags", "--force", "origin")
            repo.git.checkout(ref)
        except GitCommandError as e:
            raise GitOperationError(f"Failed to check out '{ref}': {redact(str(e))}", command="checkout") from e

    logger.info(f"Source repository cloned into {destination}")
    return Path(destination)
