"""
Idempotency gate: decides whether a publication is owed.

The gate runs after the target branch has been checked out in the target
working clone, so it reads the freshly fetched prefixed lineage directly:

1. branch created by this invocation -> owed (nothing to compare against)
2. prefixed tag expected             -> owed iff the tag does not exist yet
3. branch only                       -> owed iff the source revision is
                                        strictly newer than the prefixed tip
"""

import logging

from .git_sync import VersionControl
from .references import ResolvedReferences


def waiting_job(
    references: ResolvedReferences,
    branch_created: bool,
    source_git: VersionControl,
    target_git: VersionControl
) -> bool:
    """
    Decide whether the current source state still has to be prefixed.

    Args:
        references: Resolved references of the invocation
        branch_created: Whether synchronization had to create the target branch
        source_git: Facade bound to the source checkout
        target_git: Facade bound to the synchronized target clone

    Returns:
        True when a publication is owed
    """
    logger = logging.getLogger('php_prefixer_build.gate')

    if branch_created:
        logger.debug(f"Branch {references.target_branch} never prefixed")
        return True

    if references.tagged:
        # A published tag is permanent
        tag_exists = target_git.tag_exists(references.target_tag)
        logger.debug(f"Tag {references.target_tag} exists: {tag_exists}")
        return not tag_exists

    source_date = source_git.revision_timestamp("HEAD")
    prefixed_date = target_git.revision_timestamp(references.target_branch)
    elapsed = (source_date - prefixed_date).total_seconds()

    logger.debug(
        f"Source revision {source_date.isoformat()}, "
        f"{references.target_branch} tip {prefixed_date.isoformat()}"
    )

    # The last prefixed commit is behind
    return elapsed > 0
