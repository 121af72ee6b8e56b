"""Reference resolution: which prefixed branch and tag receive the output."""

import logging
from dataclasses import dataclass

from .config import ORIGIN_REMOTE
from .git_sync import VersionControl
from .naming import PREFIXED_BASE_NAME, prefixed_ref_name


@dataclass(frozen=True)
class ResolvedReferences:
    """Source refs of one invocation and their prefixed counterparts."""
    source_branch: str
    source_tag: str
    target_branch: str
    target_tag: str
    has_remote_origin: bool

    def __post_init__(self):
        if not self.target_branch:
            raise ValueError("target_branch must not be empty")
        if self.target_tag and not self.source_tag:
            raise ValueError("target_tag requires a source_tag")

    @property
    def tagged(self) -> bool:
        return bool(self.target_tag)


def resolve_references(source_git: VersionControl, ref: str) -> ResolvedReferences:
    """
    Resolve the prefixed branch and tag for the current source checkout.

    '' / 'main' / 'master'   -> branch 'prefixed'
    branch '7.1'             -> branch 'prefixed-7.1'
    tag '7.1.1'              -> branch 'prefixed', tag 'prefixed-7.1.1'

    Args:
        source_git: Facade bound to the source checkout
        ref: Ref requested by the caller; may be a branch, a tag pattern or empty

    Raises:
        TopologyError: when the matched tag is not contained in any branch
    """
    logger = logging.getLogger('php_prefixer_build.references')

    has_remote_origin = source_git.remote_exists(ORIGIN_REMOTE)

    source_branch = source_git.current_branch()
    source_tag = source_git.last_matching_tag(ref) or ""

    if not source_tag:
        references = ResolvedReferences(
            source_branch=source_branch,
            source_tag="",
            target_branch=prefixed_ref_name(source_branch),
            target_tag="",
            has_remote_origin=has_remote_origin,
        )
    else:
        # Tagged releases are published on the base lineage
        references = ResolvedReferences(
            source_branch=source_git.branch_containing_tag(source_tag),
            source_tag=source_tag,
            target_branch=PREFIXED_BASE_NAME,
            target_tag=prefixed_ref_name(source_tag),
            has_remote_origin=has_remote_origin,
        )

    logger.info(
        f"Resolved '{ref or '(default)'}': branch {references.source_branch or '(detached)'} -> "
        f"{references.target_branch}"
        + (f", tag {references.source_tag} -> {references.target_tag}" if references.tagged else "")
    )
    return references
