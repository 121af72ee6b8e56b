"""Naming convention of the prefixed lineage."""

PREFIXED_BASE_NAME = "prefixed"

DEFAULT_BRANCH_NAMES = ("main", "master")


def prefixed_ref_name(ref: str) -> str:
    """
    Map a source branch or tag name to its prefixed counterpart.

    '' / 'main' / 'master' -> 'prefixed'
    branch '7.1'           -> 'prefixed-7.1'
    tag '7.1.1'            -> 'prefixed-7.1.1'
    """
    if not ref or ref in DEFAULT_BRANCH_NAMES:
        return PREFIXED_BASE_NAME

    return f"{PREFIXED_BASE_NAME}-{ref}"
