"""composer.json handling: presence check and schema override merge."""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .errors import MissingPrerequisiteError

MANIFEST_NAME = "composer.json"
EXTRA_KEY = "extra"
SCHEMA_KEY = "php-prefix"


def require_manifest(project_dir: Path) -> Path:
    """
    Return the project's composer.json path.

    Raises:
        MissingPrerequisiteError: when the project has no composer.json
    """
    manifest = Path(project_dir) / MANIFEST_NAME
    if not manifest.is_file():
        raise MissingPrerequisiteError(f"The {manifest} does not exist")
    return manifest


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_schema_override(project_dir: Path, schema: str) -> bool:
    """
    Merge a JSON schema override into `extra.php-prefix` of composer.json.

    Args:
        project_dir: Directory holding composer.json
        schema: JSON object text; empty means no override

    Returns:
        True if composer.json was rewritten

    Raises:
        MissingPrerequisiteError: on a missing manifest or an invalid override
    """
    if not schema or not schema.strip():
        return False

    logger = logging.getLogger('php_prefixer_build.manifest')
    manifest = require_manifest(project_dir)

    try:
        override = json.loads(schema)
    except json.JSONDecodeError as e:
        raise MissingPrerequisiteError(f"Invalid schema override: {e}") from e

    if not isinstance(override, dict):
        raise MissingPrerequisiteError("Invalid schema override: expected a JSON object")

    # php-prefix may be given with or without its enclosing key
    if SCHEMA_KEY in override and len(override) == 1:
        override = override[SCHEMA_KEY]

    try:
        document = json.loads(manifest.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise MissingPrerequisiteError(f"Invalid {MANIFEST_NAME}: {e}") from e

    extra = document.get(EXTRA_KEY) or {}
    extra[SCHEMA_KEY] = _merge(extra.get(SCHEMA_KEY) or {}, override)
    document[EXTRA_KEY] = extra

    manifest.write_text(json.dumps(document, indent=4) + "\n", encoding='utf-8')
    logger.info(f"Applied schema override to {manifest}")
    return True
