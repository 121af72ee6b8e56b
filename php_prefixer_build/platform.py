"""Cross-platform utilities: tool discovery and temporary working directories."""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Union

from .errors import MissingPrerequisiteError


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    Args:
        path: Path to normalize

    Returns:
        Normalized Path object
    """
    if isinstance(path, str):
        path = Path(path)

    # Expand user home directory (~) first, then resolve to absolute path
    return path.expanduser().resolve()


def find_executable(name: str) -> Optional[str]:
    """Return the absolute path of an executable, or None when it is not installed."""
    if os.path.isabs(name):
        return name if os.access(name, os.X_OK) else None
    return shutil.which(name)


def require_executable(name: str) -> str:
    """
    Locate an executable or fail fast.

    Raises:
        MissingPrerequisiteError: when the executable cannot be found
    """
    path = find_executable(name)
    if path is None:
        raise MissingPrerequisiteError(f"Unable to locate executable file: {name}")
    return path


def make_temp_path(parent: Optional[Path] = None) -> Path:
    """Create a fresh, exclusively owned temporary directory."""
    if parent is not None:
        parent.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix="tmp-", dir=str(parent) if parent else None))


def ensure_writable_directory(path: Path) -> None:
    """
    Check that a working directory exists and can be written.

    Raises:
        MissingPrerequisiteError: when the directory is missing or read-only
    """
    if not path.is_dir():
        raise MissingPrerequisiteError(f"The {path} does not exist")
    if not os.access(path, os.W_OK):
        raise MissingPrerequisiteError(f"The {path} is not writable")


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Validate that Git is available on the current platform.

    Returns:
        Tuple of (is_available, error_message)
    """
    try:
        result = subprocess.run(
            ["git", "--version"],
            capture_output=True,
            text=True,
            timeout=10
        )

        if result.returncode == 0:
            return True, None
        else:
            return False, f"Git command failed: {result.stderr}"

    except FileNotFoundError:
        return False, "Git executable 'git' not found"
    except subprocess.TimeoutExpired:
        return False, "Git command timed out"
