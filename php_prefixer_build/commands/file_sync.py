"""
File synchronization between the source checkout and the target working tree.

`mirror()` follows `rsync -a --delete --exclude=<dir>/` semantics: files are
copied with their metadata, target entries missing from the source are deleted,
and excluded directory names are neither copied nor deleted at any depth. The
target's own `.git` directory is left alone once it exists.
"""

import fnmatch
import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List

from ..errors import MissingPrerequisiteError

VCS_DIR = ".git"


def _is_excluded(name: str, excluded: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(name, pattern) for pattern in excluded)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _same_file(source: os.DirEntry, target: Path) -> bool:
    try:
        target_stat = target.stat(follow_symlinks=False)
    except FileNotFoundError:
        return False
    source_stat = source.stat(follow_symlinks=False)
    return (
        source_stat.st_size == target_stat.st_size
        and source_stat.st_mtime_ns == target_stat.st_mtime_ns
    )


def _mirror_tree(source_dir: Path, target_dir: Path, excluded: List[str]) -> None:
    source_entries = {entry.name: entry for entry in os.scandir(source_dir)}

    for entry in os.scandir(target_dir):
        if entry.is_dir(follow_symlinks=False) and _is_excluded(entry.name, excluded):
            continue
        if entry.name not in source_entries:
            _remove(Path(entry.path))

    for name, entry in source_entries.items():
        target = target_dir / name

        if entry.is_symlink():
            if target.exists() or target.is_symlink():
                _remove(target)
            os.symlink(os.readlink(entry.path), target)
        elif entry.is_dir():
            if _is_excluded(name, excluded):
                continue
            if target.is_symlink() or (target.exists() and not target.is_dir()):
                _remove(target)
            target.mkdir(exist_ok=True)
            _mirror_tree(Path(entry.path), target, excluded)
            shutil.copystat(entry.path, target)
        else:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            if not _same_file(entry, target):
                if target.exists() or target.is_symlink():
                    target.unlink()
                shutil.copy2(entry.path, target)


def mirror(source_dir: Path, target_dir: Path, excludes: Iterable[str] = ()) -> None:
    """
    Mirror the source directory into the target directory.

    Args:
        source_dir: Directory to copy from
        target_dir: Directory to copy into; created when missing
        excludes: Directory name patterns skipped at any depth

    Raises:
        MissingPrerequisiteError: when the source directory does not exist
    """
    logger = logging.getLogger('php_prefixer_build.commands.file_sync')
    source_dir = Path(source_dir)
    target_dir = Path(target_dir)

    if not source_dir.is_dir():
        raise MissingPrerequisiteError(f"The {source_dir} does not exist")

    target_dir.mkdir(parents=True, exist_ok=True)

    excluded = list(excludes)
    if (target_dir / VCS_DIR).exists():
        excluded.append(VCS_DIR)

    logger.debug(f"Mirroring {source_dir} -> {target_dir} (excluding {', '.join(excluded) or 'nothing'})")
    _mirror_tree(source_dir, target_dir, excluded)


def copy_version_control_dir(source_dir: Path, target_dir: Path) -> None:
    """Copy the source `.git` directory into the target directory."""
    source_git = Path(source_dir) / VCS_DIR
    if not source_git.is_dir():
        raise MissingPrerequisiteError(f"The {source_git} does not exist")

    target_git = Path(target_dir) / VCS_DIR
    target_git.mkdir(parents=True, exist_ok=True)
    _mirror_tree(source_git, target_git, [])


def strip_paths(root_dir: Path, file_names: Iterable[str], dir_names: Iterable[str]) -> List[Path]:
    """
    Recursively delete files and directories by name below root_dir.

    The `.git` directory is never searched.

    Returns:
        Deleted paths
    """
    logger = logging.getLogger('php_prefixer_build.commands.file_sync')
    root_dir = Path(root_dir)
    if not root_dir.is_dir():
        raise MissingPrerequisiteError(f"The {root_dir} does not exist")

    file_names = set(file_names)
    dir_names = set(dir_names)
    removed = []

    for current, dirs, files in os.walk(root_dir, topdown=True):
        current_path = Path(current)

        for name in list(dirs):
            if name == VCS_DIR:
                dirs.remove(name)
            elif name in dir_names:
                _remove(current_path / name)
                removed.append(current_path / name)
                dirs.remove(name)

        for name in files:
            if name in file_names:
                (current_path / name).unlink()
                removed.append(current_path / name)

    logger.debug(f"Stripped {len(removed)} path(s) from {root_dir}")
    return removed
