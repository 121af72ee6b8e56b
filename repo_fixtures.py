"""
Shared fixtures for the test suite: real git repositories in temp dirs and
in-process fakes of the composer and PHP-Prefixer collaborators.
"""

import json
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from php_prefixer_build.config import PrefixerSettings, SourceSettings

PROJECT_MANIFEST = {
    "name": "acme/plugin",
    "require": {"psr/log": "^1.1"},
    "autoload": {"psr-4": {"Acme\\Plugin\\": "src/"}},
}


def git(cwd: Path, *args: str, date: Optional[str] = None) -> str:
    """Run git in a directory and return its stripped stdout."""
    env = dict(os.environ)
    if date:
        env["GIT_AUTHOR_DATE"] = date
        env["GIT_COMMITTER_DATE"] = date

    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
        env=env
    )
    return result.stdout.strip()


def init_repo(repo_dir: Path, branch: str = "master") -> Path:
    """Initialize a repository with a local test identity."""
    repo_dir.mkdir(parents=True, exist_ok=True)
    git(repo_dir, "init", f"--initial-branch={branch}")
    git(repo_dir, "config", "user.name", "Test User")
    git(repo_dir, "config", "user.email", "test@example.com")
    git(repo_dir, "config", "commit.gpgsign", "false")
    git(repo_dir, "config", "tag.gpgsign", "false")
    return repo_dir


def init_bare_repo(repo_dir: Path) -> Path:
    repo_dir.mkdir(parents=True, exist_ok=True)
    git(repo_dir, "init", "--bare")
    return repo_dir


def commit_file(repo_dir: Path, name: str, content: str, message: str, date: Optional[str] = None) -> str:
    """Write a file, commit it and return the new revision."""
    path = repo_dir / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    git(repo_dir, "add", "--all")
    git(repo_dir, "commit", "-m", message, date=date)
    return git(repo_dir, "rev-parse", "HEAD")


def create_php_project(repo_dir: Path, branch: str = "master", date: Optional[str] = None) -> Path:
    """Create a committed composer project."""
    init_repo(repo_dir, branch)
    (repo_dir / "src").mkdir(parents=True, exist_ok=True)
    (repo_dir / "src" / "Plugin.php").write_text("<?php\n\nnamespace Acme\\Plugin;\n\nclass Plugin {}\n")
    (repo_dir / "composer.lock").write_text("{}\n")
    commit_file(repo_dir, "composer.json", json.dumps(PROJECT_MANIFEST, indent=4) + "\n", "Initial commit", date=date)
    return repo_dir


def create_source_with_upstream(root: Path, branch: str = "master", date: Optional[str] = None):
    """
    Create a bare upstream and a source checkout whose origin points at it.

    Returns:
        Tuple of (source_dir, upstream_dir)
    """
    upstream_dir = init_bare_repo(root / "upstream.git")
    source_dir = create_php_project(root / "source", branch, date=date)
    git(source_dir, "remote", "add", "origin", str(upstream_dir))
    git(source_dir, "push", "origin", branch)
    return source_dir, upstream_dir


def make_source_settings(source_dir: Path, ref: str = "") -> SourceSettings:
    return SourceSettings(repository_path=source_dir, ref=ref)


def make_prefixer_settings(**overrides) -> PrefixerSettings:
    values = {'personal_access_token': "test-token", 'project_id': "1234"}
    values.update(overrides)
    return PrefixerSettings(**values)


class FakeInstaller:
    """Stands in for composer; every run rewrites the autoloader."""

    def __init__(self):
        self.calls: List[Path] = []

    def install_and_optimize(self, working_dir: Path) -> bool:
        working_dir = Path(working_dir)
        self.calls.append(working_dir)

        autoload = working_dir / "vendor" / "autoload.php"
        autoload.parent.mkdir(parents=True, exist_ok=True)
        # The real autoloader embeds a random class name on every run
        autoload.write_text(f"<?php // ComposerAutoloaderInit{len(self.calls)} {working_dir}\n")
        return True


class FakeTransformer:
    """Stands in for php-prefixer-cli.phar with a deterministic output."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.calls = []
        self.fail_with = fail_with

    def prefix(self, source_dir: Path, target_dir: Path, settings: PrefixerSettings) -> None:
        self.calls.append((Path(source_dir), Path(target_dir)))
        if self.fail_with is not None:
            raise self.fail_with

        manifest = json.loads((Path(source_dir) / "composer.json").read_text(encoding='utf-8'))
        manifest["autoload"]["classmap"] = ["vendor_prefixed"]
        (Path(target_dir) / "composer.json").write_text(json.dumps(manifest, indent=4) + "\n")

        prefixed = Path(target_dir) / "vendor_prefixed" / "psr" / "log"
        prefixed.mkdir(parents=True, exist_ok=True)
        (prefixed / "LoggerInterface.php").write_text(
            "<?php\n\nnamespace Acme\\Prefixed\\Psr\\Log;\n\ninterface LoggerInterface {}\n"
        )
