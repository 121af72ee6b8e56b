#!/usr/bin/env python3
"""
Tests for the repository synchronizer: target clone checkout and refresh.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from php_prefixer_build.config import Config
from php_prefixer_build.errors import MissingPrerequisiteError
from php_prefixer_build.git_sync import RepositorySettings, create_git_helper
from php_prefixer_build.references import resolve_references
from php_prefixer_build.synchronizer import RepositorySynchronizer, TargetContext
from repo_fixtures import FakeInstaller, create_php_project, create_source_with_upstream, git


class TestRepositorySynchronizer(unittest.TestCase):
    """Test cases for RepositorySynchronizer."""

    def setUp(self):
        print(f"\nSetting up test: {self._testMethodName}")
        self.temp_dir = Path(tempfile.mkdtemp())
        self.target_dir = self.temp_dir / "target"
        self.target_dir.mkdir()
        self.installer = FakeInstaller()

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def create_synchronizer(self, source_dir: Path) -> RepositorySynchronizer:
        source_git = create_git_helper(RepositorySettings(source_dir))
        target = TargetContext(
            path=self.target_dir,
            git=create_git_helper(RepositorySettings(self.target_dir)),
            backref_remote="prefixer-source"
        )
        return RepositorySynchronizer(source_dir, source_git, target, Config(), self.installer)

    def test_checkout_target_creates_prefixed_branch(self):
        source_dir, upstream_dir = create_source_with_upstream(self.temp_dir)
        synchronizer = self.create_synchronizer(source_dir)
        references = resolve_references(synchronizer.source_git, "")

        branch_created = synchronizer.checkout_target(references)

        self.assertTrue(branch_created)
        self.assertTrue((self.target_dir / ".git").is_dir())
        self.assertTrue((self.target_dir / "src" / "Plugin.php").is_file())
        self.assertEqual(git(self.target_dir, "branch", "--show-current"), "prefixed")
        self.assertEqual(git(self.target_dir, "remote", "get-url", "prefixer-source"), str(upstream_dir))
        print("  ✓ Created prefixed branch linked to the hosted origin")

    def test_checkout_target_reuses_published_branch(self):
        source_dir, upstream_dir = create_source_with_upstream(self.temp_dir)
        git(source_dir, "push", "origin", "master:prefixed")
        synchronizer = self.create_synchronizer(source_dir)
        references = resolve_references(synchronizer.source_git, "")

        branch_created = synchronizer.checkout_target(references)

        self.assertFalse(branch_created)
        self.assertEqual(git(self.target_dir, "branch", "--show-current"), "prefixed")

    def test_local_source_is_linked_by_path(self):
        source_dir = create_php_project(self.temp_dir / "source")
        synchronizer = self.create_synchronizer(source_dir)
        references = resolve_references(synchronizer.source_git, "")

        self.assertFalse(references.has_remote_origin)
        synchronizer.checkout_target(references)

        self.assertEqual(git(self.target_dir, "remote", "get-url", "prefixer-source"), str(source_dir))

    def test_refresh_target_strips_regenerated_files(self):
        source_dir = create_php_project(self.temp_dir / "source")
        (source_dir / "modules" / "blocks").mkdir(parents=True)
        (source_dir / "modules" / "blocks" / "composer.json").write_text("{}\n")
        git(source_dir, "add", "--all")
        git(source_dir, "commit", "-m", "Nested module")
        synchronizer = self.create_synchronizer(source_dir)
        synchronizer.checkout_target(resolve_references(synchronizer.source_git, ""))

        removed = synchronizer.refresh_target()

        self.assertEqual(self.installer.calls, [source_dir])
        self.assertFalse((self.target_dir / "composer.json").exists())
        self.assertFalse((self.target_dir / "composer.lock").exists())
        self.assertFalse((self.target_dir / "modules" / "blocks" / "composer.json").exists())
        self.assertFalse((self.target_dir / "vendor").exists())
        self.assertTrue((self.target_dir / "src" / "Plugin.php").exists())
        self.assertTrue((self.target_dir / ".git").is_dir())
        self.assertIn(self.target_dir / "composer.json", removed)
        print(f"  ✓ Stripped {len(removed)} path(s)")

    def test_refresh_target_keeps_source_vendor_out_of_target(self):
        source_dir = create_php_project(self.temp_dir / "source")
        synchronizer = self.create_synchronizer(source_dir)
        synchronizer.checkout_target(resolve_references(synchronizer.source_git, ""))

        synchronizer.refresh_target()

        self.assertTrue((source_dir / "vendor" / "autoload.php").exists())
        self.assertFalse((self.target_dir / "vendor").exists())

    def test_missing_target_directory_aborts(self):
        source_dir = create_php_project(self.temp_dir / "source")
        synchronizer = self.create_synchronizer(source_dir)
        shutil.rmtree(self.target_dir)

        with self.assertRaises(MissingPrerequisiteError):
            synchronizer.checkout_target(resolve_references(synchronizer.source_git, ""))


if __name__ == "__main__":
    unittest.main(verbosity=2)
