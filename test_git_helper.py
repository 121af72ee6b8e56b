#!/usr/bin/env python3
"""
Integration tests for the GitPython version-control facade.

Every test works on real repositories created in a temporary directory.
"""

import shutil
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from php_prefixer_build.errors import GitOperationError, TopologyError
from php_prefixer_build.git_sync import GitHelper, RepositorySettings, create_git_helper
from repo_fixtures import commit_file, git, init_bare_repo, init_repo


class TestGitHelper(unittest.TestCase):
    """Test cases for GitHelper."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.repo_dir = init_repo(self.temp_dir / "repo")
        commit_file(self.repo_dir, "README.md", "# Test\n", "Initial commit", date="2020-01-02T00:00:00+00:00")
        self.helper = create_git_helper(RepositorySettings(self.repo_dir))

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_init_creates_repository_with_identity(self):
        helper = GitHelper(RepositorySettings(self.temp_dir / "fresh", initial_branch="main"))
        helper.init()

        self.assertTrue((self.temp_dir / "fresh" / ".git").is_dir())
        self.assertTrue(git(self.temp_dir / "fresh", "config", "user.name"))
        self.assertTrue(git(self.temp_dir / "fresh", "config", "user.email"))

    def test_not_a_repository(self):
        plain_dir = self.temp_dir / "plain"
        plain_dir.mkdir()
        helper = GitHelper(RepositorySettings(plain_dir))

        with self.assertRaises(GitOperationError):
            helper.current_branch()

    def test_branch_exists(self):
        self.assertTrue(self.helper.branch_exists("master"))
        self.assertTrue(self.helper.branch_exists("mas*"))
        self.assertFalse(self.helper.branch_exists("prefixed"))

    def test_configure_identity_fills_missing_identity(self):
        git(self.repo_dir, "config", "--unset", "user.name")
        git(self.repo_dir, "config", "--unset", "user.email")

        self.helper.configure_identity()
        commit_file(self.repo_dir, "CHANGELOG.md", "- init\n", "Changelog")

        self.assertTrue(git(self.repo_dir, "config", "user.name"))
        self.assertTrue(git(self.repo_dir, "config", "user.email"))

    def test_checkout_new_branch(self):
        self.helper.checkout_new_branch("prefixed-7.1")

        self.assertEqual(self.helper.current_branch(), "prefixed-7.1")
        with self.assertRaises(GitOperationError):
            self.helper.checkout_new_branch("prefixed-7.1")

    def test_checkout_to_branch_creates_missing_branch(self):
        created = self.helper.checkout_to_branch("prefixed")

        self.assertTrue(created)
        self.assertEqual(self.helper.current_branch(), "prefixed")

    def test_checkout_to_branch_uses_existing_branch(self):
        git(self.repo_dir, "branch", "7.0")

        created = self.helper.checkout_to_branch("7.0")

        self.assertFalse(created)
        self.assertEqual(self.helper.current_branch(), "7.0")

    def test_checkout_to_branch_resets_to_remote_branch(self):
        upstream = init_bare_repo(self.temp_dir / "upstream.git")
        git(self.repo_dir, "remote", "add", "prefixer-source", str(upstream))
        git(self.repo_dir, "push", "prefixer-source", "master:prefixed")
        self.helper.fetch_remote("prefixer-source")

        created = self.helper.checkout_to_branch("prefixed", "prefixer-source")

        self.assertFalse(created)
        self.assertEqual(self.helper.current_branch(), "prefixed")
        self.assertEqual(
            self.helper.current_revision(),
            git(self.repo_dir, "rev-parse", "prefixer-source/prefixed")
        )

    def test_checkout_unknown_ref_fails(self):
        with self.assertRaises(GitOperationError) as context:
            self.helper.checkout("does-not-exist")

        self.assertEqual(context.exception.command, "checkout")

    def test_detached_head_has_no_current_branch(self):
        revision = self.helper.current_revision()
        self.helper.checkout(revision)

        self.assertEqual(self.helper.current_branch(), "")

    def test_current_tag(self):
        self.assertIsNone(self.helper.current_tag())

        self.helper.tag("1.0.0")

        self.assertEqual(self.helper.current_tag(), "1.0.0")

    def test_tag_queries(self):
        self.helper.tag("1.0.0")
        commit_file(self.repo_dir, "CHANGELOG.md", "1.1.0\n", "Release 1.1.0")
        self.helper.tag("1.1.0")

        self.assertTrue(self.helper.tag_exists("1.0.0"))
        self.assertTrue(self.helper.tag_exists("1.*"))
        self.assertFalse(self.helper.tag_exists("2.*"))
        self.assertEqual(self.helper.last_matching_tag("1.*"), "1.1.0")
        self.assertEqual(self.helper.last_matching_tag("refs/tags/1.0.0"), "1.0.0")
        self.assertIsNone(self.helper.last_matching_tag("2.*"))
        self.assertIsNone(self.helper.last_matching_tag(""))

    def test_branch_containing_tag(self):
        self.helper.tag("1.0.0")

        self.assertEqual(self.helper.branch_containing_tag("1.0.0"), "master")

    def test_branch_containing_orphan_tag_fails(self):
        git(self.repo_dir, "checkout", "--orphan", "orphan")
        commit_file(self.repo_dir, "orphan.txt", "orphan\n", "Orphan commit")
        git(self.repo_dir, "tag", "9.9.9")
        git(self.repo_dir, "checkout", "--force", "master")
        git(self.repo_dir, "branch", "-D", "orphan")

        with self.assertRaises(TopologyError) as context:
            self.helper.branch_containing_tag("9.9.9")

        self.assertEqual(str(context.exception), "No branch found")

    def test_revision_timestamp(self):
        timestamp = self.helper.revision_timestamp("HEAD")

        self.assertEqual(timestamp, datetime(2020, 1, 2, tzinfo=timezone.utc))

    def test_remotes(self):
        self.assertFalse(self.helper.remote_exists("prefixer-source"))
        self.assertIsNone(self.helper.remote_url("prefixer-source"))

        self.helper.remote_add("prefixer-source", "/tmp/first")
        self.helper.remote_add("prefixer-source", "/tmp/second")

        self.assertTrue(self.helper.remote_exists("prefixer-source"))
        self.assertEqual(self.helper.remote_url("prefixer-source"), "/tmp/second")

    def test_status_lists_nested_untracked_files(self):
        nested = self.repo_dir / "vendor" / "composer"
        nested.mkdir(parents=True)
        (nested / "installed.php").write_text("<?php return [];\n")

        status = self.helper.status_porcelain()

        self.assertIn("vendor/composer/installed.php", status)

    def test_stage_all_and_commit(self):
        (self.repo_dir / "new.txt").write_text("new\n")
        before = self.helper.current_revision()

        self.helper.stage_all_and_commit("Publish prefixed build")

        self.assertNotEqual(self.helper.current_revision(), before)
        self.assertEqual(self.helper.status_porcelain().strip(), "")
        self.assertEqual(git(self.repo_dir, "log", "-1", "--format=%s"), "Publish prefixed build")

    def test_push_explicit_refspecs(self):
        upstream = init_bare_repo(self.temp_dir / "upstream.git")
        self.helper.remote_add("prefixer-source", str(upstream))
        self.helper.checkout_to_branch("prefixed")
        self.helper.tag("prefixed-1.0.0")

        self.helper.push(
            "prefixer-source",
            "refs/heads/prefixed:refs/heads/prefixed",
            "refs/tags/prefixed-1.0.0:refs/tags/prefixed-1.0.0"
        )

        self.assertEqual(git(upstream, "branch", "--list", "prefixed").strip("* "), "prefixed")
        self.assertEqual(git(upstream, "tag", "--list", "prefixed-1.0.0"), "prefixed-1.0.0")

    def test_fetch_remote_then_remote_branch_exists(self):
        upstream = init_bare_repo(self.temp_dir / "upstream.git")
        git(self.repo_dir, "push", str(upstream), "master:7.0")
        self.helper.remote_add("prefixer-source", str(upstream))

        self.assertFalse(self.helper.branch_exists("7.0", "prefixer-source"))
        self.helper.fetch_remote("prefixer-source")
        self.assertTrue(self.helper.branch_exists("7.0", "prefixer-source"))


def run_tests():
    """Run all git helper tests."""
    print("Running Git Helper Tests")
    print("=" * 60)

    test_suite = unittest.TestLoader().loadTestsFromTestCase(TestGitHelper)
    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(test_suite)

    return len(result.failures) == 0 and len(result.errors) == 0


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
