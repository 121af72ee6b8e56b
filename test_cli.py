#!/usr/bin/env python3
"""
Tests for the command line entry point and its exit codes.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from php_prefixer_build import cli
from php_prefixer_build.config import Config
from php_prefixer_build.errors import MissingPrerequisiteError, TopologyError
from php_prefixer_build.pipeline import Stage
from repo_fixtures import make_prefixer_settings


class TestMain(unittest.TestCase):
    """Test cases for cli.main()."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config = Config(work_dir=self.temp_dir)

        patches = [
            patch('php_prefixer_build.cli.setup_logging'),
            patch('php_prefixer_build.cli.load_configuration', return_value=self.config),
            patch('php_prefixer_build.cli.validate_configuration', return_value=[]),
            patch('php_prefixer_build.cli.load_prefixer_settings', return_value=make_prefixer_settings()),
            patch('php_prefixer_build.cli.clone_source'),
        ]
        self.mocks = [p.start() for p in patches]
        for p in patches:
            self.addCleanup(p.stop)
        self.clone_source = self.mocks[-1]

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def mock_build(self, outcome=None, error=None) -> MagicMock:
        build = MagicMock()
        build.references.target_branch = "prefixed"
        build.references.tagged = False
        if error is not None:
            build.run.side_effect = error
        else:
            build.run.return_value = outcome
        return build

    def test_published_exits_zero(self):
        build = self.mock_build(Stage.PUBLISHED)

        with patch('php_prefixer_build.cli.PrefixBuild.create', return_value=build) as create:
            exit_code = cli.main(["--ref", "1.1.1", "--repository", "acme/plugin"])

        self.assertEqual(exit_code, cli.EXIT_OK)
        source = create.call_args[0][0]
        self.assertEqual(source.ref, "1.1.1")
        self.assertEqual(source.repository, "acme/plugin")
        build.cleanup.assert_called_once()

    def test_no_change_exits_zero(self):
        build = self.mock_build(Stage.NO_CHANGE)

        with patch('php_prefixer_build.cli.PrefixBuild.create', return_value=build):
            self.assertEqual(cli.main([]), cli.EXIT_OK)

    def test_already_prefixed_exits_one(self):
        build = self.mock_build(Stage.SKIPPED)

        with patch('php_prefixer_build.cli.PrefixBuild.create', return_value=build):
            self.assertEqual(cli.main([]), cli.EXIT_ALREADY_PREFIXED)

        build.cleanup.assert_called_once()

    def test_failure_exits_two_and_cleans_up(self):
        build = self.mock_build(error=TopologyError("No branch found"))

        with patch('php_prefixer_build.cli.PrefixBuild.create', return_value=build):
            self.assertEqual(cli.main([]), cli.EXIT_FAILURE)

        build.cleanup.assert_called_once()
        # Source clone directory removed
        self.assertEqual(list(self.temp_dir.iterdir()), [])

    def test_create_failure_exits_two(self):
        with patch('php_prefixer_build.cli.PrefixBuild.create',
                   side_effect=MissingPrerequisiteError("The composer.json does not exist")):
            self.assertEqual(cli.main([]), cli.EXIT_FAILURE)

        self.assertEqual(list(self.temp_dir.iterdir()), [])

    def test_repository_url_override(self):
        build = self.mock_build(Stage.PUBLISHED)

        with patch('php_prefixer_build.cli.PrefixBuild.create', return_value=build):
            cli.main(["--repository-url", "/srv/git/plugin.git"])

        settings = self.clone_source.call_args[0][0]
        self.assertEqual(settings.repository_url, "/srv/git/plugin.git")

    def test_configuration_errors_exit_two(self):
        with patch('php_prefixer_build.cli.validate_configuration',
                   return_value=["ERROR: Git executable 'git' not found"]):
            self.assertEqual(cli.main([]), cli.EXIT_FAILURE)

        self.clone_source.assert_not_called()

    def test_invalid_log_level_exits_two(self):
        self.assertEqual(cli.main(["--log-level", "VERBOSE"]), cli.EXIT_FAILURE)


if __name__ == "__main__":
    unittest.main(verbosity=2)
