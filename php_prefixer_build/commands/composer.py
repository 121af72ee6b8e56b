"""Composer invocation: the dependency-manager collaborator."""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

from ..errors import DependencyInstallError, MissingPrerequisiteError
from ..platform import require_executable

GLOBAL_OPTIONS = ["--no-interaction", "--no-plugins"]


class DependencyInstaller(Protocol):
    """Installs a project's dependencies in a working directory."""

    def install_and_optimize(self, working_dir: Path) -> bool: ...


class ComposerHelper:
    """Runs `composer install` and `composer dump-autoload` for a project."""

    def __init__(self, composer_path: Optional[str] = None):
        self.composer_path = composer_path or "composer"
        self.logger = logging.getLogger('php_prefixer_build.commands.composer')

    def install_args(self, working_dir: Path) -> List[str]:
        return [
            "install",
            "--classmap-authoritative",
            "--no-dev",
            "--no-scripts",
            "--no-progress",
            "--ignore-platform-reqs",
            "--prefer-dist",
            "-vv",
            *GLOBAL_OPTIONS,
            f"--working-dir={working_dir}",
        ]

    def dump_autoload_args(self, working_dir: Path) -> List[str]:
        return [
            "dump-autoload",
            "--classmap-authoritative",
            "--no-dev",
            "--no-scripts",
            "--ignore-platform-reqs",
            *GLOBAL_OPTIONS,
            f"--working-dir={working_dir}",
        ]

    def install_and_optimize(self, working_dir: Path) -> bool:
        """
        Install the project dependencies and dump an optimized autoloader.

        Raises:
            MissingPrerequisiteError: when the working directory or composer is missing
            DependencyInstallError: when composer exits with a non-zero status
        """
        working_dir = Path(working_dir)
        if not working_dir.is_dir():
            raise MissingPrerequisiteError(f"The {working_dir} does not exist")

        self._run(self.install_args(working_dir), working_dir)
        self._run(self.dump_autoload_args(working_dir), working_dir)

        return True

    def _run(self, args: List[str], working_dir: Path) -> str:
        composer = require_executable(self.composer_path)
        self.logger.debug(f"composer {' '.join(args)}")

        result = subprocess.run(
            [composer, *args],
            cwd=working_dir,
            capture_output=True,
            text=True,
        )

        if result.returncode != 0:
            raise DependencyInstallError(
                f"composer {args[0]} failed with exit code {result.returncode}: {result.stderr.strip()}"
            )

        return result.stdout
