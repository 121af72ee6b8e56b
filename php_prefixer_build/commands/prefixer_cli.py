"""PHP-Prefixer CLI invocation: the transformation collaborator."""

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

from ..config import PrefixerSettings
from ..errors import MissingPrerequisiteError, TransformationError
from ..platform import find_executable

CLI_PHAR_NAME = "php-prefixer-cli.phar"
DOT_ENV_NAME = ".env"


class Transformer(Protocol):
    """Rewrites the source project into the target directory."""

    def prefix(self, source_dir: Path, target_dir: Path, settings: PrefixerSettings) -> None: ...


def generate_dot_env(target_dir: Path, source_dir: Path, settings: PrefixerSettings) -> Path:
    """Write the .env file read by the PHP-Prefixer CLI."""
    content = f"""
# Note: the .env file must be located in the php-prefixer-cli.phar directory

# Source Directory: The project source directory
SOURCE_DIRECTORY="{source_dir}"

# Target Directory: The target directory where the results are stored
TARGET_DIRECTORY="{target_dir}"

# Personal Access Token: The personal access token, generated on PHP-Prefixer Settings
PERSONAL_ACCESS_TOKEN="{settings.personal_access_token}"

# Project ID: The identification of the configured project on PHP-Prefixer Projects
PROJECT_ID="{settings.project_id}"

# GitHub Access Token: An optional GitHub token to access composer.json dependencies that are managed in private repositories.
GITHUB_ACCESS_TOKEN="{settings.gh_personal_access_token}"
"""
    dot_env = Path(target_dir) / DOT_ENV_NAME
    dot_env.write_text(content, encoding='utf-8')
    return dot_env


def remove_dot_env(target_dir: Path) -> None:
    dot_env = Path(target_dir) / DOT_ENV_NAME
    if dot_env.exists():
        dot_env.unlink()


def locate_cli(cli_path: Optional[Path] = None) -> str:
    """
    Find php-prefixer-cli.phar.

    Lookup order: explicit path, the current directory, the
    PHP_PREFIXER_CLI_PHAR environment variable, then PATH.

    Raises:
        MissingPrerequisiteError: when the CLI cannot be found
    """
    candidates = []
    if cli_path:
        candidates.append(Path(cli_path))
    candidates.append(Path.cwd() / CLI_PHAR_NAME)
    if os.getenv("PHP_PREFIXER_CLI_PHAR"):
        candidates.append(Path(os.environ["PHP_PREFIXER_CLI_PHAR"]))

    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)

    found = find_executable(CLI_PHAR_NAME)
    if found is None:
        raise MissingPrerequisiteError(f"Unable to locate executable file: {CLI_PHAR_NAME}")
    return found


class PhpPrefixerCommand:
    """Runs `php-prefixer-cli.phar prefix` for one source/target pair."""

    def __init__(self, cli_path: Optional[Path] = None):
        self.cli_path = cli_path
        self.logger = logging.getLogger('php_prefixer_build.commands.prefixer_cli')

    def build_args(self, source_dir: Path, target_dir: Path, settings: PrefixerSettings) -> List[str]:
        args = [
            "prefix",
            str(source_dir),
            str(target_dir),
            settings.personal_access_token,
            settings.project_id,
        ]

        if settings.gh_personal_access_token:
            args.append(f"--github-access-token={settings.gh_personal_access_token}")

        args.append("--delete-build")
        return args

    def prefix(self, source_dir: Path, target_dir: Path, settings: PrefixerSettings) -> None:
        """
        Prefix the source project into the target directory.

        The .env file is written next to the results for the duration of the
        run and removed afterwards, also when the CLI fails.

        Raises:
            MissingPrerequisiteError: when the CLI or the target directory is missing
            TransformationError: when the CLI exits with a non-zero status
        """
        target_dir = Path(target_dir)
        if not target_dir.is_dir():
            raise MissingPrerequisiteError(f"The {target_dir} does not exist")

        cli = locate_cli(self.cli_path or settings.cli_path)
        args = self.build_args(source_dir, target_dir, settings)

        self.logger.info(f"Running {Path(cli).name} prefix {source_dir} -> {target_dir}")

        generate_dot_env(target_dir, source_dir, settings)
        try:
            result = subprocess.run(
                [cli, *args],
                cwd=target_dir,
                capture_output=True,
                text=True,
            )
        finally:
            remove_dot_env(target_dir)

        if result.stdout:
            self.logger.debug(result.stdout)

        if result.returncode != 0:
            raise TransformationError(
                f"{CLI_PHAR_NAME} exited with code {result.returncode}",
                exit_code=result.returncode,
                output=(result.stdout + result.stderr).strip()
            )
