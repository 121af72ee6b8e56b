"""Configuration management for the PHP-Prefixer build."""

import os
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

from .errors import MissingPrerequisiteError
from .platform import find_executable, normalize_path, validate_git_availability

load_dotenv()  # Load .env file if it exists

ORIGIN_REMOTE = "origin"
DEFAULT_BACKREF_REMOTE = "prefixer-source"

DEFAULT_IGNORED_STATUS_PATHS = [
    "vendor/autoload.php",
    "vendor/composer/autoload_real.php",
    "vendor/composer/autoload_static.php",
    "vendor/composer/installed.php",
]


@dataclass(frozen=True)
class SourceSettings:
    """Identifies the source repository for one invocation."""

    repository_path: Path
    ref: str = ""
    repository: str = ""
    repository_url: str = ""
    server_url: str = "https://github.com"
    auth_token: str = ""
    fetch_depth: int = 0

    def clone_url(self) -> str:
        """
        Build the URL used to clone the source repository.

        An explicit ``repository_url`` (remote URL or local path) wins over
        ``server_url/repository``. The auth token is embedded for https URLs.

        Returns:
            Clone URL, or an empty string when nothing identifies the source
        """
        if self.repository_url:
            url = self.repository_url
        elif self.repository:
            url = f"{self.server_url.rstrip('/')}/{self.repository}.git"
        else:
            return ""

        if self.auth_token and url.startswith("https://"):
            parts = urlsplit(url)
            netloc = f"x-access-token:{self.auth_token}@{parts.hostname}"
            if parts.port:
                netloc = f"{netloc}:{parts.port}"
            url = urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

        return url

    def redacted_url(self) -> str:
        """Clone URL safe for log messages."""
        url = self.clone_url()
        if self.auth_token:
            url = url.replace(self.auth_token, "***")
        return url


@dataclass(frozen=True)
class PrefixerSettings:
    """Credentials and options handed to the PHP-Prefixer CLI."""

    personal_access_token: str
    project_id: str
    gh_personal_access_token: str = ""
    schema: str = ""
    cli_path: Optional[Path] = None

    def validate(self) -> None:
        if not self.personal_access_token:
            raise MissingPrerequisiteError("personal_access_token not defined")
        if not self.project_id:
            raise MissingPrerequisiteError("project_id not defined")


@dataclass
class Config:
    """Configuration class for the build with validation and defaults."""

    # Logging
    log_level: str = "INFO"

    # Remotes
    backref_remote: str = DEFAULT_BACKREF_REMOTE

    # Change detection
    ignored_status_paths: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORED_STATUS_PATHS))

    # Files that must be regenerated by the prefixer, never carried over from source
    stripped_files: List[str] = field(default_factory=lambda: ["composer.json", "composer.lock"])
    stripped_dirs: List[str] = field(default_factory=lambda: ["vendor", "vendor_prefixed"])
    mirror_excludes: List[str] = field(default_factory=lambda: ["vendor", "vendor_prefixed"])

    # Tools
    composer_path: Optional[str] = None

    # Storage
    work_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.work_dir, str):
            self.work_dir = Path(self.work_dir)
        self.work_dir = normalize_path(self.work_dir)

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        self.log_level = self.log_level.upper()
        if self.log_level not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")

        if not self.backref_remote:
            raise ValueError("backref_remote must not be empty")

        # The back-reference remote must never clash with the provider's remote
        if self.backref_remote == ORIGIN_REMOTE:
            raise ValueError(f"backref_remote cannot be '{ORIGIN_REMOTE}'")


def _split_list(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def load_configuration() -> Config:
    """Load configuration from environment variables."""
    try:
        kwargs = {
            'log_level': os.getenv("PHP_PREFIXER_LOG_LEVEL", "INFO"),
            'backref_remote': os.getenv("PHP_PREFIXER_BACKREF_REMOTE", DEFAULT_BACKREF_REMOTE),
            'composer_path': os.getenv("PHP_PREFIXER_COMPOSER") or None,
        }

        ignored = _split_list(os.getenv("PHP_PREFIXER_IGNORED_STATUS_PATHS"))
        if ignored is not None:
            kwargs['ignored_status_paths'] = ignored

        work_dir = os.getenv("PHP_PREFIXER_WORK_DIR")
        if work_dir:
            kwargs['work_dir'] = Path(work_dir)

        return Config(**kwargs)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def load_source_settings(repository_path: Path, ref: Optional[str] = None) -> SourceSettings:
    """Load the source repository settings from environment variables."""
    try:
        return SourceSettings(
            repository_path=Path(repository_path),
            ref=ref if ref is not None else os.getenv("PHP_PREFIXER_REF", ""),
            repository=os.getenv("PHP_PREFIXER_REPOSITORY", ""),
            repository_url=os.getenv("PHP_PREFIXER_REPOSITORY_URL", ""),
            server_url=os.getenv("PHP_PREFIXER_SERVER_URL", "https://github.com"),
            auth_token=os.getenv("PHP_PREFIXER_GH_TOKEN", ""),
            fetch_depth=int(os.getenv("PHP_PREFIXER_FETCH_DEPTH", "0")),
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def load_prefixer_settings() -> PrefixerSettings:
    """Load the PHP-Prefixer credentials from environment variables."""
    cli_path = os.getenv("PHP_PREFIXER_CLI_PHAR")

    settings = PrefixerSettings(
        personal_access_token=os.getenv("PHP_PREFIXER_PERSONAL_ACCESS_TOKEN", ""),
        project_id=os.getenv("PHP_PREFIXER_PROJECT_ID", ""),
        gh_personal_access_token=os.getenv("PHP_PREFIXER_GH_TOKEN", ""),
        schema=os.getenv("PHP_PREFIXER_SCHEMA", ""),
        cli_path=Path(cli_path) if cli_path else None,
    )
    settings.validate()
    return settings


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    # Check work directory permissions
    try:
        config.work_dir.mkdir(parents=True, exist_ok=True)
        test_file = config.work_dir / ".php_prefixer_write_test"
        test_file.write_text("test")
        test_file.unlink()
    except PermissionError:
        errors.append(f"ERROR: No write permission for work directory: {config.work_dir}")
    except OSError as e:
        errors.append(f"ERROR: Cannot access work directory {config.work_dir}: {e}")

    git_available, git_error = validate_git_availability()
    if not git_available:
        errors.append(f"ERROR: {git_error}")

    composer = config.composer_path or "composer"
    if find_executable(composer) is None:
        errors.append(f"ERROR: Required executable not found: {composer}")

    if not config.ignored_status_paths:
        errors.append("WARNING: No ignored status paths configured, generated autoload files will always publish")

    logging.getLogger('php_prefixer_build.config').debug(
        f"Configuration validated with {len(errors)} issue(s)"
    )

    return errors
