"""Git functionality for the PHP-Prefixer build."""

from .helper import GitHelper, RepositorySettings, VersionControl, create_git_helper
from .clone import clone_source
from .performance_logger import PerformanceLogger

__all__ = [
    'GitHelper',
    'RepositorySettings',
    'VersionControl',
    'create_git_helper',
    'clone_source',
    'PerformanceLogger'
]
