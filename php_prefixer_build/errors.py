"""Error handling framework for the PHP-Prefixer build."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional


class PrefixerBuildError(Exception):
    """Base class for every fatal build error."""


class TopologyError(PrefixerBuildError):
    """A tag exists but no branch contains it."""


class MissingPrerequisiteError(PrefixerBuildError):
    """A manifest, directory, tool or setting required by the build is missing."""


class DependencyInstallError(PrefixerBuildError):
    """The dependency manager exited with a non-zero status."""


class TransformationError(PrefixerBuildError):
    """The PHP-Prefixer CLI exited with a non-zero status."""

    def __init__(self, message: str, exit_code: int, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class GitOperationError(PrefixerBuildError):
    """A git command or transport failed."""

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class InvalidTransitionError(PrefixerBuildError):
    """A pipeline operation was called out of order."""


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    TOPOLOGY = "topology"
    PREREQUISITE = "prerequisite"
    DEPENDENCIES = "dependencies"
    TRANSFORMATION = "transformation"
    GIT = "git"
    PIPELINE = "pipeline"
    SYSTEM = "system"


_CATEGORIES = [
    (TopologyError, ErrorCategory.TOPOLOGY, "TOPOLOGY_NO_BRANCH"),
    (MissingPrerequisiteError, ErrorCategory.PREREQUISITE, "MISSING_PREREQUISITE"),
    (DependencyInstallError, ErrorCategory.DEPENDENCIES, "DEPENDENCY_INSTALL_FAILED"),
    (TransformationError, ErrorCategory.TRANSFORMATION, "TRANSFORMATION_FAILED"),
    (GitOperationError, ErrorCategory.GIT, "GIT_OPERATION_FAILED"),
    (InvalidTransitionError, ErrorCategory.PIPELINE, "INVALID_TRANSITION"),
]


@dataclass
class ErrorResponse:
    """Standardized error report for a failed invocation."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category
        }
        if self.context:
            result["context"] = self.context
        return result


class ErrorHandler:
    """Turns build exceptions into logged, structured error responses."""

    def __init__(self):
        self.logger = logging.getLogger('php_prefixer_build.error_handler')

    def categorize(self, error: Exception) -> tuple[ErrorCategory, str]:
        for error_type, category, error_code in _CATEGORIES:
            if isinstance(error, error_type):
                return category, error_code

        if isinstance(error, PermissionError):
            return ErrorCategory.PREREQUISITE, "PERMISSION_DENIED"
        if isinstance(error, OSError):
            return ErrorCategory.SYSTEM, "FILE_IO_ERROR"
        return ErrorCategory.SYSTEM, "UNEXPECTED_ERROR"

    def handle_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """
        Build an error response for a fatal error and log it.

        Args:
            error: The exception that aborted the invocation
            context: Extra information such as the resolved references

        Returns:
            ErrorResponse describing the failure
        """
        context = dict(context or {})
        category, error_code = self.categorize(error)
        message = str(error) or error.__class__.__name__

        if isinstance(error, TransformationError):
            context['exit_code'] = error.exit_code
        elif isinstance(error, GitOperationError) and error.command:
            context['command'] = error.command

        error_response = ErrorResponse(
            error="Prefixing failed",
            error_code=error_code,
            message=message,
            timestamp=datetime.now().isoformat(),
            category=category.value,
            context=context or None
        )

        self.logger.error(
            f"{category.value} error: {message}",
            extra={
                'operation': 'prefix_error',
                'error_code': error_code,
            }
        )

        if isinstance(error, TransformationError) and error.output:
            # Surfaced verbatim
            self.logger.error(error.output)

        return error_response


# Initialize global error handler
error_handler = ErrorHandler()
