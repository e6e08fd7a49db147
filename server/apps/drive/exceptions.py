"""Exceptions for drive app."""

from typing import Final

from django.core.exceptions import ValidationError

MISSING_CONFIGURATION_MESSAGE: Final = 'MISSKEY API configuration is missing'


class MisskeyConfigurationError(Exception):
    """Raised when the Misskey API URL or key is not configured."""

    def __init__(self, message: str = MISSING_CONFIGURATION_MESSAGE) -> None:
        """Initialize MisskeyConfigurationError.

        Args:
            message: Human readable reason.
        """
        super().__init__(message)


class MisskeyAPIError(Exception):
    """Raised when a Misskey API call fails.

    Covers network failures, non-2xx replies and undecodable bodies.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        """Initialize MisskeyAPIError.

        Args:
            message: Error message, taken from the API reply when present.
            status_code: HTTP status of the reply, None for network errors.
            code: Misskey error code (e.g. ``NO_SUCH_FOLDER``).
        """
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class FolderNotFoundError(Exception):
    """Raised when a folder path that must exist cannot be resolved."""

    def __init__(self, path: str) -> None:
        """Initialize FolderNotFoundError.

        Args:
            path: Logical drive path that was looked up.
        """
        self.path = path
        super().__init__('Parent directory not found')


class ClassifierError(Exception):
    """Raised when the external NSFW classifier fails."""


class FeatureDisabledError(Exception):
    """Raised when an operation is switched off in settings."""


class PathIsolationError(ValidationError):
    """Raised when a path escapes the caller's drive directory."""
