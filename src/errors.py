"""Error taxonomy for the core upgrade workflow."""

from __future__ import annotations


class CoreshiftError(Exception):
    """Base class for every failure reported by the upgrade workflow."""


class InvalidRequest(CoreshiftError):
    """Raised when zero or several version selectors are supplied."""


class ProjectNotRecognized(CoreshiftError):
    """Raised when the tracked primary package is not installed.

    This is a neutral outcome: the project is simply not one we manage.
    """


class UnreadableArtifact(CoreshiftError):
    """Raised when the manifest or lock file cannot be read."""


class MalformedArtifact(CoreshiftError):
    """Raised when the manifest or lock file has an unexpected shape."""


class WriteFailure(CoreshiftError):
    """Raised when the manifest cannot be written back to disk."""


class MalformedVersion(CoreshiftError, ValueError):
    """Raised when a version string cannot be parsed."""


class CatalogUnavailable(CoreshiftError):
    """Raised when the package catalog cannot be queried."""


class ResolverFailed(CoreshiftError):
    """Raised when the external resolver exits with a non-zero status."""

    def __init__(self, exit_code: int, message: str = ""):
        self.exit_code = exit_code
        super().__init__(
            message or f"Failed to run 'composer update' (exit code {exit_code}); could not update dependencies."
        )
