"""
Exceptions raised by the Azure DevOps query package.
"""


class DevOpsQueryError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(DevOpsQueryError):
    """A required setting is missing or blank, or the database path is unusable."""


class DevOpsHttpError(DevOpsQueryError):
    """Azure DevOps answered with a non-success status code."""

    def __init__(self, status_code: int, url: str, reason: str = ""):
        self.status_code = status_code
        self.url = url
        self.reason = reason
        message = f"HTTP request failed with status code {status_code} for URL: {url}"
        if reason:
            message = f"HTTP request failed with status code {status_code} ({reason}) for URL: {url}"
        super().__init__(message)


class CorruptSavedQueryError(DevOpsQueryError, ValueError):
    """A stored saved-query row cannot be mapped back to a SavedQuery."""
