"""
Exception hierarchy for Vote Gate.
"""

from typing import Optional


class VoteGateError(Exception):
    """Base class for all Vote Gate errors."""


class ConfigurationError(VoteGateError):
    """Raised when a required setting (secret, app id, key) is missing or invalid."""


class GitHubAPIError(VoteGateError):
    """Raised when the GitHub REST API answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubAuthError(GitHubAPIError):
    """Raised when GitHub App authentication fails (401 from the token endpoint)."""


class CheckStoreError(VoteGateError):
    """Raised when the check run database cannot be read or written."""
