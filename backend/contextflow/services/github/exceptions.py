"""Exceptions raised by the remote repository gateway."""

from __future__ import annotations


class GithubError(Exception):
    """Base exception for GitHub gateway failures."""


class GithubConfigurationError(GithubError):
    """Raised when required configuration or a credential is missing."""


class GithubTransientError(GithubError):
    """Failures where retrying later may succeed. Never retried inside the gateway."""


class GithubRateLimitError(GithubTransientError):
    """Raised when the upstream service enforces a rate limit."""

    def __init__(self, message: str, retry_after: int | float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class GithubRetryableError(GithubTransientError):
    """Raised for network errors and 5xx responses."""


class GithubNotFoundError(GithubError):
    """The file, repository or hook does not exist (or is hidden from this token)."""


class GithubPermissionError(GithubError):
    """The credential is invalid or lacks access to the resource."""


class GithubConflictError(GithubError):
    """
    Raised when a write's expected content hash does not match the file's
    current hash. The remote file is left unchanged.
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class GithubContentError(GithubError):
    """The file exists but its content cannot be decoded as UTF-8 text."""
