from .exceptions import (
    GithubConfigurationError,
    GithubConflictError,
    GithubContentError,
    GithubError,
    GithubNotFoundError,
    GithubPermissionError,
    GithubRateLimitError,
    GithubRetryableError,
    GithubTransientError,
)
from .gateway import CommitRef, FileContent, FileMatch, RemoteRepositoryInfo, RepositoryGateway

__all__ = [
    "CommitRef",
    "FileContent",
    "FileMatch",
    "GithubConfigurationError",
    "GithubConflictError",
    "GithubContentError",
    "GithubError",
    "GithubNotFoundError",
    "GithubPermissionError",
    "GithubRateLimitError",
    "GithubRetryableError",
    "GithubTransientError",
    "RemoteRepositoryInfo",
    "RepositoryGateway",
]
