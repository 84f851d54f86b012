from .health import HealthCheckErrorResponse, HealthCheckRunResponse
from .manifest import (
    PromoteStepRequest,
    ScanQueuedResponse,
    ScanRequest,
    TrackedServiceListResponse,
    TrackedServiceResponse,
)
from .repository import RepoConnectRequest, RepoResponse
from .suggestion import (
    ApplySuggestionResponse,
    CommitAuthorResponse,
    SuggestionListResponse,
    SuggestionResponse,
)
from .webhook import PushAuthor, PushCommit, PushEvent, PushRepository, WebhookResponse

__all__ = [
    "ApplySuggestionResponse",
    "CommitAuthorResponse",
    "HealthCheckErrorResponse",
    "HealthCheckRunResponse",
    "PromoteStepRequest",
    "PushAuthor",
    "PushCommit",
    "PushEvent",
    "PushRepository",
    "RepoConnectRequest",
    "RepoResponse",
    "ScanQueuedResponse",
    "ScanRequest",
    "SuggestionListResponse",
    "SuggestionResponse",
    "TrackedServiceListResponse",
    "TrackedServiceResponse",
    "WebhookResponse",
]
