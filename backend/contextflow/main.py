"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from contextflow.api import health, manifests, repos, suggestions, webhook
from contextflow.config import settings
from contextflow.core.logging import setup_logging
from contextflow.database.mongo import ensure_indexes, get_database
from contextflow.manifest import ManifestValidationError
from contextflow.middleware.error_codes import ErrorCode, error_body
from contextflow.services.github.exceptions import (
    GithubConfigurationError,
    GithubContentError,
    GithubError,
    GithubNotFoundError,
    GithubPermissionError,
    GithubTransientError,
)
from contextflow.services.repository_service import RepositoryNotFoundError
from contextflow.services.suggestion_service import (
    ManifestConflictError,
    SuggestionAlreadyAppliedError,
    SuggestionNotFoundError,
    TrackedServiceNotFoundError,
)

setup_logging()
logger = logging.getLogger(__name__)

# Domain exception -> (HTTP status, error code), most specific first
EXCEPTION_STATUS = [
    (ManifestConflictError, status.HTTP_409_CONFLICT, ErrorCode.MANIFEST_CONFLICT),
    (SuggestionAlreadyAppliedError, status.HTTP_409_CONFLICT, ErrorCode.CONFLICT),
    (SuggestionNotFoundError, status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND),
    (TrackedServiceNotFoundError, status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND),
    (RepositoryNotFoundError, status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND),
    (ManifestValidationError, 422, ErrorCode.INVALID_MANIFEST),
    (GithubContentError, 422, ErrorCode.INVALID_MANIFEST),
    (GithubConfigurationError, status.HTTP_400_BAD_REQUEST, ErrorCode.GITHUB_NOT_CONFIGURED),
    (GithubNotFoundError, status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND),
    (GithubPermissionError, status.HTTP_403_FORBIDDEN, ErrorCode.FORBIDDEN),
    (GithubTransientError, status.HTTP_503_SERVICE_UNAVAILABLE, ErrorCode.SERVICE_UNAVAILABLE),
    (GithubError, status.HTTP_502_BAD_GATEWAY, ErrorCode.GATEWAY_ERROR),
]


def _status_for(exc: Exception):
    for exc_type, status_code, code in EXCEPTION_STATUS:
        if isinstance(exc, exc_type):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code, code = _status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=error_body(status_code, str(exc), code))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(get_database())
    except PyMongoError as exc:
        logger.warning("Could not ensure MongoDB indexes: %s", exc)
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Keeps vibe.json service manifests in sync with tagged commits",
        version=settings.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_BASE_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_type, _, _ in EXCEPTION_STATUS:
        app.add_exception_handler(exc_type, domain_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(webhook.router, prefix="/api", tags=["Webhook"])
    app.include_router(repos.router, prefix="/api")
    app.include_router(manifests.router, prefix="/api")
    app.include_router(suggestions.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": f"{settings.APP_NAME} API",
            "version": settings.APP_VERSION,
            "docs": "/api/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("contextflow.main:app", host="0.0.0.0", port=8000, reload=True)
