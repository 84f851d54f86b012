"""GitHub webhook ingress."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.database import Database
from starlette.concurrency import run_in_threadpool

from contextflow.config import settings
from contextflow.core.tracing import TracingContext
from contextflow.database.mongo import get_db
from contextflow.dtos import PushEvent, WebhookResponse
from contextflow.services.github.webhook_security import verify_signature
from contextflow.services.rate_limiter import RedisRateLimiter, get_client_identifier
from contextflow.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_webhook_service(db: Database = Depends(get_db)) -> WebhookService:
    return WebhookService(db)


def get_webhook_rate_limiter() -> RedisRateLimiter:
    return RedisRateLimiter(scope="webhook")


def _respond(status_code: int, body: WebhookResponse, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def _peek_repository_id(payload: Any) -> Optional[int]:
    if not isinstance(payload, dict):
        return None
    repository = payload.get("repository")
    if isinstance(repository, dict) and isinstance(repository.get("id"), int):
        return repository["id"]
    return None


@router.post("/webhook/github", response_model=WebhookResponse)
async def github_webhook(
    request: Request,
    service: WebhookService = Depends(get_webhook_service),
    limiter: RedisRateLimiter = Depends(get_webhook_rate_limiter),
):
    """Receive GitHub push events and turn tagged commits into suggestions."""
    identifier = get_client_identifier(
        request.headers, request.client.host if request.client else None
    )
    try:
        limit = limiter.hit(identifier)
    except redis.RedisError as exc:
        limit = None
        logger.error("Rate limiter unavailable, allowing request: %s", exc)
    if limit is not None and not limit.allowed:
        return _respond(
            status.HTTP_429_TOO_MANY_REQUESTS,
            WebhookResponse(success=False, error="Too many requests"),
            headers=limit.headers(),
        )

    body = await request.body()
    event = request.headers.get("X-GitHub-Event", "")
    delivery_id = request.headers.get("X-GitHub-Delivery", "")
    TracingContext.set(
        correlation_id=delivery_id or TracingContext.generate_correlation_id(),
        delivery_id=delivery_id,
        task_name=f"webhook.{event or 'unknown'}",
    )

    try:
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            payload = None

        # The per-repository secret decides which signature is expected
        repository_id = _peek_repository_id(payload)
        repository = (
            await run_in_threadpool(service.find_repository, repository_id)
            if repository_id is not None
            else None
        )
        secret = (repository.webhook_secret if repository else None) or settings.GITHUB_WEBHOOK_SECRET

        if secret:
            if not verify_signature(secret, body, request.headers.get("X-Hub-Signature-256")):
                logger.warning("Rejected webhook delivery %s: bad signature", delivery_id)
                return _respond(
                    status.HTTP_401_UNAUTHORIZED,
                    WebhookResponse(success=False, error="Invalid signature"),
                )
        elif repository is not None:
            logger.error("No webhook secret for %s; rejecting delivery", repository.full_name)
            return _respond(
                status.HTTP_401_UNAUTHORIZED,
                WebhookResponse(success=False, error="Invalid signature"),
            )

        if event == "ping":
            return _respond(status.HTTP_200_OK, WebhookResponse(success=True, message="pong"))
        if event != "push":
            return _respond(
                status.HTTP_400_BAD_REQUEST,
                WebhookResponse(success=False, error="Only push events are supported"),
            )

        if payload is None:
            return _respond(
                status.HTTP_400_BAD_REQUEST,
                WebhookResponse(success=False, error="Invalid JSON payload"),
            )
        try:
            push = PushEvent.model_validate(payload)
        except ValidationError:
            return _respond(
                status.HTTP_400_BAD_REQUEST,
                WebhookResponse(success=False, error="Invalid push payload"),
            )

        if repository is None:
            return _respond(
                status.HTTP_200_OK,
                WebhookResponse(success=True, message="Repository not tracked"),
            )

        result = await run_in_threadpool(service.process_push, push, repository)
        return _respond(
            status.HTTP_200_OK,
            WebhookResponse(
                success=True,
                message=f"Processed {result.commits_processed} tagged commit(s)",
                suggestions_created=result.suggestions_created,
                errors=result.errors or None,
            ),
        )
    finally:
        TracingContext.clear()
