"""
Health check endpoints
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pymongo.database import Database
from pymongo.errors import PyMongoError

from contextflow.config import settings
from contextflow.database.mongo import get_db
from contextflow.dtos import HealthCheckRunResponse
from contextflow.services.health_classifier import HealthClassifier
from contextflow.utils.datetime import utc_now

router = APIRouter()


@router.get("/health")
async def health_check():
    """Simple API health check."""
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.APP_NAME,
    }


@router.get("/health/db")
def database_health(db: Database = Depends(get_db)):
    """MongoDB health check."""
    try:
        db.command("ping")
    except PyMongoError as exc:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(exc),
            "timestamp": utc_now().isoformat(),
        }

    return {
        "status": "healthy",
        "database": "connected",
        "timestamp": utc_now().isoformat(),
    }


def _verify_cron_secret(authorization: Optional[str]) -> None:
    if not settings.CRON_SECRET:
        return
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.post("/health/cron", response_model=HealthCheckRunResponse)
def run_health_cron(
    authorization: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
):
    """Run the service health classification synchronously (external scheduler hook)."""
    _verify_cron_secret(authorization)
    summary = HealthClassifier(db).run()
    return HealthCheckRunResponse(**summary.to_dict())
