"""
Credential store for remote repository access.

Tokens come from the GitHub OAuth identity of the user who connected the
repository (``oauth_identities`` collection), with ``GITHUB_TOKEN`` as the
deployment-wide fallback.
"""

from __future__ import annotations

import logging
from typing import Optional

from pymongo.database import Database

from contextflow.config import settings
from contextflow.entities.repository import Repository
from contextflow.services.github.exceptions import GithubConfigurationError

logger = logging.getLogger(__name__)


def mask_token(token: str) -> str:
    """Mask token to show only last 4 characters."""
    if not token or len(token) <= 4:
        return "****"
    return f"****{token[-4:]}"


def get_user_access_token(db: Database, user_id) -> Optional[str]:
    identity = db.oauth_identities.find_one({"user_id": user_id, "provider": "github"})
    if not identity:
        return None
    if identity.get("token_status") == "invalid":
        logger.warning("GitHub identity for user %s is marked invalid", user_id)
        return None
    return identity.get("access_token")


def get_repository_access_token(db: Database, repository: Repository) -> str:
    """Resolve the credential for API calls on ``repository``.

    Raises:
        GithubConfigurationError: no usable token exists.
    """
    token = None
    if repository.user_id is not None:
        token = get_user_access_token(db, repository.user_id)
    if not token:
        token = settings.GITHUB_TOKEN
    if not token:
        raise GithubConfigurationError(
            f"No GitHub credential available for {repository.full_name}"
        )
    logger.debug("Using GitHub token %s for %s", mask_token(token), repository.full_name)
    return token
