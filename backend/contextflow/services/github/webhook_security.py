"""HMAC-SHA256 signatures for GitHub webhook deliveries."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    """Signature header value GitHub sends for ``body`` signed with ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, signature_header: Optional[str]) -> bool:
    """
    Check ``X-Hub-Signature-256`` against the raw request bytes.

    ``body`` must be the exact bytes received; re-serialized JSON will not match.
    """
    if not secret or not signature_header:
        return False
    if not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    return hmac.compare_digest(compute_signature(secret, body), signature_header)


def generate_webhook_secret() -> str:
    return secrets.token_hex(32)
