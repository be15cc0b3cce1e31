"""Signature middleware -- FastAPI dependency verifying GitHub webhook deliveries.

GitHub signs every delivery with ``X-Hub-Signature-256: sha256=<hex>``, an
HMAC-SHA256 of the raw request body keyed by the app's webhook secret.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

logger = logging.getLogger(__name__)


def compute_signature(payload_bytes: bytes, secret: str) -> str:
    """Compute the ``sha256=`` signature GitHub sends for *payload_bytes*."""
    mac = hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256)
    return f"sha256={mac.hexdigest()}"


def signature_matches(payload_bytes: bytes, secret: str, signature: str) -> bool:
    return hmac.compare_digest(compute_signature(payload_bytes, secret), signature)


async def verify_signature(
    request: Request,
    x_hub_signature_256: Optional[str] = Header(None, alias="X-Hub-Signature-256"),
    x_github_delivery: Optional[str] = Header(None, alias="X-GitHub-Delivery"),
) -> bytes:
    """FastAPI dependency returning the raw body of a correctly signed delivery.

    Raises ``401 Unauthorized`` if the signature is missing or does not match.
    """
    body = await request.body()
    secret: str = request.app.state.webhook_secret

    if not x_hub_signature_256:
        logger.warning("Delivery %s rejected: missing signature", x_github_delivery)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing signature")

    if not signature_matches(body, secret, x_hub_signature_256):
        logger.warning("Delivery %s rejected: invalid signature", x_github_delivery)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    return body
