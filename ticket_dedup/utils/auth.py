"""
Webhook authentication utilities

Jira signs webhook bodies with HMAC-SHA256 when a secret is configured and
sends the hex digest in the X-Hub-Signature header as "sha256=<hex>".
"""
import hashlib
import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from ticket_dedup.config import get_settings
from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 digest of a request body"""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """
    Check a webhook signature against the shared secret

    Args:
        secret: Shared webhook secret
        body: Raw request body
        signature: Header value, with or without the "sha256=" prefix

    Returns:
        True if the signature matches
    """
    if not signature:
        return False
    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]

    expected = compute_signature(secret, body)
    # Constant-time comparison
    return hmac.compare_digest(expected, signature.strip().lower())


async def require_webhook_signature(
    request: Request,
    x_hub_signature: Optional[str] = Header(None, description="HMAC-SHA256 of the body")
) -> None:
    """
    FastAPI dependency guarding the webhook endpoint

    Validation only happens when it is enabled and a secret is configured.

    Raises:
        HTTPException 401: If the signature is missing or invalid
    """
    settings = get_settings()
    if not settings.jira_enable_webhook_validation or not settings.jira_webhook_secret:
        return

    body = await request.body()
    if not verify_webhook_signature(settings.jira_webhook_secret, body, x_hub_signature):
        logger.warning("Rejected webhook with invalid signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature"
        )
