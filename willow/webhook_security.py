"""
Webhook signature verification for Stripe and Cal.com.

- Constant-time signature comparison
- Timestamp validation against replayed Stripe events
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """Reject webhooks whose Unix timestamp is more than `max_age` seconds off."""
    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def _fail(raise_on_failure: bool, detail: str, raw_body: bytes) -> tuple[bool, bytes]:
    if raise_on_failure:
        raise HTTPException(status_code=401, detail=detail)
    return False, raw_body


async def verify_stripe_webhook(
    request: Request, secret: str, raise_on_failure: bool = True
) -> tuple[bool, bytes]:
    """
    Verify a Stripe webhook.

    Header: 'Stripe-Signature' (format: "t=<timestamp>,v1=<signature>[,v1=...]"),
    signed payload is "<timestamp>.<raw body>".

    Returns:
        Tuple of (is_valid, raw_body)
    """
    raw_body = await request.body()
    signature_header = request.headers.get("Stripe-Signature", "")

    if not signature_header:
        logger.warning("🚫 Stripe webhook missing signature header")
        return _fail(raise_on_failure, "Missing webhook signature", raw_body)

    timestamp = None
    signatures = []
    for item in signature_header.split(","):
        name, _, value = item.strip().partition("=")
        if name == "t":
            timestamp = value
        elif name == "v1":
            signatures.append(value)

    if not timestamp or not signatures:
        logger.warning("🚫 Stripe webhook invalid signature format")
        return _fail(raise_on_failure, "Invalid signature format", raw_body)

    if not verify_timestamp(timestamp):
        return _fail(raise_on_failure, "Webhook timestamp expired", raw_body)

    expected = compute_hmac_sha256(secret, timestamp.encode("utf-8") + b"." + raw_body)
    if not any(constant_time_compare(expected, sig) for sig in signatures):
        logger.warning("🚫 Stripe webhook signature mismatch")
        return _fail(raise_on_failure, "Invalid webhook signature", raw_body)

    logger.debug("✅ Stripe webhook signature verified")
    return True, raw_body


async def verify_calcom_webhook(
    request: Request, secret: str, raise_on_failure: bool = True
) -> tuple[bool, bytes]:
    """
    Verify a Cal.com webhook: 'X-Cal-Signature-256' is the hex HMAC-SHA256 of the body.

    Returns:
        Tuple of (is_valid, raw_body)
    """
    raw_body = await request.body()
    signature = request.headers.get("X-Cal-Signature-256", "")

    if not signature:
        logger.warning("🚫 Cal.com webhook missing signature header")
        return _fail(raise_on_failure, "Missing webhook signature", raw_body)

    if not constant_time_compare(compute_hmac_sha256(secret, raw_body), signature):
        logger.warning("🚫 Cal.com webhook signature mismatch")
        return _fail(raise_on_failure, "Invalid webhook signature", raw_body)

    logger.debug("✅ Cal.com webhook signature verified")
    return True, raw_body


def create_webhook_signature(
    secret: str, payload: bytes, provider: str = "generic", timestamp: Optional[int] = None
) -> str:
    """
    Create a webhook signature in a provider's header format (used by tests and tooling).

    Args:
        secret: Signing secret
        payload: Request body bytes
        provider: 'generic', 'calcom' or 'stripe'
    """
    if provider == "stripe":
        timestamp = timestamp or int(time.time())
        sig = compute_hmac_sha256(secret, str(timestamp).encode("utf-8") + b"." + payload)
        return f"t={timestamp},v1={sig}"
    return compute_hmac_sha256(secret, payload)
