"""GitHub webhook signature verification.

GitHub signs each delivery with HMAC-SHA256 over the raw request body and
sends the result as ``X-Hub-Signature-256: sha256=<hexdigest>``.
Verification is fail-closed: a missing header, a missing secret or any
error while computing the digest counts as "not verified".
"""

import hashlib
import hmac
from dataclasses import dataclass

from core import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


class WebhookVerificationError(Exception):
    """Raised when a webhook delivery cannot be authenticated."""


@dataclass(frozen=True)
class WebhookEvent:
    """A single inbound delivery. Consumed once, never stored."""

    signature: str | None
    body: bytes
    event_type: str | None = None
    delivery_id: str | None = None


def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature GitHub would send for ``body``."""
    digest = hmac.new(secret.encode(), msg=body, digestmod=hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(
    signature_header: str | None, raw_body: bytes, shared_secret: str | None
) -> bool:
    """Check ``signature_header`` against the HMAC of ``raw_body``. Never raises."""
    if not signature_header or not shared_secret:
        return False
    try:
        expected = compute_signature(raw_body, shared_secret)
        return hmac.compare_digest(expected, signature_header)
    except Exception:
        logger.warning("webhook.signature_check_errored", exc_info=True)
        return False


def ensure_verified(event: WebhookEvent, shared_secret: str | None) -> None:
    """Raise ``WebhookVerificationError`` unless ``event`` is authentic."""
    if not shared_secret:
        logger.warning("webhook.secret_not_configured")
        raise WebhookVerificationError("Webhook secret not configured")

    if not verify_signature(event.signature, event.body, shared_secret):
        logger.warning(
            "webhook.verification_failed",
            event_type=event.event_type,
            delivery_id=event.delivery_id,
            has_signature=bool(event.signature),
        )
        raise WebhookVerificationError("Invalid webhook signature")
