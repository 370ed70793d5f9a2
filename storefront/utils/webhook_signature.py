# storefront/utils/webhook_signature.py
import hashlib
import hmac
import logging
import time
from typing import Dict, List

from storefront.exceptions import InvalidSignature

logger = logging.getLogger(__name__)

SIGNATURE_SCHEME = "v1"


def _parse_header(header: str) -> Dict[str, List[str]]:
    parts: Dict[str, List[str]] = {}
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep or not key or not value:
            continue
        parts.setdefault(key, []).append(value)
    return parts


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def sign_payload(payload: bytes, secret: str, timestamp: int = None) -> str:
    """Builds a Stripe-Signature header value for ``payload``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    return f"t={timestamp},{SIGNATURE_SCHEME}={compute_signature(payload, secret, timestamp)}"


def verify_signature(payload: bytes, header: str, secret: str, tolerance: int = 300, now: float = None):
    """Verifies a Stripe-Signature header over the raw request body.

    Raises InvalidSignature when the header is missing or malformed, when no
    v1 signature matches, or when the timestamp is outside ``tolerance``
    seconds of ``now``.
    """
    if not header:
        raise InvalidSignature("Missing signature header")

    parts = _parse_header(header)
    try:
        timestamp = int(parts["t"][0])
    except (KeyError, ValueError):
        logger.warning("Webhook signature header has no valid timestamp")
        raise InvalidSignature("Malformed signature header")

    candidates = parts.get(SIGNATURE_SCHEME, [])
    if not candidates:
        logger.warning("Webhook signature header has no %s signature", SIGNATURE_SCHEME)
        raise InvalidSignature("Malformed signature header")

    expected = compute_signature(payload, secret, timestamp)
    if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
        logger.warning("Webhook signature mismatch")
        raise InvalidSignature()

    now = time.time() if now is None else now
    if tolerance and abs(now - timestamp) > tolerance:
        logger.warning("Webhook timestamp outside tolerance: t=%s now=%s", timestamp, int(now))
        raise InvalidSignature("Timestamp outside the tolerance zone")
