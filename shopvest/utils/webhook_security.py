"""
Webhook security utilities - HMAC signature verification and replay protection

The settlement collaborator signs the exact raw body with HMAC-SHA256 using
WEBHOOK_SECRET and sends the hex digest in X-Webhook-Signature. An optional
X-Webhook-Timestamp (unix seconds) is checked against the allowed skew.
"""

import hmac
import hashlib
import time
import logging
from typing import Any, Dict, Optional, Tuple

from shopvest.infrastructure.settings import get_settings

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"
TIMESTAMP_HEADER = "X-Webhook-Timestamp"

VerifyResult = Tuple[bool, Optional[str], Optional[Dict[str, Any]]]


def compute_signature(payload_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload_body, hashlib.sha256).hexdigest()


def verify_hmac_signature(payload_body: bytes, signature_header: Optional[str], secret: str) -> VerifyResult:
    """
    Verify the HMAC-SHA256 signature with a constant-time comparison.

    Returns:
        (is_valid, error_code, error_details)
    """
    if not signature_header:
        return False, "WEBHOOK_MISSING_HEADER", {"missing_header": SIGNATURE_HEADER}

    expected = compute_signature(payload_body, secret)
    if not hmac.compare_digest(expected, signature_header.strip().lower()):
        return False, "WEBHOOK_INVALID_SIGNATURE", {"body_length_bytes": len(payload_body)}
    return True, None, None


def verify_timestamp(timestamp_header: Optional[str], tolerance_seconds: int) -> VerifyResult:
    if not timestamp_header:
        # Idempotent settlement handles replays without a timestamp
        return True, None, None

    try:
        timestamp = int(timestamp_header)
    except (ValueError, TypeError):
        return False, "WEBHOOK_INVALID_TIMESTAMP", {"received": timestamp_header}

    time_delta = abs(int(time.time()) - timestamp)
    if time_delta > tolerance_seconds:
        return False, "WEBHOOK_TIMESTAMP_SKEW", {
            "time_delta_seconds": time_delta,
            "max_skew_seconds": tolerance_seconds,
        }
    return True, None, None


def verify_webhook_security(
    payload_body: bytes,
    signature_header: Optional[str],
    timestamp_header: Optional[str] = None,
) -> VerifyResult:
    """
    Full check for settlement webhooks.

    With no WEBHOOK_SECRET configured, signatures are only skipped outside
    production; production refuses every call.
    """
    settings = get_settings()
    if not settings.WEBHOOK_SECRET:
        if settings.is_production:
            return False, "WEBHOOK_NOT_CONFIGURED", {"reason": "WEBHOOK_SECRET not configured"}
        logger.warning("WEBHOOK_SECRET not configured - skipping signature verification")
        return True, None, None

    valid, code, details = verify_hmac_signature(payload_body, signature_header, settings.WEBHOOK_SECRET)
    if not valid:
        return valid, code, details
    return verify_timestamp(timestamp_header, settings.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS)
