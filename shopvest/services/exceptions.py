"""
Engine errors - typed, stable error codes returned to every caller

Each error carries a machine-readable ``code``, a human-readable ``message``
and the HTTP status the API layer maps it to. ``retryable`` is True only for
lock contention; every other error needs a fresh request.
"""

from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base exception for all engine operations"""

    code = "ENGINE_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(EngineError):
    """Malformed input or invalid state transition"""
    code = "VALIDATION_ERROR"
    http_status = 400


class NotFound(EngineError):
    code = "NOT_FOUND"
    http_status = 404


class InsufficientFunds(EngineError):
    """Debit larger than the wallet balance"""
    code = "INSUFFICIENT_FUNDS"
    http_status = 409


class CapacityExceeded(EngineError):
    """Reservation would push filled_slots above total_slots"""
    code = "CAPACITY_EXCEEDED"
    http_status = 409


class ShopNotActive(EngineError):
    code = "SHOP_NOT_ACTIVE"
    http_status = 409


class OutOfRange(EngineError):
    """Investment capital outside the shop's min/max amount"""
    code = "OUT_OF_RANGE"
    http_status = 400


class KYCRequired(EngineError):
    code = "KYC_REQUIRED"
    http_status = 403


class BelowMinimum(EngineError):
    code = "BELOW_MINIMUM"
    http_status = 400


class AboveMaximum(EngineError):
    code = "ABOVE_MAXIMUM"
    http_status = 400


class SystemUnavailable(EngineError):
    """Maintenance mode is on"""
    code = "SYSTEM_UNAVAILABLE"
    http_status = 503


class NotEligible(EngineError):
    """Capital not yet matured, already withdrawn, or already requested"""
    code = "NOT_ELIGIBLE"
    http_status = 409


class ConcurrencyConflict(EngineError):
    """Resource lock contention - safe to retry"""
    code = "CONCURRENCY_CONFLICT"
    http_status = 409
    retryable = True


class ExternalSettlementError(EngineError):
    """Payout or payment gateway failure"""
    code = "EXTERNAL_SETTLEMENT_ERROR"
    http_status = 502
