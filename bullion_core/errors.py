"""
Error taxonomy for the trading core.

Business-rule and validation errors are final: retrying the same request
fails the same way. Conflict and storage errors are transient; the caller
may resubmit.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_HOLDINGS = "insufficient_holdings"
    CONFLICT = "conflict"
    STORAGE = "storage"


class TradingError(Exception):
    """Base class. `message` is safe to show to the end user."""

    kind: ErrorKind = ErrorKind.STORAGE
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TradingError):
    """Malformed or out-of-range input."""

    kind = ErrorKind.VALIDATION


class NotFoundError(TradingError):
    kind = ErrorKind.NOT_FOUND


class InsufficientFundsError(TradingError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class InsufficientHoldingsError(TradingError):
    kind = ErrorKind.INSUFFICIENT_HOLDINGS


class ConflictError(TradingError):
    """State changed underneath the request (e.g. order no longer pending)."""

    kind = ErrorKind.CONFLICT
    retryable = True


class StorageError(TradingError):
    """Unit of work failed for reasons unrelated to business rules; nothing was written."""

    kind = ErrorKind.STORAGE
    retryable = True


# Rejections the trigger evaluator records as terminal for a pending order.
BUSINESS_ERRORS = (
    ValidationError,
    NotFoundError,
    InsufficientFundsError,
    InsufficientHoldingsError,
)
