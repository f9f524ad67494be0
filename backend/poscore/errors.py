# Overview: Error taxonomy shared by the coordinators and the HTTP layer.

"""
Every rejection carries an actionable message plus structured details.

- ValidationError: bad input, reported before any write, never retried.
- AvailabilityError: not enough stock; carries the computed available quantity.
- EligibilityError: invoice cannot be returned; carries a reason code.
- TransactionFailedError: a multi-step commit was rolled back; the cause is
  chained (``raise ... from exc``) and logged, the message stays generic.
"""

from __future__ import annotations


class PosCoreError(Exception):
    """Base class for core errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PosCoreError):
    status_code = 400


class AvailabilityError(PosCoreError):
    status_code = 409

    def __init__(self, message: str, available: int = 0, details: dict | None = None):
        details = dict(details or {})
        details.setdefault("available", available)
        super().__init__(message, details)
        self.available = available


class EligibilityError(PosCoreError):
    status_code = 422

    def __init__(self, message: str, reason: str, details: dict | None = None):
        details = dict(details or {})
        details.setdefault("reason", reason)
        super().__init__(message, details)
        self.reason = reason


class TransactionFailedError(PosCoreError):
    status_code = 500
