"""
Domain error taxonomy.

The engine and the repository raise these; the routers translate them into
HTTP responses through a single helper. `data` carries structured context
(e.g. the outstanding balance) that the front desk renders next to the message.
"""

from __future__ import annotations

from typing import Any


class FrontdeskError(Exception):
    status_code: int = 400

    def __init__(self, detail: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.data = data or {}


class ValidationError(FrontdeskError):
    """Malformed amount, reason or date input."""

    status_code = 422


class InvalidStateError(FrontdeskError):
    """Transition not allowed from the booking's current status."""

    status_code = 409


class PaymentRequiredError(FrontdeskError):
    """Balance outstanding, no applicable discount, not forced."""

    status_code = 402


class InvalidDateError(FrontdeskError):
    """Checkout date outside the contracted window."""

    status_code = 422


class ConcurrencyConflictError(FrontdeskError):
    """The aggregate changed between load and save. Retry once with a fresh load."""

    status_code = 409


class VoucherError(FrontdeskError):
    """Voucher not found, expired, already used, or lost a redemption race."""

    status_code = 400


class NotFoundError(FrontdeskError):
    status_code = 404
