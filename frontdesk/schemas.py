from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from frontdesk.models import (
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    VoucherStatus,
)

__all__ = [
    "BookingStatus",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentType",
    "VoucherStatus",
]


def _to_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is UTC-aware, handling both aware and naive inputs."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Aggregate, one strict schema, validated once at the repository boundary
# ---------------------------------------------------------------------------


class PaymentRecord(BaseModel):
    id: UUID
    amount: Decimal = Field(gt=0)
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_type: PaymentType | None = None
    payment_date: datetime
    reference: str | None = None
    processed_by: str | None = None

    model_config = ConfigDict(from_attributes=True)

    normalize_dates = field_validator("payment_date", mode="after")(_to_utc)


class ExtraChargeRecord(BaseModel):
    id: UUID
    description: str
    amount: Decimal = Field(gt=0)
    quantity: int = Field(default=1, ge=1)
    charge_date: datetime
    created_by: str | None = None

    model_config = ConfigDict(from_attributes=True)

    normalize_dates = field_validator("charge_date", mode="after")(_to_utc)

    @property
    def line_total(self) -> Decimal:
        return self.amount * self.quantity


class BookingAggregate(BaseModel):
    """A booking together with its payments and extra charges."""

    id: UUID
    room_number: str
    guest_id: str | None = None
    guest_count: int = 1

    check_in: datetime
    check_out: datetime
    actual_check_out: datetime | None = None

    status: BookingStatus

    original_amount: Decimal = Field(ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_reason: str | None = None
    discount_applied_at: datetime | None = None
    discount_applied_by: str | None = None
    total_amount: Decimal = Field(ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)

    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    completed_by: str | None = None
    checkout_notes: str | None = None

    version: int = 1

    payments: list[PaymentRecord] = Field(default_factory=list)
    extra_charges: list[ExtraChargeRecord] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    normalize_dates = field_validator(
        "check_in",
        "check_out",
        "actual_check_out",
        "discount_applied_at",
        "cancelled_at",
        mode="after",
    )(_to_utc)

    @model_validator(mode="after")
    def validate_amounts(self) -> BookingAggregate:
        if self.discount_amount > self.original_amount:
            raise ValueError("discount_amount cannot exceed original_amount")
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


class BookingResponse(BookingAggregate):
    pass


class VoucherRecord(BaseModel):
    id: UUID
    voucher_code: str
    amount: Decimal
    status: VoucherStatus
    original_booking_id: UUID
    used_booking_id: UUID | None = None
    created_at: datetime
    expires_at: datetime
    used_at: datetime | None = None
    used_by: str | None = None
    created_by: str
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)

    normalize_dates = field_validator(
        "created_at", "expires_at", "used_at", mode="after"
    )(_to_utc)


# ---------------------------------------------------------------------------
# Financial summary
# ---------------------------------------------------------------------------


class RoomChargeLine(BaseModel):
    amount: Decimal
    nights: int
    description: str = "Costo de habitación"


class ExtraChargeLine(BaseModel):
    id: UUID
    description: str
    unit_amount: Decimal
    quantity: int
    line_total: Decimal
    charge_date: datetime


class DiscountLine(BaseModel):
    amount: Decimal
    reason: str | None
    applied_at: datetime | None
    applied_by: str | None


class PaymentLine(BaseModel):
    id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_date: datetime
    reference: str | None
    counted: bool  # whether it counts toward money received


class SummaryBreakdown(BaseModel):
    """Receipt-friendly detail. Derived, never authoritative."""

    room: RoomChargeLine
    extras: list[ExtraChargeLine] = Field(default_factory=list)
    discounts: list[DiscountLine] = Field(default_factory=list)
    tax_amount: Decimal = Decimal("0")
    payments: list[PaymentLine] = Field(default_factory=list)


class FinancialSummary(BaseModel):
    room_charge: Decimal
    discount_amount: Decimal
    total_extras: Decimal
    tax_amount: Decimal
    total_final: Decimal
    total_paid: Decimal
    total_pending: Decimal
    is_fully_paid: bool
    payment_percentage: int
    payment_status: Literal["fully_paid", "partially_paid", "unpaid"]
    has_payments: bool
    has_extras: bool
    has_discounts: bool
    breakdown: SummaryBreakdown

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------


class DiscountSource(StrEnum):
    MANUAL = "manual"
    EARLY_CHECKOUT = "early_checkout"
    OVERDUE = "overdue"


class DiscountDecision(BaseModel):
    """A computed discount. Never applied by whoever computes it."""

    amount: Decimal
    reason: str
    source: DiscountSource
    valid: bool = True

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class RefundType(StrEnum):
    CREDIT_VOUCHER = "credit_voucher"
    FORFEIT = "forfeit"
    NO_PAYMENT = "no_payment"


class CancellationEligibility(BaseModel):
    can_cancel: bool
    reason: str | None = None

    model_config = ConfigDict(frozen=True)


class CancellationPolicy(BaseModel):
    can_cancel: bool
    reason: str | None = None
    days_until_check_in: int
    total_paid: Decimal
    refund_type: RefundType | None = None
    applied_rule: str | None = None
    estimated_credit: Decimal = Decimal("0")
    credit_expires_at: datetime | None = None
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    payment_method: PaymentMethod
    reference: str | None = Field(default=None, max_length=128)

    @field_validator("payment_method", mode="after")
    @classmethod
    def reject_voucher_method(cls, v: PaymentMethod) -> PaymentMethod:
        if v == PaymentMethod.VOUCHER:
            raise ValueError("voucher credit is applied through /vouchers/redeem")
        return v


class ExtraChargeCreate(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    quantity: int = Field(default=1, ge=1)


class ManualDiscountRequest(BaseModel):
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    reason: str = Field(min_length=1, max_length=500)


class CheckoutRequest(BaseModel):
    actual_check_out: datetime | None = None
    force_checkout: bool = False
    early_checkout_reason: str | None = Field(default=None, max_length=500)
    discount_amount: Decimal | None = Field(
        default=None, max_digits=12, decimal_places=2
    )
    discount_reason: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("actual_check_out", mode="after")
    @classmethod
    def require_timezone(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            raise ValueError("datetime must be timezone-aware (include UTC offset)")
        return _to_utc(v)

    @model_validator(mode="after")
    def validate_discount_pair(self) -> CheckoutRequest:
        if self.discount_amount is not None and not (self.discount_reason or "").strip():
            raise ValueError("discount_reason is required with discount_amount")
        return self


class CancelRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class VoucherIssue(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    original_booking_id: UUID
    ttl_days: int | None = Field(default=None, ge=1, le=365)
    notes: str | None = Field(default=None, max_length=1000)


class VoucherCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=32)


class VoucherRedeemRequest(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    booking_id: UUID


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class VoucherValidation(BaseModel):
    is_valid: bool
    voucher: VoucherRecord | None = None
    reason: str | None = None


class PaymentReceipt(BaseModel):
    payment: PaymentRecord
    warnings: list[str] = Field(default_factory=list)


class CheckoutResponse(BaseModel):
    booking: BookingResponse
    summary: FinancialSummary
    discount: DiscountDecision | None = None
    is_early_checkout: bool
    is_forced: bool
    warnings: list[str] = Field(default_factory=list)


class CancellationResponse(BaseModel):
    booking: BookingResponse
    policy: CancellationPolicy
    voucher: VoucherRecord | None = None
    warnings: list[str] = Field(default_factory=list)
