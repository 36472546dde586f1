"""
Checkout state machine.

`decide_checkout` takes a booking aggregate and returns a CheckoutDecision
holding the completed aggregate plus the follow-ups the caller must run after
committing it. It raises instead of returning when the transition is refused,
so a refused attempt never produces a mutated aggregate.

Transition rules (the only one performed here is `* -> completed`):
  checked-in | paid | confirmed                  : normal checkout
  pending | confirmed | paid | checked-in        : forced checkout, only when the
                                                   stay is overdue and the caller
                                                   sets force_checkout
Balance guard, evaluated with exactly one discount source:
  caller-supplied manual discount, else early-departure proration (only when the
  caller supplies an actual_check_out before the contracted day), else (forced
  and overdue beyond the threshold) automatic overdue forgiveness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from frontdesk.discounts import (
    early_checkout_discount,
    is_overdue,
    manual_discount,
    overdue_discount,
)
from frontdesk.errors import (
    InvalidDateError,
    InvalidStateError,
    PaymentRequiredError,
    ValidationError,
)
from frontdesk.financials import money, nights_between, summarize
from frontdesk.models import BookingStatus
from frontdesk.schemas import BookingAggregate, DiscountDecision, FinancialSummary


class FollowUp(StrEnum):
    GENERATE_BILL = "generate_bill"
    RELEASE_ROOM = "release_room"


NORMAL_CHECKOUT_STATUSES = frozenset(
    {BookingStatus.CHECKED_IN, BookingStatus.PAID, BookingStatus.CONFIRMED}
)
FORCED_CHECKOUT_STATUSES = frozenset(
    {
        BookingStatus.PENDING,
        BookingStatus.CONFIRMED,
        BookingStatus.PAID,
        BookingStatus.CHECKED_IN,
    }
)
TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})


@dataclass(frozen=True)
class CheckoutOptions:
    actual_check_out: datetime | None = None
    force_checkout: bool = False
    early_checkout_reason: str | None = None
    discount_amount: Decimal | None = None
    discount_reason: str | None = None
    notes: str | None = None
    performed_by: str = "system"


@dataclass(frozen=True)
class CheckoutDecision:
    booking: BookingAggregate
    summary: FinancialSummary
    discount: DiscountDecision | None
    is_early: bool
    is_forced: bool
    follow_ups: tuple[FollowUp, ...] = (FollowUp.GENERATE_BILL, FollowUp.RELEASE_ROOM)
    warnings: list[str] = field(default_factory=list)


def apply_discount(
    booking: BookingAggregate,
    discount: DiscountDecision,
    applied_by: str,
    now: datetime,
) -> BookingAggregate:
    """Return a copy of `booking` with `discount` added to its room-charge discount."""
    new_amount = money(booking.discount_amount + discount.amount)
    if new_amount > booking.original_amount:
        raise ValidationError(
            "Discount would exceed the original room charge",
            data={
                "original_amount": str(booking.original_amount),
                "discount_amount": str(new_amount),
            },
        )
    reason = (
        f"{booking.discount_reason} | {discount.reason}"
        if booking.discount_reason
        else discount.reason
    )
    return booking.model_copy(
        update={
            "discount_amount": new_amount,
            "discount_reason": reason,
            "discount_applied_at": now,
            "discount_applied_by": applied_by,
            "total_amount": money(booking.original_amount - new_amount),
        }
    )


def assert_checkout_allowed(
    booking: BookingAggregate, now: datetime, force_checkout: bool
) -> bool:
    """Raise InvalidStateError unless checkout is allowed. Returns True on the forced path."""
    if booking.status in NORMAL_CHECKOUT_STATUSES:
        return False
    if (
        booking.status in FORCED_CHECKOUT_STATUSES
        and force_checkout
        and is_overdue(booking, now)
    ):
        return True

    allowed = sorted(s.value for s in NORMAL_CHECKOUT_STATUSES)
    if booking.status in FORCED_CHECKOUT_STATUSES:
        detail = (
            f"Cannot check out a '{booking.status}' booking unless it is overdue "
            "and force_checkout is set"
        )
    else:
        detail = f"Cannot check out a booking in status '{booking.status}'"
    raise InvalidStateError(
        detail,
        data={"current_status": booking.status.value, "allowed_statuses": allowed},
    )


def resolve_checkout_date(
    booking: BookingAggregate, actual_check_out: datetime | None, now: datetime
) -> datetime:
    if actual_check_out is None:
        return now
    if not booking.check_in < actual_check_out <= booking.check_out:
        raise InvalidDateError(
            "Checkout date must be after check-in and no later than the "
            "contracted checkout",
            data={
                "check_in": booking.check_in.isoformat(),
                "check_out": booking.check_out.isoformat(),
                "actual_check_out": actual_check_out.isoformat(),
            },
        )
    return actual_check_out


def _payment_required(
    summary: FinancialSummary,
    discount: DiscountDecision | None,
    message: str,
    can_force: bool,
) -> PaymentRequiredError:
    return PaymentRequiredError(
        message,
        data={
            "total_final": str(summary.total_final),
            "total_paid": str(summary.total_paid),
            "total_pending": str(summary.total_pending),
            "discount_offered": str(discount.amount) if discount else None,
            "can_force_checkout": can_force,
        },
    )


def decide_checkout(
    booking: BookingAggregate,
    options: CheckoutOptions,
    now: datetime,
    *,
    overdue_threshold_days: int | None = None,
) -> CheckoutDecision:
    forced_path = assert_checkout_allowed(booking, now, options.force_checkout)
    overdue = is_overdue(booking, now)
    effective = resolve_checkout_date(booking, options.actual_check_out, now)
    is_early = nights_between(effective, booking.check_out) > 0

    before = summarize(booking)
    warnings: list[str] = []

    # 1. one discount source per call
    discount: DiscountDecision | None = None
    if options.discount_amount is not None:
        discount = manual_discount(
            booking, options.discount_amount, options.discount_reason or ""
        )
        if not discount.valid:
            raise ValidationError(discount.reason)
    elif is_early and options.actual_check_out is not None:
        early = early_checkout_discount(
            booking, effective, options.early_checkout_reason
        )
        if early.valid:
            discount = early

    # 2. balance guard
    if before.total_pending > 0:
        if discount is not None:
            if before.total_pending - discount.amount > 0:
                raise _payment_required(
                    before,
                    discount,
                    "The discount does not cover the outstanding balance",
                    can_force=False,
                )
        elif overdue and options.force_checkout:
            forgiveness = overdue_discount(
                booking, before, now, overdue_threshold_days
            )
            if not forgiveness.valid:
                raise _payment_required(
                    before, None, forgiveness.reason, can_force=False
                )
            discount = forgiveness
            if before.total_pending - forgiveness.amount > 0:
                warnings.append(
                    "El descuento automático no cubre los cargos extra; "
                    f"quedan {before.total_pending - forgiveness.amount} por cobrar"
                )
        else:
            forgiveness = overdue_discount(booking, before, now, overdue_threshold_days)
            raise _payment_required(
                before,
                None,
                "Cannot check out with an outstanding balance",
                can_force=overdue and forgiveness.valid,
            )

    # 3. commit into a new aggregate
    completed = booking
    if discount is not None:
        completed = apply_discount(completed, discount, options.performed_by, now)

    notes = options.notes
    if not notes and discount is not None and is_early:
        notes = discount.reason
    completed = completed.model_copy(
        update={
            "status": BookingStatus.COMPLETED,
            "actual_check_out": effective,
            "completed_by": options.performed_by,
            "checkout_notes": notes,
        }
    )

    after = summarize(completed)
    if after.total_pending > 0 and not warnings:
        warnings.append(
            f"Saldo pendiente de {after.total_pending} queda como cuenta por cobrar"
        )

    return CheckoutDecision(
        booking=completed,
        summary=after,
        discount=discount,
        is_early=is_early,
        is_forced=forced_path or (overdue and options.force_checkout),
        warnings=warnings,
    )
