"""
Financial summary of a booking aggregate.

`summarize` is pure and total: identical input gives identical output and it
never raises. The scalar fields (total_final, total_paid, total_pending,
is_fully_paid, payment_percentage) are what the checkout and cancellation
rules rely on; the breakdown is only for receipts.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from zoneinfo import ZoneInfo

from frontdesk import settings
from frontdesk.models import PaymentStatus
from frontdesk.schemas import (
    BookingAggregate,
    DiscountLine,
    ExtraChargeLine,
    FinancialSummary,
    PaymentLine,
    RoomChargeLine,
    SummaryBreakdown,
)

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# Statuses that count as money actually received
COUNTED_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.AUTHORIZED, PaymentStatus.COMPLETED, PaymentStatus.PAID}
)


def money(value: Decimal | int | str | None) -> Decimal:
    """Quantize to cents. None and garbage collapse to zero."""
    if value is None:
        return ZERO.quantize(CENT)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (ArithmeticError, ValueError, TypeError):
        return ZERO.quantize(CENT)


@lru_cache(maxsize=8)
def hotel_zone(name: str | None = None) -> ZoneInfo:
    return ZoneInfo(name or settings.HOTEL_TIMEZONE)


def nights_between(start: datetime, end: datetime) -> int:
    """Calendar nights between two instants, counted in the hotel's timezone."""
    zone = hotel_zone()
    delta = end.astimezone(zone).date() - start.astimezone(zone).date()
    return max(0, delta.days)


def counts_as_paid(status: PaymentStatus) -> bool:
    return status in COUNTED_PAYMENT_STATUSES


def _zeroed() -> FinancialSummary:
    zero = money(ZERO)
    return FinancialSummary(
        room_charge=zero,
        discount_amount=zero,
        total_extras=zero,
        tax_amount=zero,
        total_final=zero,
        total_paid=zero,
        total_pending=zero,
        is_fully_paid=True,
        payment_percentage=100,
        payment_status="fully_paid",
        has_payments=False,
        has_extras=False,
        has_discounts=False,
        breakdown=SummaryBreakdown(room=RoomChargeLine(amount=zero, nights=0)),
    )


def _percentage(total_paid: Decimal, total_final: Decimal) -> int:
    if total_final <= 0:
        return 100
    raw = (total_paid / total_final * HUNDRED).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return int(min(HUNDRED, max(ZERO, raw)))


def _breakdown(booking: BookingAggregate) -> SummaryBreakdown:
    discounts = []
    if booking.discount_amount > 0:
        discounts.append(
            DiscountLine(
                amount=money(booking.discount_amount),
                reason=booking.discount_reason,
                applied_at=booking.discount_applied_at,
                applied_by=booking.discount_applied_by,
            )
        )
    return SummaryBreakdown(
        room=RoomChargeLine(
            amount=money(booking.original_amount),
            nights=nights_between(booking.check_in, booking.check_out),
        ),
        extras=[
            ExtraChargeLine(
                id=c.id,
                description=c.description,
                unit_amount=money(c.amount),
                quantity=c.quantity,
                line_total=money(c.line_total),
                charge_date=c.charge_date,
            )
            for c in booking.extra_charges
        ],
        discounts=discounts,
        tax_amount=money(booking.tax_amount),
        payments=[
            PaymentLine(
                id=p.id,
                amount=money(p.amount),
                payment_method=p.payment_method,
                payment_status=p.payment_status,
                payment_date=p.payment_date,
                reference=p.reference,
                counted=counts_as_paid(p.payment_status),
            )
            for p in booking.payments
        ],
    )


def summarize(booking: BookingAggregate | None) -> FinancialSummary:
    if booking is None:
        return _zeroed()

    room_charge = money(booking.original_amount)
    discount = money(booking.discount_amount)
    tax = money(booking.tax_amount)

    total_paid = money(
        sum(
            (p.amount for p in booking.payments if counts_as_paid(p.payment_status)),
            ZERO,
        )
    )
    total_extras = money(sum((c.line_total for c in booking.extra_charges), ZERO))

    total_final = max(money(ZERO), room_charge - discount + total_extras + tax)
    total_pending = max(money(ZERO), total_final - total_paid)
    is_fully_paid = total_pending == 0

    if is_fully_paid:
        payment_status = "fully_paid"
    elif total_paid > 0:
        payment_status = "partially_paid"
    else:
        payment_status = "unpaid"

    return FinancialSummary(
        room_charge=room_charge,
        discount_amount=discount,
        total_extras=total_extras,
        tax_amount=tax,
        total_final=total_final,
        total_paid=total_paid,
        total_pending=total_pending,
        is_fully_paid=is_fully_paid,
        payment_percentage=_percentage(total_paid, total_final),
        payment_status=payment_status,
        has_payments=total_paid > 0,
        has_extras=total_extras > 0,
        has_discounts=discount > 0,
        breakdown=_breakdown(booking),
    )
