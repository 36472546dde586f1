"""
Discount computations: manual, early-checkout proration, overdue forgiveness.

Every function returns a DiscountDecision and never touches the booking. An
invalid decision carries amount 0 and valid=False with the reason it was
refused. Discounts apply to the room charge only, so no decision may exceed
what is left of `original_amount` after any existing discount.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from frontdesk import settings
from frontdesk.financials import ZERO, money, nights_between
from frontdesk.schemas import (
    BookingAggregate,
    DiscountDecision,
    DiscountSource,
    FinancialSummary,
)


def remaining_room_charge(booking: BookingAggregate) -> Decimal:
    """How much of the room charge is still discountable."""
    return max(money(ZERO), money(booking.original_amount - booking.discount_amount))


def _refused(source: DiscountSource, reason: str) -> DiscountDecision:
    return DiscountDecision(amount=money(ZERO), reason=reason, source=source, valid=False)


# ---------------------------------------------------------------------------
# Overdue helpers
# ---------------------------------------------------------------------------


def is_overdue(booking: BookingAggregate, now: datetime) -> bool:
    return now > booking.check_out


def days_overdue(booking: BookingAggregate, now: datetime) -> int:
    if not is_overdue(booking, now):
        return 0
    return (now - booking.check_out) // timedelta(days=1)


def _plural_days(n: int) -> str:
    return f"{n} día{'s' if n != 1 else ''}"


# ---------------------------------------------------------------------------
# Discount sources
# ---------------------------------------------------------------------------


def manual_discount(
    booking: BookingAggregate, amount: Decimal, reason: str
) -> DiscountDecision:
    amount = money(amount)
    reason = (reason or "").strip()
    if amount <= 0:
        return _refused(DiscountSource.MANUAL, "El descuento debe ser mayor a cero")
    if not reason:
        return _refused(DiscountSource.MANUAL, "La razón del descuento es requerida")
    available = remaining_room_charge(booking)
    if amount > available:
        return _refused(
            DiscountSource.MANUAL,
            f"El descuento ({amount}) excede el valor disponible de la habitación "
            f"({available})",
        )
    return DiscountDecision(amount=amount, reason=reason, source=DiscountSource.MANUAL)


def early_checkout_discount(
    booking: BookingAggregate,
    new_check_out: datetime,
    reason: str | None = None,
) -> DiscountDecision:
    """Prorate the room charge by unused nights. Extras stay payable in full."""
    contracted = nights_between(booking.check_in, booking.check_out)
    stayed = max(1, nights_between(booking.check_in, new_check_out))

    if contracted <= 0 or stayed >= contracted:
        return _refused(
            DiscountSource.EARLY_CHECKOUT,
            "No hay noches sin usar para prorratear",
        )

    unused = contracted - stayed
    prorated = money(
        Decimal(booking.original_amount) * Decimal(unused) / Decimal(contracted)
    )
    amount = min(prorated, remaining_room_charge(booking))
    if amount <= 0:
        return _refused(
            DiscountSource.EARLY_CHECKOUT,
            "La habitación ya no tiene saldo descontable",
        )

    synthesized = (
        f"Check-out anticipado: {contracted} noches → {stayed} noches "
        f"({_plural_days(unused)} menos)"
    )
    text = f"{synthesized} - {reason.strip()}" if reason and reason.strip() else synthesized
    return DiscountDecision(
        amount=amount, reason=text, source=DiscountSource.EARLY_CHECKOUT
    )


def overdue_discount(
    booking: BookingAggregate,
    summary: FinancialSummary,
    now: datetime,
    threshold_days: int | None = None,
) -> DiscountDecision:
    """
    Forgive the outstanding balance of a stay past its checkout date by more
    than `threshold_days`, so the room can be released when the guest is
    unreachable. Capped at the remaining room charge.
    """
    if threshold_days is None:
        threshold_days = settings.OVERDUE_THRESHOLD_DAYS

    if now - booking.check_out <= timedelta(days=threshold_days):
        return _refused(
            DiscountSource.OVERDUE,
            f"La reserva no supera {_plural_days(threshold_days)} de vencimiento",
        )
    if summary.total_pending <= 0:
        return _refused(DiscountSource.OVERDUE, "No hay saldo pendiente")

    amount = min(summary.total_pending, remaining_room_charge(booking))
    if amount <= 0:
        return _refused(
            DiscountSource.OVERDUE,
            "La habitación ya no tiene saldo descontable",
        )

    overdue = days_overdue(booking, now)
    return DiscountDecision(
        amount=amount,
        reason=(
            f"Descuento automático por check-out vencido hace {_plural_days(overdue)}: "
            f"se condonan {amount} del saldo pendiente"
        ),
        source=DiscountSource.OVERDUE,
    )
