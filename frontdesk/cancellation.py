"""
Cancellation policy.

A booking can be cancelled only before the guest arrives and only while money
is still owed: a fully paid booking goes through checkout instead, so the
money already collected keeps its audit trail. When something was paid, the
hotel never refunds cash. Cancelling far enough ahead earns a credit voucher
for everything paid; cancelling late forfeits it.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from frontdesk import settings
from frontdesk.financials import ZERO, money, summarize
from frontdesk.models import BookingStatus
from frontdesk.schemas import (
    BookingAggregate,
    CancellationEligibility,
    CancellationPolicy,
    FinancialSummary,
    RefundType,
)

REASON_ALREADY_CANCELLED = "Ya cancelada"
REASON_ALREADY_ARRIVED = "Ya registrada entrada/salida"
REASON_FULLY_PAID = "Completamente pagada - debe hacer checkout"
REASON_PAST_CHECK_IN = "No se puede cancelar"

_ARRIVED_STATUSES = frozenset({BookingStatus.CHECKED_IN, BookingStatus.COMPLETED})


def days_until_check_in(booking: BookingAggregate, now: datetime) -> int:
    """Whole days until check-in, rounded up. Negative once check-in has passed."""
    return -((now - booking.check_in) // timedelta(days=1))


def _eligibility(
    booking: BookingAggregate, summary: FinancialSummary, days: int
) -> CancellationEligibility:
    if booking.status == BookingStatus.CANCELLED:
        return CancellationEligibility(can_cancel=False, reason=REASON_ALREADY_CANCELLED)
    if booking.status in _ARRIVED_STATUSES:
        return CancellationEligibility(can_cancel=False, reason=REASON_ALREADY_ARRIVED)
    if summary.is_fully_paid:
        return CancellationEligibility(can_cancel=False, reason=REASON_FULLY_PAID)
    if days < 0:
        return CancellationEligibility(can_cancel=False, reason=REASON_PAST_CHECK_IN)
    return CancellationEligibility(can_cancel=True)


def can_cancel(booking: BookingAggregate, now: datetime) -> CancellationEligibility:
    return _eligibility(booking, summarize(booking), days_until_check_in(booking, now))


def evaluate_cancellation(
    booking: BookingAggregate,
    now: datetime,
    *,
    refund_threshold_days: int | None = None,
    voucher_ttl_days: int | None = None,
) -> CancellationPolicy:
    if refund_threshold_days is None:
        refund_threshold_days = settings.REFUND_THRESHOLD_DAYS
    if voucher_ttl_days is None:
        voucher_ttl_days = settings.VOUCHER_TTL_DAYS

    summary = summarize(booking)
    days = days_until_check_in(booking, now)
    eligibility = _eligibility(booking, summary, days)

    if not eligibility.can_cancel:
        return CancellationPolicy(
            can_cancel=False,
            reason=eligibility.reason,
            days_until_check_in=days,
            total_paid=summary.total_paid,
        )

    if summary.total_paid <= 0:
        return CancellationPolicy(
            can_cancel=True,
            days_until_check_in=days,
            total_paid=summary.total_paid,
            refund_type=RefundType.NO_PAYMENT,
            applied_rule="Sin pagos registrados: cancelación sin cargos",
            estimated_credit=money(ZERO),
        )

    if days >= refund_threshold_days:
        return CancellationPolicy(
            can_cancel=True,
            days_until_check_in=days,
            total_paid=summary.total_paid,
            refund_type=RefundType.CREDIT_VOUCHER,
            applied_rule=(
                f"{refund_threshold_days}+ días antes: crédito válido por "
                f"{voucher_ttl_days} días"
            ),
            estimated_credit=summary.total_paid,
            credit_expires_at=now + timedelta(days=voucher_ttl_days),
        )

    return CancellationPolicy(
        can_cancel=True,
        days_until_check_in=days,
        total_paid=summary.total_paid,
        refund_type=RefundType.FORFEIT,
        applied_rule=(
            f"Menos de {refund_threshold_days} días: el hotel se queda con el anticipo"
        ),
        estimated_credit=money(ZERO),
        warnings=[
            f"Cancelación tardía: el pago de {summary.total_paid} no es reembolsable"
        ],
    )
