"""Financial summary calculator: formulas, payment counting, edge cases."""

from __future__ import annotations

from decimal import Decimal

import pytest

from frontdesk.financials import money, nights_between, summarize
from frontdesk.schemas import PaymentStatus

from .factories import (
    CHECK_IN,
    CHECK_OUT,
    dec,
    make_booking,
    make_extra,
    make_payment,
)


class TestScenarios:
    def test_fully_paid_room_only(self):
        booking = make_booking(
            original_amount="200000", payments=[make_payment("200000")]
        )
        summary = summarize(booking)
        assert summary.is_fully_paid is True
        assert summary.total_pending == dec("0.00")
        assert summary.payment_percentage == 100
        assert summary.payment_status == "fully_paid"

    def test_half_paid_with_extra_charge(self):
        booking = make_booking(
            original_amount="100000",
            extra_charges=[make_extra("20000", quantity=1)],
            payments=[make_payment("60000")],
        )
        summary = summarize(booking)
        assert summary.total_final == dec("120000.00")
        assert summary.total_paid == dec("60000.00")
        assert summary.total_pending == dec("60000.00")
        assert summary.payment_percentage == 50
        assert summary.payment_status == "partially_paid"


class TestFormulas:
    def test_discount_and_tax_enter_total_final(self):
        booking = make_booking(
            original_amount="300000",
            discount_amount="50000",
            tax_amount=dec("19000"),
            extra_charges=[make_extra("10000", quantity=3)],
        )
        summary = summarize(booking)
        # 300000 - 50000 + 30000 + 19000
        assert summary.total_final == dec("299000.00")
        assert summary.has_discounts is True
        assert summary.has_extras is True
        assert summary.has_payments is False
        assert summary.payment_status == "unpaid"

    def test_overpayment_never_goes_negative(self):
        booking = make_booking(
            original_amount="100000", payments=[make_payment("150000")]
        )
        summary = summarize(booking)
        assert summary.total_pending == dec("0.00")
        assert summary.is_fully_paid is True
        assert summary.payment_percentage == 100

    @pytest.mark.parametrize(
        "status, counted",
        [
            (PaymentStatus.COMPLETED, True),
            (PaymentStatus.AUTHORIZED, True),
            (PaymentStatus.PAID, True),
            (PaymentStatus.PENDING, False),
            (PaymentStatus.FAILED, False),
            (PaymentStatus.REFUNDED, False),
            (PaymentStatus.CANCELLED, False),
        ],
    )
    def test_only_received_statuses_count(self, status, counted):
        booking = make_booking(
            original_amount="100000", payments=[make_payment("40000", status=status)]
        )
        summary = summarize(booking)
        assert summary.total_paid == (dec("40000.00") if counted else dec("0.00"))
        assert summary.breakdown.payments[0].counted is counted

    def test_percentage_rounds_half_up(self):
        # 1 / 3 -> 33.33 %
        booking = make_booking(original_amount="300", payments=[make_payment("100")])
        assert summarize(booking).payment_percentage == 33
        # 2 / 3 -> 66.67 %
        booking = make_booking(original_amount="300", payments=[make_payment("200")])
        assert summarize(booking).payment_percentage == 67

    def test_pending_equals_final_minus_paid(self):
        booking = make_booking(
            original_amount="250000.50",
            extra_charges=[make_extra("1234.56", quantity=2)],
            payments=[make_payment("100000"), make_payment("0.01")],
        )
        s = summarize(booking)
        assert s.total_pending == max(Decimal("0"), s.total_final - s.total_paid)
        assert s.is_fully_paid == (s.total_pending == 0)


class TestEdgeCases:
    def test_missing_booking_yields_zeroed_summary(self):
        summary = summarize(None)
        assert summary.total_final == dec("0.00")
        assert summary.total_pending == dec("0.00")
        assert summary.is_fully_paid is True
        assert summary.payment_percentage == 100
        assert summary.breakdown.payments == []

    def test_zero_total_is_fully_paid(self):
        booking = make_booking(original_amount="100000", discount_amount="100000")
        summary = summarize(booking)
        assert summary.total_final == dec("0.00")
        assert summary.is_fully_paid is True
        assert summary.payment_percentage == 100

    def test_idempotent(self):
        booking = make_booking(
            original_amount="100000",
            extra_charges=[make_extra("5000", quantity=2)],
            payments=[make_payment("30000")],
        )
        assert summarize(booking) == summarize(booking)
        assert summarize(booking).model_dump() == summarize(booking).model_dump()

    def test_breakdown_lists_nights_and_lines(self):
        booking = make_booking(
            discount_amount="10000",
            discount_reason="Cortesía",
            extra_charges=[make_extra("8000", quantity=2, description="Lavandería")],
        )
        breakdown = summarize(booking).breakdown
        assert breakdown.room.nights == 4
        assert breakdown.extras[0].line_total == dec("16000.00")
        assert breakdown.discounts[0].reason == "Cortesía"


class TestHelpers:
    def test_money_quantizes_half_up(self):
        assert money("10.005") == dec("10.01")
        assert money(None) == dec("0.00")
        assert money("not a number") == dec("0.00")

    def test_nights_between_is_never_negative(self):
        assert nights_between(CHECK_IN, CHECK_OUT) == 4
        assert nights_between(CHECK_OUT, CHECK_IN) == 0
