from __future__ import annotations

from datetime import timedelta

from frontdesk.discounts import (
    days_overdue,
    early_checkout_discount,
    is_overdue,
    manual_discount,
    overdue_discount,
    remaining_room_charge,
)
from frontdesk.financials import summarize
from frontdesk.schemas import DiscountSource

from .factories import CHECK_IN, CHECK_OUT, dec, make_booking, make_extra, make_payment


class TestManualDiscount:
    def test_valid_discount(self):
        decision = manual_discount(make_booking(), dec("50000"), "Cliente frecuente")
        assert decision.valid is True
        assert decision.amount == dec("50000.00")
        assert decision.source == DiscountSource.MANUAL

    def test_non_positive_amount_is_refused(self):
        decision = manual_discount(make_booking(), dec("0"), "Cortesía")
        assert decision.valid is False
        assert decision.amount == dec("0.00")

    def test_blank_reason_is_refused(self):
        decision = manual_discount(make_booking(), dec("1000"), "   ")
        assert decision.valid is False

    def test_cannot_exceed_remaining_room_charge(self):
        booking = make_booking(original_amount="100000", discount_amount="80000")
        assert remaining_room_charge(booking) == dec("20000.00")
        decision = manual_discount(booking, dec("20000.01"), "Cortesía")
        assert decision.valid is False
        assert manual_discount(booking, dec("20000"), "Cortesía").valid is True


class TestEarlyCheckoutDiscount:
    def test_prorates_unused_nights(self):
        booking = make_booking(original_amount="400000")
        decision = early_checkout_discount(booking, CHECK_IN + timedelta(days=2))
        assert decision.valid is True
        assert decision.amount == dec("200000.00")
        assert decision.source == DiscountSource.EARLY_CHECKOUT
        assert decision.reason == (
            "Check-out anticipado: 4 noches → 2 noches (2 días menos)"
        )

    def test_same_day_departure_bills_one_night(self):
        booking = make_booking(original_amount="400000")
        decision = early_checkout_discount(booking, CHECK_IN + timedelta(hours=3))
        assert decision.amount == dec("300000.00")

    def test_caller_reason_is_appended(self):
        decision = early_checkout_discount(
            make_booking(), CHECK_IN + timedelta(days=3), "Emergencia familiar"
        )
        assert decision.reason.endswith("(1 día menos) - Emergencia familiar")

    def test_no_unused_nights(self):
        decision = early_checkout_discount(make_booking(), CHECK_OUT)
        assert decision.valid is False
        assert decision.amount == dec("0.00")

    def test_capped_by_existing_discount(self):
        booking = make_booking(original_amount="400000", discount_amount="350000")
        decision = early_checkout_discount(booking, CHECK_IN + timedelta(days=1))
        assert decision.amount == dec("50000.00")

    def test_rounds_to_cents(self):
        booking = make_booking(original_amount="100000", check_out=CHECK_IN + timedelta(days=3))
        decision = early_checkout_discount(booking, CHECK_IN + timedelta(days=1))
        # 100000 * 2 / 3
        assert decision.amount == dec("66666.67")


class TestOverdueDiscount:
    def test_forgives_pending_beyond_threshold(self):
        booking = make_booking(
            original_amount="300000", payments=[make_payment("150000")]
        )
        now = CHECK_OUT + timedelta(days=5)
        decision = overdue_discount(booking, summarize(booking), now, threshold_days=3)
        assert decision.valid is True
        assert decision.amount == dec("150000.00")
        assert decision.source == DiscountSource.OVERDUE
        assert "5 días" in decision.reason

    def test_within_threshold_is_refused(self):
        booking = make_booking(original_amount="300000")
        now = CHECK_OUT + timedelta(days=2)
        decision = overdue_discount(booking, summarize(booking), now, threshold_days=3)
        assert decision.valid is False

    def test_nothing_pending_is_refused(self):
        booking = make_booking(
            original_amount="300000", payments=[make_payment("300000")]
        )
        now = CHECK_OUT + timedelta(days=10)
        assert overdue_discount(booking, summarize(booking), now, 3).valid is False

    def test_capped_at_room_charge_when_extras_are_pending(self):
        booking = make_booking(
            original_amount="100000", extra_charges=[make_extra("50000")]
        )
        now = CHECK_OUT + timedelta(days=5)
        decision = overdue_discount(booking, summarize(booking), now, 3)
        assert decision.amount == dec("100000.00")

    def test_overdue_helpers(self):
        booking = make_booking()
        assert is_overdue(booking, CHECK_OUT) is False
        assert is_overdue(booking, CHECK_OUT + timedelta(minutes=1)) is True
        assert days_overdue(booking, CHECK_OUT + timedelta(days=5, hours=3)) == 5
        assert days_overdue(booking, CHECK_IN) == 0
