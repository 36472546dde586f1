"""
All test-data builders in one place.
Import from here in every test file: never define dummy data inline.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

from frontdesk.deps import CurrentUser
from frontdesk.schemas import (
    BookingAggregate,
    BookingStatus,
    ExtraChargeRecord,
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
    PaymentType,
    VoucherRecord,
    VoucherStatus,
)
from frontdesk.scopes import FrontdeskScope

# ---------------------------------------------------------------------------
# Stable IDs: use these when a specific, repeatable UUID is needed.
# Call uuid4() inline when you need a fresh one per test.
# ---------------------------------------------------------------------------

CLERK_ID: UUID = uuid4()
SUPERVISOR_ID: UUID = uuid4()
ADMIN_ID: UUID = uuid4()

BOOKING_ID: UUID = uuid4()
OTHER_BOOKING_ID: UUID = uuid4()
VOUCHER_ID: UUID = uuid4()

# Noon in the hotel's timezone (America/Bogota, UTC-5) so calendar nights are unambiguous
NOW = datetime(2026, 6, 1, 17, 0, 0, tzinfo=UTC)
CHECK_IN = NOW
CHECK_OUT = NOW + timedelta(days=4)

VOUCHER_CODE = "BLU123456ABCD"


def dec(value) -> Decimal:
    return Decimal(str(value))


# ---------------------------------------------------------------------------
# User factories
# ---------------------------------------------------------------------------


def make_clerk(
    user_id: UUID = CLERK_ID,
    scopes: list[str] | None = None,
) -> CurrentUser:
    """Front desk clerk: day-to-day operations, no discounts and no forcing."""
    if scopes is None:
        scopes = [
            FrontdeskScope.READ,
            FrontdeskScope.PAYMENTS_WRITE,
            FrontdeskScope.EXTRAS_WRITE,
            FrontdeskScope.CHECKOUT,
            FrontdeskScope.CANCEL,
            FrontdeskScope.VOUCHERS_READ,
            FrontdeskScope.VOUCHERS_REDEEM,
        ]
    return CurrentUser(id=user_id, username=f"clerk_{user_id}", scopes=scopes)


def make_supervisor(user_id: UUID = SUPERVISOR_ID) -> CurrentUser:
    """Clerk scopes plus discounts, forced checkout and voucher issuance."""
    clerk = make_clerk(user_id)
    return CurrentUser(
        id=user_id,
        username="supervisor",
        scopes=[
            *clerk.scopes,
            FrontdeskScope.DISCOUNT,
            FrontdeskScope.FORCE_CHECKOUT,
            FrontdeskScope.VOUCHERS_ISSUE,
        ],
    )


def make_admin() -> CurrentUser:
    return CurrentUser(id=ADMIN_ID, username="admin", scopes=[FrontdeskScope.ADMIN])


# ---------------------------------------------------------------------------
# Aggregate factories
# ---------------------------------------------------------------------------


def make_payment(
    amount,
    *,
    method: PaymentMethod = PaymentMethod.CASH,
    status: PaymentStatus = PaymentStatus.COMPLETED,
    payment_type: PaymentType | None = PaymentType.PARTIAL,
    payment_date: datetime = NOW,
    reference: str | None = None,
) -> PaymentRecord:
    return PaymentRecord(
        id=uuid4(),
        amount=dec(amount),
        payment_method=method,
        payment_status=status,
        payment_type=payment_type,
        payment_date=payment_date,
        reference=reference,
        processed_by="clerk",
    )


def make_extra(amount, quantity: int = 1, description: str = "Minibar") -> ExtraChargeRecord:
    return ExtraChargeRecord(
        id=uuid4(),
        description=description,
        amount=dec(amount),
        quantity=quantity,
        charge_date=NOW,
        created_by="clerk",
    )


def make_booking(
    *,
    original_amount="400000",
    discount_amount="0",
    payments: list[PaymentRecord] | None = None,
    extra_charges: list[ExtraChargeRecord] | None = None,
    **overrides,
) -> BookingAggregate:
    """Four-night checked-in stay, nothing paid, unless overridden."""
    original = dec(original_amount)
    discount = dec(discount_amount)
    base = dict(
        id=BOOKING_ID,
        room_number="101",
        guest_id="CC-1020304050",
        guest_count=2,
        check_in=CHECK_IN,
        check_out=CHECK_OUT,
        status=BookingStatus.CHECKED_IN,
        original_amount=original,
        discount_amount=discount,
        total_amount=original - discount,
        version=1,
        payments=payments or [],
        extra_charges=extra_charges or [],
    )
    return BookingAggregate(**{**base, **overrides})


def make_voucher(**overrides) -> VoucherRecord:
    base = dict(
        id=VOUCHER_ID,
        voucher_code=VOUCHER_CODE,
        amount=dec("150000.00"),
        status=VoucherStatus.ACTIVE,
        original_booking_id=OTHER_BOOKING_ID,
        created_at=NOW,
        expires_at=NOW + timedelta(days=30),
        created_by="clerk",
    )
    return VoucherRecord(**{**base, **overrides})


# ---------------------------------------------------------------------------
# Request payload factories
# ---------------------------------------------------------------------------


def payment_payload(**overrides) -> dict:
    base = dict(amount="50000.00", payment_method="cash", reference=None)
    return {**base, **overrides}


def checkout_payload(**overrides) -> dict:
    base = dict(force_checkout=False)
    return {**base, **overrides}
