from enum import StrEnum

from tortoise import fields
from tortoise.models import Model


class BookingStatus(StrEnum):
    PENDING = "pending"  # created, awaiting confirmation or first payment
    CONFIRMED = "confirmed"  # hotel accepted the reservation
    PAID = "paid"  # paid in advance, guest not arrived yet
    CHECKED_IN = "checked-in"  # guest is in the room
    COMPLETED = "completed"  # checked out, terminal
    CANCELLED = "cancelled"  # cancelled before arrival, terminal


class PaymentStatus(StrEnum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    COMPLETED = "completed"
    PAID = "paid"  # legacy gateway status, counts as received
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class PaymentMethod(StrEnum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CASH = "cash"
    TRANSFER = "transfer"
    ONLINE = "online"
    VOUCHER = "voucher"


class PaymentType(StrEnum):
    FULL = "full"
    PARTIAL = "partial"
    VOUCHER = "voucher"


class VoucherStatus(StrEnum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class Booking(Model):
    id = fields.UUIDField(primary_key=True)

    room_number = fields.CharField(max_length=16)
    guest_id = fields.CharField(max_length=64, null=True)
    guest_count = fields.IntField(default=1)

    check_in = fields.DatetimeField()
    check_out = fields.DatetimeField()  # contracted
    actual_check_out = fields.DatetimeField(null=True)  # set on completion only

    status = fields.CharEnumField(BookingStatus, default=BookingStatus.PENDING)

    original_amount = fields.DecimalField(
        max_digits=12, decimal_places=2
    )  # room charge fixed at creation
    discount_amount = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount_reason = fields.TextField(null=True)
    discount_applied_at = fields.DatetimeField(null=True)
    discount_applied_by = fields.CharField(max_length=128, null=True)
    total_amount = fields.DecimalField(
        max_digits=12, decimal_places=2
    )  # original_amount - discount_amount
    tax_amount = fields.DecimalField(max_digits=12, decimal_places=2, default=0)

    cancellation_reason = fields.TextField(null=True)
    cancelled_at = fields.DatetimeField(null=True)
    cancelled_by = fields.CharField(max_length=128, null=True)
    completed_by = fields.CharField(max_length=128, null=True)
    checkout_notes = fields.TextField(null=True)

    version = fields.IntField(default=1)  # optimistic concurrency token
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    payments: fields.ReverseRelation["Payment"]
    extra_charges: fields.ReverseRelation["ExtraCharge"]

    class Meta:  # type: ignore
        table = "bookings"
        ordering = ["-created_at"]


class Payment(Model):
    id = fields.UUIDField(primary_key=True)
    booking: fields.ForeignKeyRelation[Booking] = fields.ForeignKeyField(
        "models.Booking", related_name="payments", on_delete=fields.CASCADE
    )

    amount = fields.DecimalField(max_digits=12, decimal_places=2)
    payment_method = fields.CharEnumField(PaymentMethod)
    payment_status = fields.CharEnumField(
        PaymentStatus, default=PaymentStatus.COMPLETED
    )
    payment_type = fields.CharEnumField(PaymentType, null=True)
    payment_date = fields.DatetimeField()
    reference = fields.CharField(max_length=128, null=True)
    processed_by = fields.CharField(max_length=128, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "payments"
        ordering = ["payment_date"]


class ExtraCharge(Model):
    id = fields.UUIDField(primary_key=True)
    booking: fields.ForeignKeyRelation[Booking] = fields.ForeignKeyField(
        "models.Booking", related_name="extra_charges", on_delete=fields.CASCADE
    )

    description = fields.CharField(max_length=255)
    amount = fields.DecimalField(max_digits=12, decimal_places=2)  # unit price
    quantity = fields.IntField(default=1)
    charge_date = fields.DatetimeField()
    created_by = fields.CharField(max_length=128, null=True)

    class Meta:  # type: ignore
        table = "extra_charges"
        ordering = ["charge_date"]


class Voucher(Model):
    id = fields.UUIDField(primary_key=True)
    voucher_code = fields.CharField(max_length=32, unique=True, db_index=True)
    amount = fields.DecimalField(max_digits=12, decimal_places=2)
    status = fields.CharEnumField(VoucherStatus, default=VoucherStatus.ACTIVE)

    # Plain ids: after issuance a voucher belongs to no single booking
    original_booking_id = fields.UUIDField()
    used_booking_id = fields.UUIDField(null=True)

    expires_at = fields.DatetimeField()
    used_at = fields.DatetimeField(null=True)
    used_by = fields.CharField(max_length=128, null=True)
    created_by = fields.CharField(max_length=128)
    notes = fields.TextField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "vouchers"
        ordering = ["-created_at"]
