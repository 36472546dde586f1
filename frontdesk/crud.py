from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from loguru import logger
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from frontdesk import settings
from frontdesk.cancellation import evaluate_cancellation
from frontdesk.checkout import (
    TERMINAL_STATUSES,
    CheckoutDecision,
    CheckoutOptions,
    apply_discount,
    decide_checkout,
)
from frontdesk.discounts import manual_discount
from frontdesk.errors import (
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    VoucherError,
)
from frontdesk.financials import money, summarize
from frontdesk.models import (
    Booking,
    BookingStatus,
    ExtraCharge,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Voucher,
    VoucherStatus,
)
from frontdesk.schemas import (
    BookingAggregate,
    CancellationPolicy,
    ExtraChargeCreate,
    ExtraChargeRecord,
    FinancialSummary,
    PaymentCreate,
    PaymentRecord,
    RefundType,
    VoucherRecord,
    VoucherValidation,
)
from frontdesk.vouchers import (
    check_voucher,
    generate_voucher_code,
    is_expired,
    normalize_code,
    voucher_expiry,
)

# Booking columns the engine may change; everything else is owned elsewhere.
_MUTABLE_FIELDS = (
    "status",
    "actual_check_out",
    "discount_amount",
    "discount_reason",
    "discount_applied_at",
    "discount_applied_by",
    "total_amount",
    "cancellation_reason",
    "cancelled_at",
    "cancelled_by",
    "completed_by",
    "checkout_notes",
)
_CODE_ATTEMPTS = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_aggregate(inst: Booking) -> BookingAggregate:
    """Validate a booking row and its prefetched children into the strict schema."""
    data = {
        name: getattr(inst, name)
        for name in BookingAggregate.model_fields
        if name not in ("payments", "extra_charges")
    }
    data["payments"] = [
        PaymentRecord.model_validate(p, from_attributes=True) for p in inst.payments
    ]
    data["extra_charges"] = [
        ExtraChargeRecord.model_validate(c, from_attributes=True)
        for c in inst.extra_charges
    ]
    return BookingAggregate.model_validate(data)


class BookingCRUD:
    # -- repository -----------------------------------------------------------

    async def load_aggregate(
        self, booking_id: UUID, *, lock: bool = False
    ) -> BookingAggregate:
        """
        Load a booking with its payments and extra charges.
        With lock=True the row is held (SELECT ... FOR UPDATE) until the
        surrounding transaction ends; callers must be inside in_transaction().
        """
        qs = Booking.filter(id=booking_id)
        if lock:
            qs = qs.select_for_update()
        inst = await qs.prefetch_related("payments", "extra_charges").first()
        if inst is None:
            raise NotFoundError("Booking not found", data={"booking_id": str(booking_id)})
        return _to_aggregate(inst)

    async def save_aggregate(self, aggregate: BookingAggregate) -> BookingAggregate:
        """
        Write back the engine-owned fields, but only if nobody saved since the
        aggregate was loaded. Bumps the version on success.
        """
        values = {name: getattr(aggregate, name) for name in _MUTABLE_FIELDS}
        updated = await Booking.filter(id=aggregate.id, version=aggregate.version).update(
            **values,
            version=aggregate.version + 1,
            updated_at=utcnow(),
        )
        if not updated:
            raise ConcurrencyConflictError(
                "Booking was modified concurrently, reload and retry",
                data={"booking_id": str(aggregate.id), "version": aggregate.version},
            )
        return aggregate.model_copy(update={"version": aggregate.version + 1})

    # -- reads ----------------------------------------------------------------

    async def get_booking(self, booking_id: UUID) -> BookingAggregate | None:
        try:
            return await self.load_aggregate(booking_id)
        except NotFoundError:
            return None

    async def get_summary(self, booking_id: UUID) -> FinancialSummary:
        return summarize(await self.load_aggregate(booking_id))

    async def get_cancellation_policy(
        self, booking_id: UUID, now: datetime | None = None
    ) -> CancellationPolicy:
        booking = await self.load_aggregate(booking_id)
        return evaluate_cancellation(booking, now or utcnow())

    # -- commands -------------------------------------------------------------

    async def submit_payment(
        self,
        booking_id: UUID,
        payload: PaymentCreate,
        processed_by: str,
        now: datetime | None = None,
    ) -> PaymentRecord:
        """
        Register money received at the desk. The amount must fit inside the
        outstanding balance observed under the booking lock.
        """
        now = now or utcnow()
        amount = money(payload.amount)

        async with in_transaction():
            booking = await self.load_aggregate(booking_id, lock=True)
            if booking.status == BookingStatus.CANCELLED:
                raise InvalidStateError(
                    "Cannot register payments on a cancelled booking",
                    data={"current_status": booking.status.value},
                )

            pending = summarize(booking).total_pending
            if pending <= 0:
                raise ValidationError("Booking has no outstanding balance")
            if amount > pending:
                raise ValidationError(
                    "Payment exceeds the outstanding balance",
                    data={"amount": str(amount), "total_pending": str(pending)},
                )

            inst = await Payment.create(
                booking_id=booking.id,
                amount=amount,
                payment_method=payload.payment_method,
                payment_status=PaymentStatus.COMPLETED,
                payment_type=PaymentType.FULL if amount == pending else PaymentType.PARTIAL,
                payment_date=now,
                reference=payload.reference,
                processed_by=processed_by,
            )
            await self.save_aggregate(booking)

        logger.info(
            "Payment registered: booking_id={} amount={} method={}",
            booking_id,
            amount,
            payload.payment_method,
        )
        return PaymentRecord.model_validate(inst, from_attributes=True)

    async def add_extra_charge(
        self,
        booking_id: UUID,
        payload: ExtraChargeCreate,
        created_by: str,
        now: datetime | None = None,
    ) -> ExtraChargeRecord:
        now = now or utcnow()
        async with in_transaction():
            booking = await self.load_aggregate(booking_id, lock=True)
            if booking.status in TERMINAL_STATUSES:
                raise InvalidStateError(
                    f"Cannot add charges to a '{booking.status}' booking",
                    data={"current_status": booking.status.value},
                )
            inst = await ExtraCharge.create(
                booking_id=booking.id,
                description=payload.description,
                amount=money(payload.amount),
                quantity=payload.quantity,
                charge_date=now,
                created_by=created_by,
            )
            await self.save_aggregate(booking)

        logger.info(
            "Extra charge added: booking_id={} description={!r} total={}",
            booking_id,
            payload.description,
            money(payload.amount * payload.quantity),
        )
        return ExtraChargeRecord.model_validate(inst, from_attributes=True)

    async def apply_manual_discount(
        self,
        booking_id: UUID,
        amount: Decimal,
        reason: str,
        applied_by: str,
        now: datetime | None = None,
    ) -> BookingAggregate:
        now = now or utcnow()
        async with in_transaction():
            booking = await self.load_aggregate(booking_id, lock=True)
            if booking.status in TERMINAL_STATUSES:
                raise InvalidStateError(
                    f"Cannot discount a '{booking.status}' booking",
                    data={"current_status": booking.status.value},
                )
            decision = manual_discount(booking, amount, reason)
            if not decision.valid:
                raise ValidationError(decision.reason)
            saved = await self.save_aggregate(
                apply_discount(booking, decision, applied_by, now)
            )

        logger.info(
            "Manual discount applied: booking_id={} amount={} by={}",
            booking_id,
            decision.amount,
            applied_by,
        )
        return saved

    async def checkout(
        self,
        booking_id: UUID,
        options: CheckoutOptions,
        now: datetime | None = None,
    ) -> CheckoutDecision:
        """
        Run the checkout state machine under the booking lock and commit its
        decision. Follow-ups in the returned decision are NOT executed here.
        """
        now = now or utcnow()
        async with in_transaction():
            booking = await self.load_aggregate(booking_id, lock=True)
            decision = decide_checkout(
                booking,
                options,
                now,
                overdue_threshold_days=settings.OVERDUE_THRESHOLD_DAYS,
            )
            saved = await self.save_aggregate(decision.booking)

        logger.info(
            "Checkout committed: booking_id={} early={} forced={} discount={} pending={}",
            booking_id,
            decision.is_early,
            decision.is_forced,
            decision.discount.amount if decision.discount else 0,
            decision.summary.total_pending,
        )
        return dataclasses.replace(decision, booking=saved)

    async def cancel_booking(
        self,
        booking_id: UUID,
        reason: str,
        cancelled_by: str,
        now: datetime | None = None,
    ) -> tuple[BookingAggregate, CancellationPolicy, VoucherRecord | None]:
        """
        Cancel a booking and, when the policy grants credit, issue the voucher
        in the same transaction.
        """
        now = now or utcnow()
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A cancellation reason is required")

        async with in_transaction():
            booking = await self.load_aggregate(booking_id, lock=True)
            policy = evaluate_cancellation(booking, now)
            if not policy.can_cancel:
                raise InvalidStateError(
                    policy.reason or "Booking cannot be cancelled",
                    data={
                        "current_status": booking.status.value,
                        "days_until_check_in": policy.days_until_check_in,
                    },
                )

            saved = await self.save_aggregate(
                booking.model_copy(
                    update={
                        "status": BookingStatus.CANCELLED,
                        "cancellation_reason": reason,
                        "cancelled_at": now,
                        "cancelled_by": cancelled_by,
                    }
                )
            )

            voucher = None
            if policy.refund_type == RefundType.CREDIT_VOUCHER:
                voucher = await voucher_crud.issue(
                    amount=policy.estimated_credit,
                    original_booking_id=booking.id,
                    created_by=cancelled_by,
                    expires_at=policy.credit_expires_at,
                    notes=f"Crédito por cancelación de reserva #{booking.id}. Motivo: {reason}",
                    now=now,
                )

        logger.info(
            "Booking cancelled: booking_id={} refund_type={} credit={}",
            booking_id,
            policy.refund_type,
            policy.estimated_credit,
        )
        return saved, policy, voucher


class VoucherCRUD:
    async def issue(
        self,
        amount: Decimal,
        original_booking_id: UUID,
        created_by: str,
        *,
        expires_at: datetime | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> VoucherRecord:
        now = now or utcnow()
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Voucher amount must be greater than zero")

        for _ in range(_CODE_ATTEMPTS):
            code = generate_voucher_code()
            if await Voucher.exists(voucher_code=code):
                continue
            try:
                # Savepoint: a duplicate code must not abort a caller's transaction.
                async with in_transaction():
                    inst = await Voucher.create(
                        voucher_code=code,
                        amount=amount,
                        status=VoucherStatus.ACTIVE,
                        original_booking_id=original_booking_id,
                        expires_at=expires_at or voucher_expiry(now),
                        created_by=created_by,
                        notes=notes,
                    )
                break
            except IntegrityError:
                logger.warning("Voucher code taken on insert, retrying: code={}", code)
        else:
            raise VoucherError("Could not allocate a unique voucher code")

        logger.info(
            "Voucher issued: code={} amount={} original_booking_id={}",
            code,
            amount,
            original_booking_id,
        )
        return VoucherRecord.model_validate(inst, from_attributes=True)

    async def _expire_if_due(
        self, voucher: VoucherRecord, now: datetime
    ) -> VoucherRecord:
        """Store `expired` on an active voucher found past its expiry."""
        if voucher.status != VoucherStatus.ACTIVE or not is_expired(voucher, now):
            return voucher
        await Voucher.filter(id=voucher.id, status=VoucherStatus.ACTIVE).update(
            status=VoucherStatus.EXPIRED
        )
        logger.info("Voucher expired on read: code={}", voucher.voucher_code)
        return voucher.model_copy(update={"status": VoucherStatus.EXPIRED})

    async def get_by_code(self, code: str) -> VoucherRecord | None:
        inst = await Voucher.get_or_none(voucher_code=normalize_code(code))
        if inst is None:
            return None
        return VoucherRecord.model_validate(inst, from_attributes=True)

    async def validate_code(
        self, code: str, now: datetime | None = None
    ) -> VoucherValidation:
        """Check redeemability. An active voucher found past its expiry is marked expired."""
        now = now or utcnow()
        voucher = await self.get_by_code(code)
        if voucher is not None:
            voucher = await self._expire_if_due(voucher, now)

        reason = check_voucher(voucher, now)
        if reason is not None:
            return VoucherValidation(is_valid=False, reason=reason)
        return VoucherValidation(is_valid=True, voucher=voucher)

    async def redeem(
        self,
        voucher_id: UUID,
        target_booking_id: UUID,
        redeemed_by: str,
        now: datetime | None = None,
    ) -> PaymentRecord:
        """
        Spend a voucher on a booking. The voucher flips active -> used with a
        conditional UPDATE, so of any number of concurrent attempts exactly one
        wins; the credit lands on the target booking as a completed payment.
        """
        now = now or utcnow()
        # Outside the redeem transaction so the reclassification survives the refusal.
        inst = await Voucher.get_or_none(id=voucher_id)
        if inst is not None:
            current = await self._expire_if_due(
                VoucherRecord.model_validate(inst, from_attributes=True), now
            )
            if current.status == VoucherStatus.EXPIRED:
                raise VoucherError(check_voucher(current, now))

        async with in_transaction():
            target = await booking_crud.load_aggregate(target_booking_id, lock=True)
            if target.status in TERMINAL_STATUSES:
                raise InvalidStateError(
                    f"Cannot apply credit to a '{target.status}' booking",
                    data={"current_status": target.status.value},
                )

            inst = await Voucher.get_or_none(id=voucher_id)
            voucher = (
                VoucherRecord.model_validate(inst, from_attributes=True) if inst else None
            )
            reason = check_voucher(voucher, now)
            if reason is not None:
                raise VoucherError(reason)

            swapped = await Voucher.filter(
                id=voucher_id, status=VoucherStatus.ACTIVE
            ).update(
                status=VoucherStatus.USED,
                used_at=now,
                used_booking_id=target.id,
                used_by=redeemed_by,
            )
            if swapped != 1:
                raise VoucherError("Este voucher ya fue utilizado")

            payment = await Payment.create(
                booking_id=target.id,
                amount=voucher.amount,
                payment_method=PaymentMethod.VOUCHER,
                payment_status=PaymentStatus.COMPLETED,
                payment_type=PaymentType.VOUCHER,
                payment_date=now,
                reference=voucher.voucher_code,
                processed_by=redeemed_by,
            )
            await booking_crud.save_aggregate(target)

        logger.info(
            "Voucher redeemed: code={} amount={} target_booking_id={}",
            voucher.voucher_code,
            voucher.amount,
            target_booking_id,
        )
        return PaymentRecord.model_validate(payment, from_attributes=True)

    async def redeem_by_code(
        self,
        code: str,
        target_booking_id: UUID,
        redeemed_by: str,
        now: datetime | None = None,
    ) -> PaymentRecord:
        voucher = await self.get_by_code(code)
        if voucher is None:
            raise VoucherError("Código de voucher no existe")
        return await self.redeem(voucher.id, target_booking_id, redeemed_by, now)


booking_crud = BookingCRUD()
voucher_crud = VoucherCRUD()
