from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from frontdesk.cache import (
    get_summary_cache,
    get_summary_generation,
    invalidate_summary_cache,
    set_summary_cache,
)
from frontdesk.checkout import CheckoutOptions, FollowUp
from frontdesk.crud import booking_crud
from frontdesk.deps import (
    BillingClient,
    CurrentUser,
    RoomsClient,
    ShiftsClient,
    can_add_extra_charge,
    can_apply_discount,
    can_cancel_booking,
    can_checkout,
    can_read_booking,
    can_register_payment,
    get_billing_client,
    get_rooms_client,
    get_shifts_client,
    has_scope,
)
from frontdesk.errors import FrontdeskError
from frontdesk.routers.common import http_error, retry_on_conflict, to_response
from frontdesk.schemas import (
    BookingResponse,
    CancellationPolicy,
    CancellationResponse,
    CancelRequest,
    CheckoutRequest,
    CheckoutResponse,
    ExtraChargeCreate,
    ExtraChargeRecord,
    FinancialSummary,
    ManualDiscountRequest,
    PaymentCreate,
    PaymentMethod,
    PaymentReceipt,
)
from frontdesk.scopes import FrontdeskScope

router = APIRouter(prefix="/bookings", tags=["bookings"])

BILL_FAILED_WARNING = "No se pudo generar la factura automáticamente, genérela desde facturación"
ROOM_FAILED_WARNING = "No se pudo liberar la habitación, actualice su estado manualmente"
SHIFT_FAILED_WARNING = "El pago no se reportó al turno de caja abierto"


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    _: CurrentUser = Depends(can_read_booking),
) -> BookingResponse:
    booking = await booking_crud.get_booking(booking_id)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return to_response(booking)


@router.get("/{booking_id}/summary", response_model=FinancialSummary)
async def get_financial_summary(
    booking_id: UUID,
    _: CurrentUser = Depends(can_read_booking),
) -> FinancialSummary:
    generation = await get_summary_generation(booking_id)
    cached = await get_summary_cache(booking_id, generation)
    if cached is not None:
        logger.debug("Cache hit for summary: booking_id={}", booking_id)
        return FinancialSummary.model_validate(cached)

    logger.debug("Cache miss for summary: booking_id={}", booking_id)
    try:
        summary = await booking_crud.get_summary(booking_id)
    except FrontdeskError as exc:
        raise http_error(exc) from exc
    await set_summary_cache(booking_id, generation, summary.model_dump(mode="json"))
    return summary


@router.get("/{booking_id}/cancellation", response_model=CancellationPolicy)
async def preview_cancellation(
    booking_id: UUID,
    _: CurrentUser = Depends(can_read_booking),
) -> CancellationPolicy:
    """What cancelling right now would do. Nothing is changed."""
    try:
        return await booking_crud.get_cancellation_policy(booking_id)
    except FrontdeskError as exc:
        raise http_error(exc) from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@router.post(
    "/{booking_id}/payments",
    response_model=PaymentReceipt,
    status_code=status.HTTP_201_CREATED,
)
async def submit_payment(
    booking_id: UUID,
    payload: PaymentCreate,
    current_user: CurrentUser = Depends(can_register_payment),
    shifts_client: ShiftsClient = Depends(get_shifts_client),
) -> PaymentReceipt:
    try:
        payment = await retry_on_conflict(
            lambda: booking_crud.submit_payment(
                booking_id, payload, processed_by=current_user.username
            )
        )
    except FrontdeskError as exc:
        raise http_error(exc) from exc

    await invalidate_summary_cache(booking_id)

    warnings = []
    if payment.payment_method == PaymentMethod.CASH:
        if not await shifts_client.record_cash_payment(
            booking_id, payment, current_user
        ):
            warnings.append(SHIFT_FAILED_WARNING)
    return PaymentReceipt(payment=payment, warnings=warnings)


@router.post(
    "/{booking_id}/extra-charges",
    response_model=ExtraChargeRecord,
    status_code=status.HTTP_201_CREATED,
)
async def add_extra_charge(
    booking_id: UUID,
    payload: ExtraChargeCreate,
    current_user: CurrentUser = Depends(can_add_extra_charge),
) -> ExtraChargeRecord:
    try:
        charge = await retry_on_conflict(
            lambda: booking_crud.add_extra_charge(
                booking_id, payload, created_by=current_user.username
            )
        )
    except FrontdeskError as exc:
        raise http_error(exc) from exc

    await invalidate_summary_cache(booking_id)
    return charge


@router.post("/{booking_id}/discount", response_model=BookingResponse)
async def apply_manual_discount(
    booking_id: UUID,
    payload: ManualDiscountRequest,
    current_user: CurrentUser = Depends(can_apply_discount),
) -> BookingResponse:
    try:
        booking = await retry_on_conflict(
            lambda: booking_crud.apply_manual_discount(
                booking_id,
                payload.amount,
                payload.reason,
                applied_by=current_user.username,
            )
        )
    except FrontdeskError as exc:
        raise http_error(exc) from exc

    await invalidate_summary_cache(booking_id)
    return to_response(booking)


@router.post("/{booking_id}/checkout", response_model=CheckoutResponse)
async def checkout(
    booking_id: UUID,
    payload: CheckoutRequest,
    current_user: CurrentUser = Depends(can_checkout),
    billing_client: BillingClient = Depends(get_billing_client),
    rooms_client: RoomsClient = Depends(get_rooms_client),
) -> CheckoutResponse:
    if payload.force_checkout and not has_scope(
        current_user, FrontdeskScope.FORCE_CHECKOUT
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Forcing a checkout requires '{FrontdeskScope.FORCE_CHECKOUT}'",
        )

    options = CheckoutOptions(
        actual_check_out=payload.actual_check_out,
        force_checkout=payload.force_checkout,
        early_checkout_reason=payload.early_checkout_reason,
        discount_amount=payload.discount_amount,
        discount_reason=payload.discount_reason,
        notes=payload.notes,
        performed_by=current_user.username,
    )
    try:
        decision = await retry_on_conflict(
            lambda: booking_crud.checkout(booking_id, options)
        )
    except FrontdeskError as exc:
        raise http_error(exc) from exc

    await invalidate_summary_cache(booking_id)

    # Follow-ups run after commit; failures only surface as warnings
    warnings = list(decision.warnings)
    if FollowUp.GENERATE_BILL in decision.follow_ups:
        if not await billing_client.generate_bill(
            booking_id, decision.summary, current_user
        ):
            warnings.append(BILL_FAILED_WARNING)
    if FollowUp.RELEASE_ROOM in decision.follow_ups:
        if not await rooms_client.release_room(
            decision.booking.room_number, current_user
        ):
            warnings.append(ROOM_FAILED_WARNING)

    return CheckoutResponse(
        booking=to_response(decision.booking),
        summary=decision.summary,
        discount=decision.discount,
        is_early_checkout=decision.is_early,
        is_forced=decision.is_forced,
        warnings=warnings,
    )


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: UUID,
    payload: CancelRequest,
    current_user: CurrentUser = Depends(can_cancel_booking),
    rooms_client: RoomsClient = Depends(get_rooms_client),
) -> CancellationResponse:
    try:
        booking, policy, voucher = await retry_on_conflict(
            lambda: booking_crud.cancel_booking(
                booking_id, payload.reason, cancelled_by=current_user.username
            )
        )
    except FrontdeskError as exc:
        raise http_error(exc) from exc

    await invalidate_summary_cache(booking_id)

    warnings = list(policy.warnings)
    if not await rooms_client.release_room(booking.room_number, current_user):
        warnings.append(ROOM_FAILED_WARNING)

    return CancellationResponse(
        booking=to_response(booking),
        policy=policy,
        voucher=voucher,
        warnings=warnings,
    )
