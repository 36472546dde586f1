from fastapi import APIRouter, Depends, HTTPException, status

from frontdesk.cache import invalidate_summary_cache
from frontdesk.crud import booking_crud, utcnow, voucher_crud
from frontdesk.deps import (
    CurrentUser,
    can_issue_voucher,
    can_read_voucher,
    can_redeem_voucher,
)
from frontdesk.errors import FrontdeskError
from frontdesk.routers.common import http_error, retry_on_conflict
from frontdesk.schemas import (
    PaymentReceipt,
    VoucherCodeRequest,
    VoucherIssue,
    VoucherRecord,
    VoucherRedeemRequest,
    VoucherValidation,
)
from frontdesk.vouchers import voucher_expiry

router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@router.post("/", response_model=VoucherRecord, status_code=status.HTTP_201_CREATED)
async def issue_voucher(
    payload: VoucherIssue,
    current_user: CurrentUser = Depends(can_issue_voucher),
) -> VoucherRecord:
    """Hand-issued credit, e.g. a goodwill gesture. Cancellations issue their own."""
    if await booking_crud.get_booking(payload.original_booking_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    now = utcnow()
    try:
        return await voucher_crud.issue(
            amount=payload.amount,
            original_booking_id=payload.original_booking_id,
            created_by=current_user.username,
            expires_at=voucher_expiry(now, payload.ttl_days),
            notes=payload.notes,
            now=now,
        )
    except FrontdeskError as exc:
        raise http_error(exc) from exc


@router.post("/validate", response_model=VoucherValidation)
async def validate_voucher(
    payload: VoucherCodeRequest,
    _: CurrentUser = Depends(can_read_voucher),
) -> VoucherValidation:
    return await voucher_crud.validate_code(payload.code)


@router.post("/redeem", response_model=PaymentReceipt)
async def redeem_voucher(
    payload: VoucherRedeemRequest,
    current_user: CurrentUser = Depends(can_redeem_voucher),
) -> PaymentReceipt:
    try:
        payment = await retry_on_conflict(
            lambda: voucher_crud.redeem_by_code(
                payload.code, payload.booking_id, redeemed_by=current_user.username
            )
        )
    except FrontdeskError as exc:
        raise http_error(exc) from exc

    await invalidate_summary_cache(payload.booking_id)
    return PaymentReceipt(payment=payment)


@router.get("/{code}", response_model=VoucherRecord)
async def get_voucher(
    code: str,
    _: CurrentUser = Depends(can_read_voucher),
) -> VoucherRecord:
    voucher = await voucher_crud.get_by_code(code)
    if voucher is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Voucher not found"
        )
    return voucher
