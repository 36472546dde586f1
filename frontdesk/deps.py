from dataclasses import dataclass, field
from functools import lru_cache
from urllib.parse import quote, unquote
from uuid import UUID

import httpx
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger

from frontdesk import settings
from frontdesk.schemas import FinancialSummary, PaymentRecord
from frontdesk.scopes import FRONTDESK_SCOPE_DESCRIPTIONS, FrontdeskScope

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.users_ms_url}/auth/token",
    scopes=FRONTDESK_SCOPE_DESCRIPTIONS,
)


@dataclass
class CurrentUser:
    id: UUID
    username: str
    scopes: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return FrontdeskScope.ADMIN in self.scopes


def get_current_user(
    x_user_id: str = Header(...),
    x_username: str = Header(...),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser:
    """
    Reads the headers injected by the gateway after forwardAuth validation.
    The JWT has already been verified, these headers are trusted as-is.
    """
    try:
        user_id = UUID(x_user_id)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity from gateway",
        ) from None

    scopes = x_user_scopes.split(" ") if x_user_scopes else []

    return CurrentUser(id=user_id, username=unquote(x_username), scopes=scopes)


def require_scopes(*required: str):
    """
    Factory that returns a dependency enforcing one or more scopes.
    `admin:frontdesk` satisfies any requirement.

    Usage:
        @router.post("/{booking_id}/checkout")
        async def route(user = Depends(require_scopes("bookings:checkout"))):
            ...
    """

    async def _dep(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.is_admin:
            return current_user
        missing = [s for s in required if s not in current_user.scopes]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scopes: {', '.join(missing)}",
            )
        return current_user

    return _dep


def has_scope(user: CurrentUser, scope: str) -> bool:
    return user.is_admin or scope in user.scopes


# ---------------------------------------------------------------------------
# Pre-built scope dependencies
# ---------------------------------------------------------------------------

can_read_booking = require_scopes(FrontdeskScope.READ)
can_register_payment = require_scopes(FrontdeskScope.PAYMENTS_WRITE)
can_add_extra_charge = require_scopes(FrontdeskScope.EXTRAS_WRITE)
can_apply_discount = require_scopes(FrontdeskScope.DISCOUNT)
can_checkout = require_scopes(FrontdeskScope.CHECKOUT)
can_cancel_booking = require_scopes(FrontdeskScope.CANCEL)
can_read_voucher = require_scopes(FrontdeskScope.VOUCHERS_READ)
can_issue_voucher = require_scopes(FrontdeskScope.VOUCHERS_ISSUE)
can_redeem_voucher = require_scopes(FrontdeskScope.VOUCHERS_REDEEM)


def _forwarded_headers(user: CurrentUser) -> dict[str, str]:
    return {
        "X-User-Id": str(user.id),
        "X-Username": quote(user.username),
        "X-User-Scopes": " ".join(user.scopes),
    }


# ---------------------------------------------------------------------------
# BillingClient: thin async wrapper around billing-ms internal API
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_billing_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.billing_ms_url,
        timeout=httpx.Timeout(5.0),
        follow_redirects=True,
    )


class BillingClient:
    """
    Asks billing-ms to produce the invoice for a completed stay.
    Failures are swallowed: a missing bill must not undo a committed checkout,
    the desk can regenerate it later.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_billing_http_client()

    async def generate_bill(
        self, booking_id: UUID, summary: FinancialSummary, caller: CurrentUser
    ) -> bool:
        try:
            resp = await self._client.post(
                "/bills",
                json={
                    "booking_id": str(booking_id),
                    "summary": summary.model_dump(mode="json"),
                },
                headers=_forwarded_headers(caller),
            )
            return resp.status_code < 400
        except Exception:
            logger.opt(exception=True).warning(
                "Bill generation failed: booking_id={}", booking_id
            )
            return False


_billing_client = BillingClient()


def get_billing_client() -> BillingClient:
    return _billing_client


# ---------------------------------------------------------------------------
# RoomsClient: thin async wrapper around rooms-ms internal API
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_rooms_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.rooms_ms_url,
        timeout=httpx.Timeout(5.0),
        follow_redirects=True,
    )


class RoomsClient:
    """Marks a room available again after checkout or cancellation. Fails silently."""

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_rooms_http_client()

    async def release_room(self, room_number: str, caller: CurrentUser) -> bool:
        try:
            resp = await self._client.post(
                f"/rooms/{quote(room_number)}/release",
                headers=_forwarded_headers(caller),
            )
            return resp.status_code < 400
        except Exception:
            logger.opt(exception=True).warning(
                "Room release failed: room_number={}", room_number
            )
            return False


_rooms_client = RoomsClient()


def get_rooms_client() -> RoomsClient:
    return _rooms_client


# ---------------------------------------------------------------------------
# ShiftsClient: thin async wrapper around the reception shift ledger
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_shifts_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.shifts_ms_url,
        timeout=httpx.Timeout(5.0),
        follow_redirects=True,
    )


class ShiftsClient:
    """
    Reports cash taken at the desk to the caller's open reception shift so the
    drawer reconciles at close. Failures are swallowed.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_shifts_http_client()

    async def record_cash_payment(
        self, booking_id: UUID, payment: PaymentRecord, caller: CurrentUser
    ) -> bool:
        try:
            resp = await self._client.post(
                "/shifts/current/payments",
                json={
                    "booking_id": str(booking_id),
                    "payment_id": str(payment.id),
                    "amount": str(payment.amount),
                    "payment_method": payment.payment_method.value,
                },
                headers=_forwarded_headers(caller),
            )
            return resp.status_code < 400
        except Exception:
            logger.opt(exception=True).warning(
                "Shift ledger notification failed: payment_id={}", payment.id
            )
            return False


_shifts_client = ShiftsClient()


def get_shifts_client() -> ShiftsClient:
    return _shifts_client
