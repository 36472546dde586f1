"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files: pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from frontdesk import cache
from frontdesk.deps import (
    can_add_extra_charge,
    can_apply_discount,
    can_cancel_booking,
    can_checkout,
    can_issue_voucher,
    can_read_booking,
    can_read_voucher,
    can_redeem_voucher,
    can_register_payment,
    get_billing_client,
    get_current_user,
    get_rooms_client,
    get_shifts_client,
)
from frontdesk.routers.booking import router as booking_router
from frontdesk.routers.voucher import router as voucher_router

from .factories import make_admin, make_clerk, make_supervisor

# ---------------------------------------------------------------------------
# Default no-op client mocks: prevent real HTTP calls in tests
# ---------------------------------------------------------------------------


def _noop_billing_client():
    mock = MagicMock()
    mock.generate_bill = AsyncMock(return_value=True)
    return mock


def _noop_rooms_client():
    mock = MagicMock()
    mock.release_room = AsyncMock(return_value=True)
    return mock


def _noop_shifts_client():
    mock = MagicMock()
    mock.record_cash_payment = AsyncMock(return_value=True)
    return mock


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Every test gets an in-process Redis stand-in with an empty cache."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    redis.incr = AsyncMock(return_value=1)
    redis.expire = AsyncMock(return_value=True)
    monkeypatch.setattr(cache, "get_redis", lambda: redis)
    return redis


# ---------------------------------------------------------------------------
# App builder: used by all client fixtures
# ---------------------------------------------------------------------------


def build_app(
    current_user,
    billing_client=None,
    rooms_client=None,
    shifts_client=None,
) -> FastAPI:
    """
    Fresh FastAPI app with auth/scope dependencies overridden to return
    `current_user` unconditionally.

    Pass `billing_client` / `rooms_client` / `shifts_client` to inject custom
    mocks. Defaults to no-op mocks that report success.
    """
    app = FastAPI()
    app.include_router(booking_router)
    app.include_router(voucher_router)

    async def _user():
        return current_user

    for dep in (
        can_read_booking,
        can_register_payment,
        can_add_extra_charge,
        can_apply_discount,
        can_checkout,
        can_cancel_booking,
        can_read_voucher,
        can_issue_voucher,
        can_redeem_voucher,
        get_current_user,
    ):
        app.dependency_overrides[dep] = _user

    bc = billing_client if billing_client is not None else _noop_billing_client()
    rc = rooms_client if rooms_client is not None else _noop_rooms_client()
    sc = shifts_client if shifts_client is not None else _noop_shifts_client()
    app.dependency_overrides[get_billing_client] = lambda: bc
    app.dependency_overrides[get_rooms_client] = lambda: rc
    app.dependency_overrides[get_shifts_client] = lambda: sc

    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clerk_client():
    return TestClient(build_app(make_clerk()), raise_server_exceptions=True)


@pytest.fixture()
def supervisor_client():
    return TestClient(build_app(make_supervisor()), raise_server_exceptions=True)


@pytest.fixture()
def admin_client():
    return TestClient(build_app(make_admin()), raise_server_exceptions=True)


@pytest.fixture()
def anon_app():
    """
    Bare app with NO dependency overrides.
    Use this when you want real scope/auth deps to run so you can assert 401/403/422.
    """
    app = FastAPI()
    app.include_router(booking_router)
    app.include_router(voucher_router)
    return app


@pytest.fixture()
def client_factory():
    def _make(
        current_user,
        billing_client=None,
        rooms_client=None,
        shifts_client=None,
    ) -> TestClient:
        return TestClient(
            build_app(
                current_user,
                billing_client=billing_client,
                rooms_client=rooms_client,
                shifts_client=shifts_client,
            ),
            raise_server_exceptions=True,
        )

    return _make
