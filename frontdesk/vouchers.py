"""Credit voucher rules: code format, expiry and redeemability."""

from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timedelta

from frontdesk import settings
from frontdesk.models import VoucherStatus
from frontdesk.schemas import VoucherRecord

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_voucher_code(prefix: str | None = None) -> str:
    """PREFIX + last 6 digits of the epoch millis + 4 random alphanumerics."""
    if prefix is None:
        prefix = settings.VOUCHER_CODE_PREFIX
    stamp = str(time.time_ns() // 1_000_000)[-6:]
    tail = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(4))
    return f"{prefix}{stamp}{tail}".upper()


def normalize_code(code: str) -> str:
    return code.strip().upper()


def voucher_expiry(now: datetime, ttl_days: int | None = None) -> datetime:
    if ttl_days is None:
        ttl_days = settings.VOUCHER_TTL_DAYS
    return now + timedelta(days=ttl_days)


def is_expired(voucher: VoucherRecord, now: datetime) -> bool:
    return voucher.status == VoucherStatus.EXPIRED or (
        voucher.status == VoucherStatus.ACTIVE and now > voucher.expires_at
    )


def check_voucher(voucher: VoucherRecord | None, now: datetime) -> str | None:
    """Return why the voucher cannot be redeemed, or None if it can."""
    if voucher is None:
        return "Código de voucher no existe"
    if voucher.status == VoucherStatus.USED:
        return "Este voucher ya fue utilizado"
    if is_expired(voucher, now):
        return f"Voucher expirado el {voucher.expires_at.date().isoformat()}"
    if voucher.status != VoucherStatus.ACTIVE:
        return f"Voucher no disponible (estado: {voucher.status})"
    return None
