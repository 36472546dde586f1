from collections.abc import Awaitable, Callable
from typing import TypeVar

from fastapi import HTTPException
from loguru import logger

from frontdesk.errors import ConcurrencyConflictError, FrontdeskError
from frontdesk.schemas import BookingAggregate, BookingResponse

T = TypeVar("T")


def http_error(exc: FrontdeskError) -> HTTPException:
    """Translate a domain error. Structured context rides along next to the message."""
    detail = {"message": exc.detail, **exc.data} if exc.data else exc.detail
    return HTTPException(status_code=exc.status_code, detail=detail)


async def retry_on_conflict(op: Callable[[], Awaitable[T]]) -> T:
    """Run a booking command, retrying exactly once with a fresh load on a version conflict."""
    try:
        return await op()
    except ConcurrencyConflictError as exc:
        logger.warning("Concurrency conflict, retrying once: {}", exc.data)
        return await op()


def to_response(booking: BookingAggregate) -> BookingResponse:
    return BookingResponse.model_validate(booking.model_dump())
