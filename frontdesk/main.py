from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from tortoise.contrib.fastapi import RegisterTortoise

from frontdesk import settings
from frontdesk.routers import booking, voucher


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with RegisterTortoise(
        app,
        db_url=settings.db_url,
        modules={"models": ["frontdesk.models"]},
        generate_schemas=True,
        use_tz=True,
    ):
        logger.info("frontdesk-ms started: hotel_timezone={}", settings.HOTEL_TIMEZONE)
        yield


def create_app() -> FastAPI:
    app = FastAPI(title="frontdesk-ms", lifespan=lifespan)
    app.include_router(booking.router)
    app.include_router(voucher.router)
    return app


app = create_app()
