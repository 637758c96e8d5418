import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis import Redis
import redis.asyncio as aioredis
from fastapi_limiter import FastAPILimiter

from .config import Settings, get_settings
from .database import Base, build_engine, build_session_factory
from .errors import BookingError
from .routers import booking_router, property_router
from .booking_scheduler import run_booking_scheduler

logger = logging.getLogger("rentng.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    settings: Settings = app.state.settings

    if settings.CREATE_TABLES:
        Base.metadata.create_all(bind=app.state.engine)

    limiter_client = None
    if settings.RATE_LIMIT_ENABLED:
        try:
            limiter_client = aioredis.from_url(settings.REDIS_URL, encoding="utf-8")
            await FastAPILimiter.init(limiter_client)
            logger.info("FastAPILimiter initialized with Redis.")
        except Exception as e:
            logger.error(f"Failed to initialize FastAPILimiter: {e}")

    scheduler_task = None
    if settings.SCHEDULER_ENABLED:
        logger.info("Starting booking scheduler...")
        scheduler_task = asyncio.create_task(
            run_booking_scheduler(app.state.session_factory, settings.SCHEDULER_INTERVAL_SECONDS)
        )

    yield  # The application is now running

    logger.info("Shutting down...")
    if scheduler_task is not None:
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            logger.info("Booking scheduler task successfully cancelled.")

    if limiter_client is not None:
        await limiter_client.close()
    app.state.redis.close()
    app.state.engine.dispose()


async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the application. The engine, session factory and Redis client are
    created here once and handed to request handlers through app.state.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="RentNG Booking API",
        description="Apartment bookings: availability, requests and landlord approval.",
        version="1.0.0",
        lifespan=lifespan,
    )

    engine = build_engine(settings.DATABASE_URL)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.redis = Redis.from_url(settings.REDIS_URL)

    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(booking_router.router)
    app.include_router(property_router.router)

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the RentNG Booking Service"}

    return app
