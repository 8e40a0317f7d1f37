# kamleen/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kamleen.core.config import settings
from kamleen.core.exceptions import PaymentError
from kamleen.database import models
from kamleen.database.database import engine

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Redis init (non-fatal)
    try:
        from kamleen.core.redis import get_redis
        client = await get_redis()
        if client is None:
            logger.info("ℹ️ Redis disabled (REDIS_URL not set), realtime notifications off")
        else:
            logger.info("✓ Redis connected successfully")
    except Exception as e:
        logger.warning(f"⚠ Redis connection failed (realtime notifications disabled): {e}")

    yield

    # Close redis (non-fatal)
    try:
        from kamleen.core.redis import close_redis
        await close_redis()
    except Exception as e:
        logger.error(f"Error closing Redis: {e}")
    logger.info("✅ Graceful shutdown complete")


# Build FastAPI app
fastapi_app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Experience bookings, payment holds and multi-provider settlement",
    version=settings.VERSION,
    lifespan=lifespan,
)

# Ensure DB models/tables exist
models.Base.metadata.create_all(bind=engine)

fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@fastapi_app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    if exc.status_code >= 500 and exc.status_code != 501:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        detail = {
            "provider_error": "Payment provider unavailable, please retry",
            "email_delivery_failed": exc.message,
        }.get(exc.code, "Internal error")
    else:
        detail = exc.message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail, "code": exc.code})


# --- Register routers under the /api prefix the frontend expects ---
from kamleen.routers import (  # noqa: E402
    admin_routes,
    booking_routes,
    payment_routes,
    settings_routes,
    system_routes,
    webhook_routes,
)

fastapi_app.include_router(booking_routes.router, prefix="/api")
fastapi_app.include_router(payment_routes.router, prefix="/api")
fastapi_app.include_router(webhook_routes.router, prefix="/api")
fastapi_app.include_router(settings_routes.router, prefix="/api")
fastapi_app.include_router(admin_routes.router, prefix="/api")
fastapi_app.include_router(system_routes.router, prefix="/api")


@fastapi_app.get("/")
def root():
    return {"message": "🧭 Kamleen booking API is running"}


app = fastapi_app
