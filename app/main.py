# app/main.py
"""
FastAPI application entry point.
Includes security middleware, error handlers for the rental error taxonomy,
all routers, and the background reservation reclaimer.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import bookings, cars, waitlist, fees, reclaim, health
from app.database import create_tables
from app.config import settings
from app.errors import RentalError
from app.services.reclaimer import run_reclaimer_loop
from app.services.booking_notices import run_return_reminder_loop
from app.utils.logger import get_logger
import time
import asyncio

logger = get_logger(__name__)

app = FastAPI(
    title="Car Rental Availability & Lifecycle API",
    description="Booking availability, lifecycle transitions, waitlist cascade and return settlement.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (allow the web front end to call the API) ───────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to front-end origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth in front of the engine.
    User authentication is handled upstream; this only guards the service.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json", "/api/v1/fees"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(RentalError)
async def rental_error_handler(request: Request, exc: RentalError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(bookings.router, prefix="/api/v1", tags=["📅 Bookings"])
app.include_router(cars.router,     prefix="/api/v1", tags=["🚗 Cars & Availability"])
app.include_router(waitlist.router, prefix="/api/v1", tags=["⏳ Waitlist"])
app.include_router(fees.router,     prefix="/api/v1", tags=["💰 Fees"])
app.include_router(reclaim.router,  prefix="/api/v1", tags=["🧹 Reclaimer"])
app.include_router(health.router,   prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
_background_loops: list = []


@app.on_event("startup")
async def startup():
    logger.info("🚀 Rental backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🛠  Maintenance buffer: {settings.MAINTENANCE_BUFFER_DAYS} day(s)")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")

    if settings.RECLAIMER_ENABLED:
        _background_loops.append(asyncio.create_task(run_reclaimer_loop(), name="reclaimer"))
    else:
        logger.warning("Reclaimer disabled — expired reservations will not be released automatically")

    if settings.RETURN_REMINDERS_ENABLED:
        _background_loops.append(asyncio.create_task(run_return_reminder_loop(), name="return-reminders"))


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Rental backend shutting down...")
    for task in _background_loops:
        task.cancel()
