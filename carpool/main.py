# carpool/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from carpool.routers import (cars, reservations, payments, queue, arrivals, votes,
                             anomalies, maintenance, health)
from carpool.database import create_tables
from carpool.config import settings
from carpool.services.errors import StoreContentionError, LedgerIntegrityError
from carpool.utils.logger import get_logger
import time
import asyncio

logger = get_logger(__name__)

app = FastAPI(
    title="Carpool Seat Queue API",
    description="Seat reservations, boarding queues and extra-car voting for shared-ride routes.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to the dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth in front of the whole API.
    Health check and docs stay open. Set API_KEY in .env; leave empty to disable.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
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
@app.exception_handler(StoreContentionError)
async def contention_handler(request: Request, exc: StoreContentionError):
    logger.warning(f"Store contention on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": {"code": "STORE_CONTENTION", "message": "Busy, please retry"}},
        headers={"Retry-After": "1"},
    )


@app.exception_handler(LedgerIntegrityError)
async def integrity_handler(request: Request, exc: LedgerIntegrityError):
    logger.critical(f"Ledger integrity violation on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"code": "LEDGER_INTEGRITY", "message": "Internal ledger error"}},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(cars.router,         prefix="/api/v1", tags=["🚐 Cars"])
app.include_router(reservations.router, prefix="/api/v1", tags=["🎫 Reservations"])
app.include_router(payments.router,     prefix="/api/v1", tags=["💳 Payments"])
app.include_router(queue.router,        prefix="/api/v1", tags=["📋 Queue"])
app.include_router(arrivals.router,     prefix="/api/v1", tags=["✅ Arrivals"])
app.include_router(votes.router,        prefix="/api/v1", tags=["🗳️  Votes"])
app.include_router(anomalies.router,    prefix="/api/v1", tags=["🚨 Anomalies"])
app.include_router(maintenance.router,  prefix="/api/v1", tags=["🧹 Maintenance"])
app.include_router(health.router,       prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
_background_tasks: set = set()


@app.on_event("startup")
async def startup():
    logger.info("🚀 Carpool backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")

    if settings.SWEEPER_ENABLED:
        from carpool.services.maintenance_scheduler import maintenance_loop
        task = asyncio.create_task(maintenance_loop(settings.SWEEP_INTERVAL_SECONDS), name="maintenance")
        _background_tasks.add(task)
        logger.info("🧹 In-process maintenance loop enabled")
    else:
        logger.info("🧹 Maintenance loop disabled — expecting POST /api/v1/maintenance/run from a scheduler")


@app.on_event("shutdown")
async def shutdown():
    for task in _background_tasks:
        task.cancel()
    logger.info("🛑 Carpool backend shutting down...")
