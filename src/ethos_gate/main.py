# src/ethos_gate/main.py
"""Main entry point for the EthosGate application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ethos_gate.api.errors import register_exception_handlers
from ethos_gate.api.middleware import gate_middleware
from ethos_gate.api.v1 import access_router, system_router
from ethos_gate.core.settings import settings
from ethos_gate.services.maintenance import MaintenanceWorker
from ethos_gate.services.rate_limit import RateLimiter
from ethos_gate.services.replay import get_replay_service
from ethos_gate.services.reputation import get_reputation_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

SERVICE_ID = "ethos-reputation-gate-api"

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the maintenance worker for the lifetime of the app."""
    worker = MaintenanceWorker(
        get_reputation_client(),
        get_replay_service(),
        app.state.rate_limiter,
    )
    await worker.start()
    app.state.maintenance_worker = worker
    try:
        yield
    finally:
        await worker.stop()
        app.state.maintenance_worker = None
        await get_reputation_client().close()
        await get_replay_service().close()


# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Reputation-gated access checks for wallet addresses",
    version=settings.app_version,
    lifespan=lifespan,
)
app.state.rate_limiter = RateLimiter()

register_exception_handlers(app)

# Rate limiting, security headers and request logging
app.middleware("http")(gate_middleware)

# Add CORS middleware; outermost so preflight requests are not throttled
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

# Include API routers
app.include_router(access_router, prefix="/api")
app.include_router(system_router, prefix="/api")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": SERVICE_ID,
    }


@app.get("/")
async def root() -> dict[str, object]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "endpoints": {
            "health": "GET /health",
            "accessToken": "POST /api/access-token",
            "checkAccess": "POST /api/check-access",
            "verifyToken": "POST /api/verify-token",
            "config": "GET /api/system/config",
        },
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("ethos_gate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
