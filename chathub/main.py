"""
chathub FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chathub import db
from chathub.config import settings
from chathub.logging_config import configure_logging
from chathub.pipeline import Denied, DenyPremiumRequired, DenyQuotaExceeded, DenyUnauthenticated
from chathub.routes import admin as admin_routes
from chathub.routes import ai as ai_routes
from chathub.routes import auth_routes
from chathub.routes import conversations as conversation_routes
from chathub.routes import usage as usage_routes
from chathub.services.ai_provider import ProviderError, ProviderTimeout

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    - Configure logging
    - Initialize database pool
    - Close database pool on shutdown
    """
    configure_logging(settings.LOG_LEVEL)
    await db.init_pool()

    yield

    await db.close_pool()


app = FastAPI(
    title="chathub",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(auth_routes.router)
app.include_router(admin_routes.router)
app.include_router(usage_routes.router)
app.include_router(ai_routes.router)
app.include_router(conversation_routes.router)


@app.exception_handler(Denied)
async def denied_handler(request: Request, exc: Denied) -> JSONResponse:
    """Translate gate decisions into HTTP responses."""
    decision = exc.decision
    if isinstance(decision, DenyUnauthenticated):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": f"Unauthorized: {decision.reason}"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(decision, DenyPremiumRequired):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"error": "Premium required", "capability": decision.capability},
        )
    if isinstance(decision, DenyQuotaExceeded):
        return JSONResponse(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            content={
                "error": "Free query limit reached. Please upgrade to premium.",
                "bot_id": decision.bot_id,
                "limit": decision.limit,
                "used": decision.used,
            },
        )
    raise TypeError(f"Unhandled gate decision: {decision!r}")


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    logger.warning("Provider failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": "AI provider request failed."})


@app.exception_handler(ProviderTimeout)
async def provider_timeout_handler(request: Request, exc: ProviderTimeout) -> JSONResponse:
    logger.warning("Provider timeout on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_504_GATEWAY_TIMEOUT, content={"error": "AI provider timed out."})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Infrastructure failures: log, fail closed, no details to the client."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal server error"})


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
