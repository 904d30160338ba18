"""
FastAPI application entry point.
Configures routes, middleware, and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import init_db, close_db
from app.errors import PaymentsError, ValidationError
from app.logging_config import configure_logging

from app.api.plans import router as plans_router
from app.api.payments import router as payments_router
from app.api.webhooks.paddle import router as paddle_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle manager."""
    # Startup
    configure_logging()
    logging.info(f"Starting up {settings.app_name}...")

    try:
        await init_db()
    except Exception as e:
        logging.error(f"Failed to initialize database: {e}", exc_info=True)

    yield

    # Shutdown
    await close_db()
    logging.info("Shutting down...")


app = FastAPI(
    title="Paddle Payments",
    description="Paddle plans, checkout and payment records",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)


@app.exception_handler(PaymentsError)
async def payments_error_handler(request: Request, exc: PaymentsError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logging.log(level, f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Render body parsing failures like any other ValidationError (400, not 422)."""
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        if field not in fields:
            fields.append(field)
    return await payments_error_handler(request, ValidationError("Invalid request body", fields))


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logging.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal Server Error"},
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def read_root():
    return {
        "message": "Welcome to the API",
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "env": settings.app_env,
    }


app.include_router(
    plans_router,
    prefix="/api",
    tags=["plans"],
)
app.include_router(
    payments_router,
    prefix="/api",
    tags=["payments"],
)

# Register webhook routes
app.include_router(
    paddle_router,
    prefix="/api",
    tags=["webhooks"],
)
