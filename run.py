#!/usr/bin/env python3
"""Startup script."""
import uvicorn

from app.config import settings

if __name__ == "__main__":
    print(f"Starting Paddle Payments API on port {settings.port}")
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info"
    )
