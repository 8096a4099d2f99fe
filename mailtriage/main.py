"""
FastAPI application entry point.

Run with:
    uvicorn mailtriage.main:app --reload --port 8000
"""

import uuid
import logging
import time

from fastapi import FastAPI, Request

from mailtriage.config import settings
from mailtriage.logging.config import setup_logging, request_id_var
from mailtriage.api.routes_processing import router as processing_router

# --- Initialize logging FIRST ---
setup_logging(level=settings.log_level)
logger = logging.getLogger(__name__)

# --- Create the FastAPI app ---
app = FastAPI(
    title=settings.app_name,
    docs_url="/docs" if settings.app_env == "development" else None,
    redoc_url=None,
)


# --- Middleware: Request context + logging ---
@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Set up request ID and request timing."""
    req_id = str(uuid.uuid4())[:8]
    token = request_id_var.set(req_id)

    start = time.monotonic()
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = req_id

        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "http.request",
            extra={
                "action": "http.request",
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_ms": latency_ms,
            },
        )
        return response
    finally:
        request_id_var.reset(token)


# --- Register route modules ---
app.include_router(processing_router)


# --- Health check endpoints ---
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready")
async def ready():
    checks = {
        "config_loaded": True,
        "pattern_catalog_path_set": bool(settings.pattern_catalog_path),
        "processing_version_set": bool(settings.processing_version),
    }
    all_ok = all(checks.values())
    return {"status": "ready" if all_ok else "not_ready", "checks": checks}
