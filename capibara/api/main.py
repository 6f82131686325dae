"""
FastAPI Backend for Capibara

SSH key registration, backup log retrieval, session tokens.
"""
from fastapi import FastAPI, Request as FastAPIRequest
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.requests import Request
import logging
import os
import re
import threading
import time
import uuid

from capibara.api.routes import auth, logs, ssh_keys
from capibara.api.rate_limiting import GeneralRateLimitMiddleware, cleanup_rate_limiter
from capibara.core.config import get_settings
from capibara.core.keys import KeyStoreError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format=settings.log_format,
)
logger = logging.getLogger(__name__)
error_logger = logging.getLogger("api.errors")

API_VERSION = "1.0.0"


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# API docs only in development
app = FastAPI(
    title="Capibara API",
    description="SSH key registration and backup log access",
    version=API_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
)


def _sanitize_error_message(message: str) -> str:
    """
    Scrub potential secrets from exception messages before logging.

    Covers credentials in key=value form and anything shaped like a JWT.
    """
    sanitized = re.sub(
        r'(API_PASSWORD|API_KEY|JWT_SECRET)[=:\s]+[^\s,;]+',
        r'\1=[REDACTED]',
        message,
        flags=re.IGNORECASE,
    )
    sanitized = re.sub(
        r'(password|passwd|secret|token)["\']?\s*[=:]\s*["\']?[^"\'\s,;]+',
        r'\1=[REDACTED]',
        sanitized,
        flags=re.IGNORECASE,
    )
    sanitized = re.sub(r'eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+', '[REDACTED_JWT]', sanitized)
    return sanitized


def _internal_error(request: FastAPIRequest, exc: Exception) -> JSONResponse:
    error_id = str(uuid.uuid4())
    error_logger.error(
        f"Error {error_id}: {type(exc).__name__}: {_sanitize_error_message(str(exc))}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client": request.client.host if request.client else None
        }
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An internal error occurred",
            "error_id": error_id,
        }
    )


@app.exception_handler(KeyStoreError)
async def key_store_exception_handler(request: FastAPIRequest, exc: KeyStoreError):
    """authorized_keys I/O failures: fatal for the request, never retried."""
    return _internal_error(request, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: FastAPIRequest, exc: Exception):
    """
    Log detailed errors internally but return a generic message to clients.
    """
    return _internal_error(request, exc)


@app.on_event("startup")
async def startup_event():
    """Log effective storage locations and start background maintenance"""
    logger.info(f"authorized_keys: {settings.authorized_keys_file}")
    logger.info(f"backup log: {settings.backup_log_file}")
    if not settings.auth_enabled:
        logger.warning("Authentication is DISABLED - gated endpoints are open")

    def cleanup_loop():
        while True:
            time.sleep(300)  # Every 5 minutes
            cleanup_rate_limiter()
            logger.debug("Rate limiter cleanup complete")

    cleanup_thread = threading.Thread(target=cleanup_loop, daemon=True)
    cleanup_thread.start()


# Security headers middleware (add first - outermost)
app.add_middleware(SecurityHeadersMiddleware)

# General rate limiting (protects all endpoints)
app.add_middleware(GeneralRateLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    max_age=3600,
)

if settings.force_https:
    app.add_middleware(HTTPSRedirectMiddleware)

app.include_router(auth.router)
app.include_router(ssh_keys.router)
app.include_router(logs.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Capibara API",
        "version": API_VERSION,
        "status": "running",
        "features": [
            "SSH key registration (POST /ssh/keys)",
            "Backup log retrieval (GET /logs)",
            "Session tokens (POST /auth/token)",
        ]
    }


@app.get("/health")
async def health_check():
    """Health check endpoint (no auth required)"""
    settings = get_settings()
    keys_dir = settings.authorized_keys_file.parent
    # The directory is created lazily, so a missing one is fine if its parent is writable
    probe = keys_dir if keys_dir.exists() else keys_dir.parent
    keys_writable = probe.exists() and os.access(probe, os.W_OK)

    health = {
        "status": "healthy" if keys_writable else "degraded",
        "version": API_VERSION,
        "checks": {
            "authorized_keys_writable": keys_writable,
            "backup_log_present": settings.backup_log_file.exists(),
        }
    }
    return health


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", settings.api_port)))
