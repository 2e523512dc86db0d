"""
agency_api/main.py — FastAPI application entry point
Includes: lifespan management, CORS, read throttling, security headers,
          error → HTTP mapping, ping keep-alive endpoint.
Write endpoints are guarded by the admission gate (app.state.admission_gate);
all routers share one document store (app.state.store).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from agency_api.clients.document_store import DocumentStore
from agency_api.config import get_settings
from agency_api.core.auth import admin_auth_enabled
from agency_api.core.errors import (
    DuplicateKeyError,
    NotFoundError,
    RateLimitedError,
    ValidationFailedError,
)
from agency_api.core.logging import log_error, setup_logging
from agency_api.core.rate_limiter import RATE_LIMITS, AdmissionGate, limiter
from agency_api.routers import contact, portfolio
from agency_api.services import portfolio as portfolio_service
from agency_api.utils.validators import flatten_validation_error

settings = get_settings()

VERSION = "1.0.0"


# ──────────────────────────────────────────────────────────────────────────────
# Application Lifespan
# ──────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI lifespan: startup → yield → shutdown.
    Startup: initialize logging, report how admin routes and storage are configured.
    """
    setup_logging(settings.log_level)
    logger.info("Agency API starting up...")

    if not admin_auth_enabled():
        logger.warning("ADMIN_API_KEY is not set. Contact inbox and portfolio mutations are open.")

    store: DocumentStore = app.state.store
    if store.persistent:
        logger.info(f"Document store persisting to {store.data_dir}.")
    else:
        logger.warning("DATA_DIR is empty. Documents are kept in memory only.")

    gate: AdmissionGate = app.state.admission_gate
    logger.info(
        f"Admission gate: {gate.max_requests} requests per "
        f"{gate.window_ms // 1000}s window, tracking up to {gate.max_identities} clients."
    )

    logger.info("Startup complete.")
    yield
    logger.info("Shutting down Agency API.")


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Agency Website API",
    description="Contact intake and portfolio gallery backend for the agency website.",
    version=VERSION,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.state.admission_gate = AdmissionGate.from_settings(settings)
app.state.store = DocumentStore(settings.data_dir)

# ── Rate limiting (read endpoints) — slowapi ──────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(
    RateLimitExceeded,
    lambda req, exc: JSONResponse(
        status_code=429,
        content={"success": False, "message": "Rate limit exceeded. Slow down."},
    ),
)
app.add_middleware(SlowAPIMiddleware)

# ── CORS — the site frontend ──────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)


# ── Security headers middleware ───────────────────────────────────────────────
@app.middleware("http")
async def add_security_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
    return response


# ──────────────────────────────────────────────────────────────────────────────
# Error → HTTP mapping
# Every error body has the same shape: {"success": false, "message": ...}
# ──────────────────────────────────────────────────────────────────────────────

def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


@app.exception_handler(RateLimitedError)
async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
    response = _error(
        429,
        "Too many requests. Please try again later.",
        retryAfter=exc.retry_after_seconds,
    )
    response.headers["Retry-After"] = str(exc.retry_after_seconds)
    return response


@app.exception_handler(ValidationFailedError)
async def validation_failed_handler(request: Request, exc: ValidationFailedError) -> JSONResponse:
    return _error(400, "Validation error", errors=exc.messages, fields=exc.fields)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields, messages = flatten_validation_error(exc)
    return _error(400, "Validation error", errors=messages, fields=fields)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, str(exc))


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    if exc.collection == portfolio_service.COLLECTION and exc.field == "slug":
        return _error(409, "Portfolio item with this slug already exists")
    return _error(409, f"Duplicate value for {exc.field}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _error(exc.status_code, str(exc.detail))
    for name, value in (exc.headers or {}).items():
        response.headers[name] = value
    return response


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error("api", "unhandled", exc, {"path": request.url.path, "method": request.method})
    message = str(exc) if settings.is_development else "Internal server error"
    return _error(500, message)


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(contact.router, prefix="/api/contact", tags=["contact"])
app.include_router(portfolio.router, prefix="/api/portfolio", tags=["portfolio"])


# ── Ping keep-alive endpoint ──────────────────────────────────────────────────
@app.get("/api/ping", tags=["health"])
@limiter.limit(RATE_LIMITS["health"])
async def ping(request: Request):
    """Uptime monitors hit this to keep the host warm. Touches no storage."""
    return {"status": "ok", "version": VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("agency_api.main:app", host="0.0.0.0", port=settings.port)
