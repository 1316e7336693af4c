"""
FastAPI application initialization for Tenant Case Guard.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tenant_case_guard.api.routes import router
from tenant_case_guard.config import AppSettings, get_settings
from tenant_case_guard.domain.errors import (
    ActionBlocked,
    AuditWriteFailed,
    ConflictError,
    DomainError,
    InvalidPolicyInput,
    OverrideNotPermitted,
    ResourceNotFound,
    ServiceUnavailable,
    Unauthenticated,
    ValidationFailed,
)
from tenant_case_guard.observability.middleware import RequestIdAndTimingMiddleware
from tenant_case_guard.observability.rate_limiter import setup_rate_limiter
from tenant_case_guard.services.security import validate_request_size
from tenant_case_guard.store.base import CaseStore
from tenant_case_guard.utils.logging import setup_logging

# Initialize logging
logger = setup_logging()
app_logger = logging.getLogger(__name__)

settings = get_settings()


def build_store(settings: AppSettings) -> CaseStore:
    """Construct the configured store backend."""
    if settings.store_backend == "arango":
        from tenant_case_guard.store.arango_store import ArangoCaseStore

        return ArangoCaseStore()

    from tenant_case_guard.store.memory_store import InMemoryCaseStore

    app_logger.warning("Using in-memory case store; data is lost on restart")
    return InMemoryCaseStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Tenant Case Guard API (lifespan init)")
    # A store already attached (tests, embedding apps) is kept as is
    if getattr(app.state, "store", None) is None:
        app.state.store = build_store(settings)
    app.state.settings = settings
    try:
        yield
    finally:
        logger.info("Shutting down Tenant Case Guard API (lifespan cleanup)")


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Case-health enforcement for tenant issue tracking",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
cors_origins = (
    settings.cors_allowed_origins
    if settings.production_mode and settings.cors_allowed_origins
    else settings.cors_allow_origins
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup rate limiting
setup_rate_limiter(app)

# Include API routes
app.include_router(router)

# Add request ID and access logging middleware
app.add_middleware(RequestIdAndTimingMiddleware)


# Add request size validation middleware
@app.middleware("http")
async def validate_request_size_middleware(request: Request, call_next):
    """Validate request body size before processing."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            validate_request_size(int(content_length), settings.max_request_size_mb)
        except ValueError as e:
            request_id = getattr(request.state, "request_id", "unknown")
            app_logger.warning(f"Request too large: {e}", extra={"request_id": request_id})
            return JSONResponse(
                status_code=413,
                content={
                    "error": f"Request body too large. Maximum size: {settings.max_request_size_mb}MB",
                    "request_id": request_id,
                },
            )
    return await call_next(request)


# User-friendly error messages; most specific class wins
ERROR_MESSAGES = {
    Unauthenticated: "Authentication required. Provide a valid API key.",
    InvalidPolicyInput: "Unknown action, health status or plan.",
    OverrideNotPermitted: "This action cannot be overridden at its current enforcement level.",
    ActionBlocked: "This action is blocked until your case is stronger.",
    AuditWriteFailed: "Your confirmation could not be recorded. Nothing was changed; please try again.",
    ResourceNotFound: "The requested resource was not found.",
    ValidationFailed: "The request data is invalid. Please check your input.",
    ConflictError: "A conflict occurred while processing your request.",
    ServiceUnavailable: "Service temporarily unavailable. Please try again later.",
    DomainError: "An error occurred while processing your request.",
    ValueError: "Invalid input provided. Please check your request.",
}


def get_user_friendly_error(exc: Exception) -> str:
    """Get user-friendly error message for exception."""
    for exc_type in type(exc).__mro__:
        if exc_type in ERROR_MESSAGES:
            return ERROR_MESSAGES[exc_type]
    return "An error occurred. Please try again later."


def _error_response(request: Request, exc: Exception, status_code: int) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    if status_code >= 500:
        app_logger.error(f"{type(exc).__name__}: {exc}", exc_info=exc, extra={"request_id": request_id})
    else:
        app_logger.warning(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    return JSONResponse(
        status_code=status_code,
        content={
            "error": get_user_friendly_error(exc),
            "request_id": request_id,
        },
    )


# Domain exception handlers -> HTTP mapping with user-friendly messages
@app.exception_handler(Unauthenticated)
async def handle_unauthenticated(request: Request, exc: Unauthenticated):
    return _error_response(request, exc, 401)


@app.exception_handler(ResourceNotFound)
async def handle_not_found(request: Request, exc: ResourceNotFound):
    return _error_response(request, exc, 404)


@app.exception_handler(ValidationFailed)
async def handle_validation(request: Request, exc: ValidationFailed):
    return _error_response(request, exc, 422)


@app.exception_handler(ConflictError)
async def handle_conflict(request: Request, exc: ConflictError):
    return _error_response(request, exc, 409)


@app.exception_handler(ServiceUnavailable)
async def handle_service_unavailable(request: Request, exc: ServiceUnavailable):
    return _error_response(request, exc, 503)


@app.exception_handler(DomainError)
async def handle_domain_error(request: Request, exc: DomainError):
    return _error_response(request, exc, 400)


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError):
    """Handle ValueError (e.g., from input validation)."""
    return _error_response(request, exc, 400)


@app.exception_handler(Exception)
async def handle_generic_exception(request: Request, exc: Exception):
    """Handle all other exceptions with user-friendly message."""
    request_id = getattr(request.state, "request_id", "unknown")
    app_logger.error(f"Unhandled exception: {exc}", exc_info=exc, extra={"request_id": request_id})
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred. Please try again later.",
            "request_id": request_id,
        },
    )


@app.get("/api/_healthz")
async def _healthz(request: Request):
    return {"status": "ok", "has_store": getattr(request.app.state, "store", None) is not None}
