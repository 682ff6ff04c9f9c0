"""Staffline Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from staffline.errors import (
    ConflictError,
    GatewayError,
    NotFoundError,
    StaleWriteError,
    StafflineError,
    UnauthorizedError,
    ValidationError,
)

from .config import get_settings
from .logging_config import configure_logging, get_logger
from .rate_limit import limiter
from .routes import (
    admin_router,
    contracts_router,
    hire_requests_router,
    invites_router,
    marketplace_router,
    moderation_router,
    portfolio_router,
    profiles_router,
)

API_PREFIX = "/api/v1"
VERSION = "0.1.0"

logger = get_logger("staffline.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting Staffline Backend API (debug={settings.debug})")
    yield
    logger.info("Shutting down Staffline Backend API")


app = FastAPI(
    title="Staffline Backend API",
    description="Expert staffing marketplace API",
    version=VERSION,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# =============================================================================
# Domain Error Handlers
# =============================================================================


def _error_response(status_code: int, detail: str, retryable: bool = False) -> JSONResponse:
    body = {"detail": detail}
    if retryable:
        body["retryable"] = True
    return JSONResponse(status_code=status_code, content=body)


async def validation_error_handler(request: Request, exc: ValidationError):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def unauthorized_error_handler(request: Request, exc: UnauthorizedError):
    return _error_response(status.HTTP_403_FORBIDDEN, str(exc))


async def not_found_error_handler(request: Request, exc: NotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc))


async def conflict_error_handler(request: Request, exc: ConflictError):
    return _error_response(
        status.HTTP_409_CONFLICT, str(exc), retryable=isinstance(exc, StaleWriteError)
    )


async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.error(f"{request.method} {request.url.path} | gateway error code={exc.code} | {exc}")
    return _error_response(
        status.HTTP_502_BAD_GATEWAY, "Upstream data service failed, please retry", retryable=True
    )


async def staffline_error_handler(request: Request, exc: StafflineError):
    logger.error(f"{request.method} {request.url.path} | unhandled {type(exc).__name__} | {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error")


app.add_exception_handler(ValidationError, validation_error_handler)
app.add_exception_handler(UnauthorizedError, unauthorized_error_handler)
app.add_exception_handler(NotFoundError, not_found_error_handler)
app.add_exception_handler(ConflictError, conflict_error_handler)
app.add_exception_handler(GatewayError, gateway_error_handler)
app.add_exception_handler(StafflineError, staffline_error_handler)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(profiles_router, prefix=API_PREFIX)
app.include_router(moderation_router, prefix=API_PREFIX)
app.include_router(marketplace_router, prefix=API_PREFIX)
app.include_router(hire_requests_router, prefix=API_PREFIX)
app.include_router(contracts_router, prefix=API_PREFIX)
app.include_router(invites_router, prefix=API_PREFIX)
app.include_router(portfolio_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "staffline-backend",
        "version": VERSION,
        "status": "ok",
    }


@app.get("/health")
async def health():
    """Detailed health check with actual database verification."""
    from staffline.gateway.base import PROFILES_TABLE

    from .database import get_gateway

    db_status = "disconnected"
    try:
        gateway = await get_gateway(get_settings())
        await gateway.get(PROFILES_TABLE, limit=1)
        db_status = "connected"
    except (StafflineError, ValueError) as e:
        db_status = f"error: {str(e)[:50]}"

    overall_status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": overall_status,
        "database": db_status,
    }
