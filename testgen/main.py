"""FastAPI application entry point."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from testgen.api import documents, generated_tests
from testgen.config import settings
from testgen.exceptions import (
    DocumentAccessException,
    RequestValidationException,
    TestGeneratorException,
    UnauthorizedException,
)
from testgen.middleware import RequestIDMiddleware
from testgen.rate_limit import limiter
from testgen.routes import generate
from testgen.utils.error_utils import GENERIC_ERROR, sanitize_error_message

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

STATUS_BY_EXCEPTION = [
    (UnauthorizedException, status.HTTP_401_UNAUTHORIZED),
    (RequestValidationException, status.HTTP_400_BAD_REQUEST),
    (DocumentAccessException, status.HTTP_404_NOT_FOUND),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    logger.info("Starting PDF Test Generator API...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Generation model: {settings.generation_model}")

    if not settings.openai_api_key:
        logger.error("Environment variable validation failed: OPENAI_API_KEY is not set")
        raise ValueError("OPENAI_API_KEY is required but not set")

    try:
        from testgen.db.database import init_db

        init_db()
        settings.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("Database and storage initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        raise

    yield
    logger.info("Shutting down PDF Test Generator API...")


app = FastAPI(
    title="PDF Test Generator",
    description="Generates multiple-choice tests from uploaded academic PDFs",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

cors_origins = [
    origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if cors_origins else ["*"],
    allow_credentials=bool(cors_origins),
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.state.limiter = limiter


def _error_response(
    request: Request, status_code: int, message: str, reason: str, details=None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "reason": reason,
            "details": details or {},
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(f"Rate limit exceeded [{request_id}]: {exc.detail}")
    response = _error_response(
        request,
        status.HTTP_429_TOO_MANY_REQUESTS,
        f"Rate limit exceeded: {exc.detail}",
        "rate-limited",
    )
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if view_rate_limit is not None:
        response = request.app.state.limiter._inject_headers(response, view_rate_limit)
    return response


@app.exception_handler(TestGeneratorException)
async def app_exception_handler(request: Request, exc: TestGeneratorException):
    """Render application exceptions with the failure envelope."""
    request_id = getattr(request.state, "request_id", "unknown")
    status_code = next(
        (code for exc_type, code in STATUS_BY_EXCEPTION if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    message = sanitize_error_message(exc.message, settings.is_production)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__} [{request_id}] ({exc.reason}): {message}",
        extra={"request_id": request_id, "reason": exc.reason},
    )
    return _error_response(request, status_code, message, exc.reason, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors."""
    request_id = getattr(request.state, "request_id", "unknown")
    errors = exc.errors()
    logger.warning(
        f"Validation error [{request_id}]: {errors}",
        extra={"request_id": request_id},
    )
    details = {
        "errors": [
            {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
            for e in errors
        ]
    }
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Request validation failed",
        "invalid-request",
        details,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    reason = "unauthorized" if exc.status_code == 401 else "http-error"
    return _error_response(request, exc.status_code, str(exc.detail), reason)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception(
        f"Unexpected error [{request_id}]: {sanitize_error_message(str(exc))}",
        extra={"request_id": request_id},
    )
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR, "internal-error"
    )


app.include_router(generate.router)
app.include_router(generated_tests.router)
app.include_router(documents.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info(
        f"Request [{request_id}]: {request.method} {request.url.path}",
        extra={"request_id": request_id, "method": request.method, "path": request.url.path},
    )

    response = await call_next(request)

    logger.info(
        f"Response [{request_id}]: {response.status_code}",
        extra={"request_id": request_id, "status_code": response.status_code},
    )
    return response


# Outermost, so log_requests sees request.state.request_id
app.add_middleware(RequestIDMiddleware)


@app.get("/health")
async def health_check():
    """Health check with database connectivity."""
    from sqlalchemy import text

    from testgen.db.database import engine

    checks = {}
    overall_status = "healthy"

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = "error"
        overall_status = "degraded"
        logger.warning(f"Database health check failed: {e}")

    checks["storage"] = "ok" if settings.storage_root.exists() else "missing"
    checks["openai_api_key"] = "ok" if settings.openai_api_key else "missing"
    if "missing" in checks.values():
        overall_status = "degraded"

    return {
        "status": overall_status,
        "version": app.version,
        "service": "pdf-test-generator",
        "checks": checks,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "PDF Test Generator API",
        "version": app.version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "testgen.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment.lower() != "production",
        log_level=settings.log_level.lower(),
    )
