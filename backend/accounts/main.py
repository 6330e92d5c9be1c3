"""Main FastAPI application"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging
import time
import uuid

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from accounts.config import Settings, get_settings
from accounts.core.context import AppContext, build_context
from accounts.core.database import init_db, ping
from accounts.core.exceptions import BaseAPIException
from accounts.schemas.response import HealthResponse
from accounts.api.v1 import auth, users

logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter(
    "accounts_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "accounts_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def configure_logging(settings: Settings) -> None:
    """Log to the configured file and to stderr"""
    log_file = settings.get_log_file()
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_body(request: Request, error: str, details=None) -> dict:
    return {
        "success": False,
        "error": error,
        "details": details or {},
        "path": request.url.path,
        "timestamp": _now_iso(),
    }


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BaseAPIException)
    async def api_exception_handler(request: Request, exc: BaseAPIException):
        """Handle custom API exceptions"""
        logger.warning(
            f"API Exception: {exc.message}",
            extra={
                "status_code": exc.status_code,
                "details": exc.details,
                "path": request.url.path,
                "method": request.method
            }
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors"""
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            }
            for error in exc.errors()
        ]
        logger.warning(
            f"Validation error: {errors}",
            extra={"path": request.url.path, "method": request.method}
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(request, "Validation failed", errors),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """Handle database errors"""
        logger.exception(
            f"Database error: {exc}",
            extra={"path": request.url.path, "method": request.method}
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, "A database error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions"""
        logger.critical(
            f"Unhandled exception: {exc}",
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method}
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, "An unexpected error occurred."),
        )


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[AppContext] = None,
) -> FastAPI:
    """
    Build the application around an explicit context.

    Args:
        settings: Settings to use; defaults to the environment
        context: Prebuilt context (tests inject one with a fake media store)
    """
    if context is None:
        settings = settings or get_settings()
        configure_logging(settings)
        context = build_context(settings)
    settings = context.settings

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None
    )
    app.state.context = context

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_headers_and_timing(request: Request, call_next):
        """Add security headers and log slow requests"""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Request-ID"] = request_id

        REQUEST_COUNT.labels(request.method, request.url.path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(request.method, request.url.path).observe(duration)

        if duration > 1.0:
            logger.warning(
                "Slow request: %s %s took %.2fs request_id=%s",
                request.method,
                request.url.path,
                duration,
                request_id,
            )
        return response

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        """Validate settings and the database on startup"""
        settings.validate_security_settings()
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        try:
            init_db(context.engine, settings)
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        context.engine.dispose()
        logger.info(f"Shutting down {settings.APP_NAME}")

    @app.get("/health", response_model=HealthResponse)
    def health_check():
        """Health check endpoint"""
        db_ok = True
        db_error = None
        try:
            ping(context.engine)
        except SQLAlchemyError as exc:
            db_ok = False
            db_error = str(exc)

        return HealthResponse(
            status="healthy" if db_ok else "degraded",
            version=settings.APP_VERSION,
            timestamp=_now_iso(),
            readiness={"database": {"ok": db_ok, "error": db_error}},
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "docs": "/api/docs" if settings.DEBUG else "disabled"
        }

    app.include_router(auth.router, prefix="/api/v1/users", tags=["Authentication"])
    app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "accounts.main:create_app",
        factory=True,
        host=_settings.HOST,
        port=_settings.PORT,
        reload=_settings.DEBUG,
        workers=1 if _settings.DEBUG else _settings.WORKERS
    )
