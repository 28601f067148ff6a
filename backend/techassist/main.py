"""
FastAPI application entry point.
Configures the application with all routes, middleware, and lifecycle handlers.

``app`` at module level is what the serverless platform and uvicorn import.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from techassist import __version__
from techassist.api.router import api_router
from techassist.config import Settings, get_settings
from techassist.database import Connector
from techassist.errors import DatabaseError
from techassist.gate import RequestGate
from techassist.models import utc_now
from techassist.services.health_service import HealthReporter
from techassist.utils.logging import configure_logging, get_logger, bind_context, clear_context


logger = get_logger(__name__)


def error_body(message: str, **extra) -> dict:
    """Uniform error envelope."""
    return {"success": False, "message": message, **extra, "timestamp": utc_now().isoformat()}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: log configuration, warm the database connection outside production
    - Shutdown: close the cached MongoDB client
    """
    settings: Settings = app.state.settings
    connector: Connector = app.state.connector

    logger.info(
        "Starting application...",
        environment=settings.environment,
        port=settings.port,
        mongodb_configured=bool(settings.mongodb_uri),
    )

    # Serverless instances connect lazily on the first gated request
    if not settings.is_production and settings.db_warm_up_on_startup:
        try:
            await connector.ensure_connected()
        except DatabaseError as exc:
            logger.warning(
                "Database not reachable at startup",
                kind=exc.kind.value,
                error=exc.message,
            )

    logger.info("Application startup complete", health=f"http://localhost:{settings.port}/api/health")

    yield  # Application runs here

    logger.info("Shutting down application")
    await connector.close()


def create_app(
    settings: Optional[Settings] = None,
    connector: Optional[Connector] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Tests pass their own settings and a Connector with a fake client factory.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    connector = connector or Connector.from_settings(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Contact form intake API",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.connector = connector
    app.state.gate = RequestGate(connector, expose_errors=settings.debug)
    app.state.health_reporter = HealthReporter(connector, environment=settings.environment)

    app.include_router(api_router, prefix="/api")

    # === MIDDLEWARE ===
    # Registered innermost first: logging wraps CORS, which wraps the gate,
    # so gate rejections still carry CORS headers.

    @app.middleware("http")
    async def require_database(request: Request, call_next):
        """Reject with 503 before routing when the database is unavailable."""
        decision = await request.app.state.gate.admit(request.url.path, request.method)
        if not decision.admitted:
            return JSONResponse(status_code=decision.status_code, content=decision.body)
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all requests and bind context.

        Logs request method, path, and response status.
        Binds request_id for tracing.
        """
        request_id = str(uuid.uuid4())[:8]
        bind_context(request_id=request_id)

        logger.info("Request started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            return response
        except Exception as e:
            logger.exception(
                "Request failed", method=request.method, path=request.url.path, error=str(e)
            )
            raise
        finally:
            clear_context()

    # === ROOT ENDPOINT ===

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "success": True,
            "message": settings.app_name,
            "version": __version__,
            "environment": settings.environment,
            "endpoints": {
                "health": "/api/health",
                "health_deep": "/api/health?db=true",
                "db_test": "/api/db-test",
                "contacts": "/api/contacts",
                "docs": "/docs" if settings.debug else None,
            },
        }

    # === EXCEPTION HANDLERS ===

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = "Route not found" if exc.detail == "Not Found" else str(exc.detail)
            return JSONResponse(
                status_code=404,
                content=error_body(message, path=request.url.path),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors with 400 response."""
        logger.warning("Validation error", path=request.url.path, errors=len(exc.errors()))
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=error_body("Invalid request data", errors=errors),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle validation errors with 400 response."""
        logger.warning("Validation error", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=400, content=error_body(str(exc)))

    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError):
        """Database failures inside a route answer 503, never a driver traceback."""
        logger.error(
            "Database error", kind=exc.kind.value, error=exc.message, path=request.url.path
        )
        extra = {"error": exc.message} if settings.debug else {}
        return JSONResponse(
            status_code=503,
            content=error_body("Database connection error", **extra),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors with 500 response."""
        logger.exception("Unhandled exception", error=str(exc), path=request.url.path)

        if settings.debug:
            # Include error details in development
            return JSONResponse(
                status_code=500,
                content=error_body("Internal server error", error=str(exc)),
            )
        return JSONResponse(status_code=500, content=error_body("Internal server error"))

    return app


app = create_app()
