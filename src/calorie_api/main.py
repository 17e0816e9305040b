"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure, PyMongoError

from calorie_api.api.routes import analysis, meals, progress, settings as settings_routes
from calorie_api.core.config import Settings, get_settings
from calorie_api.core.exceptions import APIError, DatabaseError, ServiceUnavailableError
from calorie_api.core.security import TokenVerifier, build_token_verifier
from calorie_api.db.unit_of_work import UnitOfWork, build_unit_of_work
from calorie_api.services.vision import (
    VisionAnalysisError,
    VisionAnalysisService,
    build_vision_service,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.api_version}")
    logger.info(
        f"Store backend: {app.state.uow.backend}, "
        f"vision: {app.state.vision.provider_name} ({app.state.vision.status})"
    )

    yield

    logger.info("Shutting down...")
    await app.state.vision.close()
    app.state.uow.close()
    logger.info("Connections closed")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Invalid request: {location} {first.get('msg', '')}".strip()


def create_app(
    settings: Settings | None = None,
    uow: UnitOfWork | None = None,
    vision: VisionAnalysisService | None = None,
    verifier: TokenVerifier | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Any handle not passed in is built from settings; tests pass their own.

    Returns:
        Configured FastAPI instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        description="Calorie tracking API with AI meal photo analysis",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.uow = uow or build_unit_of_work(settings)
    app.state.vision = vision or build_vision_service(settings)
    app.state.verifier = verifier or build_token_verifier(settings)

    # CORS middleware; web and mobile clients call from arbitrary origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle custom API errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        """Report store failures; an unreachable server is 503."""
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        if isinstance(exc, ConnectionFailure):
            error: APIError = ServiceUnavailableError("Database unavailable")
        else:
            error = DatabaseError("Database operation failed")
        return await api_error_handler(request, error)

    @app.exception_handler(VisionAnalysisError)
    async def vision_error_handler(request: Request, exc: VisionAnalysisError):
        """Map vision failures: unconfigured backend is 503, the rest 500."""
        if exc.error_code == "UNAVAILABLE":
            return JSONResponse(
                status_code=503,
                content={"success": False, "message": exc.message},
            )
        logger.error(f"Vision analysis failed [{exc.error_code}] {exc.provider}: {exc.message}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": f"Failed to analyze image: {exc.message}"},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Report malformed requests as 400 in the standard envelope."""
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": f"Server error: {exc}"},
        )

    # Health check endpoint
    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        vision_service: VisionAnalysisService = request.app.state.vision
        return {
            "status": "healthy" if vision_service.status != "unavailable" else "degraded",
            "service": settings.app_name,
            "version": settings.api_version,
            "store": request.app.state.uow.backend,
            "vision": {
                "provider": vision_service.provider_name,
                "status": vision_service.status,
            },
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Include routers
    app.include_router(meals.router, prefix="/api/meals", tags=["Meals"])
    app.include_router(analysis.router, prefix="/api", tags=["Analysis"])
    app.include_router(settings_routes.router, prefix="/api/settings", tags=["Settings"])
    app.include_router(progress.router, prefix="/api/progress", tags=["Progress"])

    return app


# Create app instance
app = create_app()
