import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .database import DatabaseSessionManager
from .errors import DirectoryError
from .routes.admin import router as admin_router
from .routes.businesses import router as businesses_router
from .routes.dashboard import router as dashboard_router
from .schemas import HealthResponse
from .telemetry.logging_utils import configure_logging
from .telemetry.middleware import TelemetryMiddleware

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DirectoryError)
    async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
        log = logger.error if exc.http_status >= 500 else logger.warning
        log("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": "Invalid request data",
                "code": "VALIDATION_ERROR",
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in error["loc"]),
                        "message": error["msg"],
                        "type": error["type"],
                    }
                    for error in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "An unexpected error occurred", "code": "INTERNAL_ERROR"},
        )


def create_app(settings: Settings | None = None, db: DatabaseSessionManager | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.perf_log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = db or DatabaseSessionManager(settings)
        logger.info("%s started (%s)", settings.app_name, settings.environment)
        yield
        await app.state.db.dispose()
        logger.info("%s shutting down", settings.app_name)

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TelemetryMiddleware, enabled=settings.telemetry_enabled)

    app.include_router(businesses_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
    app.include_router(dashboard_router, prefix="/api")
    _register_error_handlers(app)

    @app.get("/health", response_model=HealthResponse)
    async def healthcheck(request: Request) -> HealthResponse:
        await request.app.state.db.ping()
        return HealthResponse(status="ok")

    return app


app = create_app()
