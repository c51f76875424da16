import os
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import Settings, settings
from core.database import build_engine, build_sessionmaker, create_db_and_tables
from core.identity import IdentityVerifier
from core.migrations import run_migrations
from middleware.request_logging import request_logging_middleware
from routers import admins, auth, enquiries, imports, projects, testimonials, uploads
from utils.upload_store import LocalUploadStore, build_upload_store


"""
FastAPI application with modular structure.
Separates app creation from runtime configuration.
"""


# Configure logging
def setup_logging(app_settings: Settings = settings):
    """Configure structured logging for the application."""
    log_level = logging.DEBUG if app_settings.DEBUG else logging.INFO

    # JSON formatter for structured logging
    class JSONFormatter(logging.Formatter):
        def format(self, record):
            log_entry = {
                'timestamp': self.formatTime(record, self.datefmt),
                'level': record.levelname,
                'logger': record.name,
                'message': record.getMessage(),
                'module': record.module,
                'function': record.funcName,
                'line': record.lineno
            }
            if record.exc_info:
                log_entry['exception'] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    # Setup root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove default handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Add our handler
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    return logging.getLogger(__name__)


# Initialize logger
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    app_settings: Settings = app.state.settings
    logger.info("Application startup...")

    await create_db_and_tables(app.state.engine)
    await run_migrations(app.state.engine, app.state.sessionmaker, app_settings)

    if not app.state.upload_store.ensure_ready():
        logger.error("Upload store is not ready. Uploads and imports will fail.")
    os.makedirs(app_settings.TMP_DIR, exist_ok=True)

    logger.info("Application startup complete.")
    yield
    logger.info("Application shutdown...")
    await app.state.engine.dispose()
    logger.info("Application shutdown complete.")


def _validation_message(errors) -> str:
    if not errors:
        return "Invalid request"
    err = errors[0]
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    if err.get("type") == "missing" and field:
        return f"Missing required field: {field}"
    return f"{field}: {err.get('msg')}" if field else err.get("msg", "Invalid request")


def register_exception_handlers(app: FastAPI):
    """Render every failure as {"error": "<message>"}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.info(f"ValidationError: {_validation_message(errors)}", extra={
            'request_path': request.url.path,
            'request_method': request.method
        })
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _validation_message(errors), "details": jsonable_encoder(errors)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error in {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Database error"},
        )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.
    App factory pattern for clean separation of concerns.
    """
    app_settings = app_settings or settings
    app = FastAPI(
        title=app_settings.APP_NAME,
        lifespan=lifespan
    )

    # Explicitly constructed store handles, shared through app.state
    app.state.settings = app_settings
    app.state.engine = build_engine(app_settings)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)
    app.state.identity_verifier = IdentityVerifier(app_settings)
    app.state.upload_store = build_upload_store(app_settings)

    # Add CORS middleware
    cors_origins = app_settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Log every request
    app.middleware("http")(request_logging_middleware)

    register_exception_handlers(app)

    # Create an API router
    api_router = APIRouter()

    # Include all API routers (each carries its own /api prefix)
    api_router.include_router(projects.router)
    api_router.include_router(imports.router)
    api_router.include_router(uploads.router)
    api_router.include_router(auth.router)
    api_router.include_router(admins.router)
    api_router.include_router(enquiries.router)
    api_router.include_router(testimonials.router)

    # Include the API router in the main app
    app.include_router(api_router)

    # Serve the local upload directory under its URL prefix
    if isinstance(app.state.upload_store, LocalUploadStore):
        app.mount(
            app.state.upload_store.url_prefix,
            StaticFiles(directory=app_settings.UPLOADS_DIR, check_dir=False),
            name="uploads",
        )

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


# Create the app instance
app = create_app()
