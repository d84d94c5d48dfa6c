"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

import httpx
import redis
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from printshop import __version__
from printshop.api.deps import get_database, get_storage
from printshop.api.v1 import api_router
from printshop.config import Settings, settings as default_settings
from printshop.database import Database
from printshop.errors import PrintShopError, UpstreamError
from printshop.middleware.request_context import RequestContextMiddleware
from printshop.schemas.common import ErrorResponse
from printshop.services.telemetry import build_telemetry_adapter
from printshop.storage.base import BaseStorageDriver, StorageError
from printshop.storage.factory import get_storage_driver

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Richiesta non valida"


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the ``{"success": false, "error": ...}`` envelope."""

    @app.exception_handler(PrintShopError)
    async def print_shop_error_handler(request: Request, exc: PrintShopError):
        if isinstance(exc, UpstreamError):
            logger.error(f"Upstream error on {request.method} {request.url.path}: {exc.message}")
            return _error(exc.status_code, exc.public_message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Errore interno del server")


def create_app(settings: Settings = default_settings) -> FastAPI:
    """Build the application.

    Database engine, HTTP client, telemetry adapter and storage driver are
    created in the lifespan and kept on ``app.state``; tests replace them
    through ``app.dependency_overrides``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.database_url, echo=settings.database_echo)
        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        app.state.database = database
        app.state.http_client = http_client
        app.state.telemetry = build_telemetry_adapter(settings, http_client)
        app.state.storage = get_storage_driver(settings)
        logger.info(
            f"Print shop API started (env={settings.environment}, "
            f"telemetry={settings.telemetry_mode}, storage={settings.storage_provider})"
        )
        try:
            yield
        finally:
            await http_client.aclose()
            database.dispose()

    app = FastAPI(
        title="Print Shop Service",
        description="Orders, print queue and printer telemetry for a 3D print shop",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check(
        database: Database = Depends(get_database),
        storage: BaseStorageDriver = Depends(get_storage),
    ):
        """Health check endpoint."""
        db_status = "disconnected"
        try:
            with database.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                db_status = "connected"
        except Exception as e:
            db_status = f"error: {str(e)}"

        redis_status = "disconnected"
        try:
            r = redis.from_url(settings.redis_url, socket_connect_timeout=1)
            r.ping()
            redis_status = "connected"
        except Exception as e:
            redis_status = f"error: {str(e)}"

        try:
            storage_status = "connected" if await storage.test_connection() else "unavailable"
        except StorageError as e:
            storage_status = f"error: {str(e)}"

        overall_status = "ok" if db_status == "connected" and redis_status == "connected" else "degraded"

        return {
            "success": True,
            "status": overall_status,
            "db": db_status,
            "redis": redis_status,
            "storage": storage_status,
        }

    return app


configure_logging(default_settings)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "printshop.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=default_settings.api_reload,
    )
