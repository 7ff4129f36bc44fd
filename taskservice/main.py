import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskservice.app.config import Settings, get_settings
from taskservice.app.core.errors import StoreError, ValidationError
from taskservice.app.core.lifecycle import ConnectionManager
from taskservice.app.core.logging_config import configure_logging
from taskservice.app.core.shutdown import ShutdownCoordinator
from taskservice.app.deps import build_connector, get_connection_manager, retry_policy_from
from taskservice.app.schemas import HealthResponse
from taskservice.app.task_repo_utils import error_details, validation_error_from
from taskservice.ports.task_repository import IStoreConnector
from taskservice.routes import tasks

BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"
INDEX_HTML_PATH = STATIC_DIR / "index.html"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Origin, X-Requested-With, Content-Type, Accept, Authorization",
}
PREFLIGHT_METHODS = "GET, POST, PUT, DELETE"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    manager: ConnectionManager = app.state.connection_manager
    # the listener starts whatever the outcome; degraded mode keeps /api/health up
    await asyncio.to_thread(manager.start)
    try:
        yield
    finally:
        manager.close()


def _error_response(status_code: int, message: str, details: Optional[list] = None) -> JSONResponse:
    content = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Store error on %s %s: %s",
                request.method,
                request.url.path,
                exc.cause or exc.message,
            )
        details = exc.details if isinstance(exc, ValidationError) else None
        return _error_response(exc.status_code, exc.message, details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = validation_error_from(error_details(exc.errors()))
        return _error_response(400, error.message, error.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code in (404, 405):
            return _error_response(404, "Route not found")
        return _error_response(exc.status_code, str(exc.detail))


def create_app(
    settings: Optional[Settings] = None,
    *,
    connector: Optional[IStoreConnector] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Task Service", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.connection_manager = ConnectionManager(
        connector or build_connector(settings),
        retry_policy_from(settings),
        sleep=sleep,
    )

    @app.middleware("http")
    async def cors_and_errors(request: Request, call_next):
        if request.method == "OPTIONS":
            response = JSONResponse(status_code=200, content={})
            response.headers["Access-Control-Allow-Methods"] = PREFLIGHT_METHODS
        else:
            try:
                response = await call_next(request)
            except Exception:
                # the cause stays in the server log only
                logger.exception("Unhandled error on %s %s", request.method, request.url.path)
                response = _error_response(500, "Internal server error")
        response.headers.update(CORS_HEADERS)
        return response

    register_exception_handlers(app)

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.include_router(tasks.router, prefix="/api", tags=["tasks"])

    @app.get("/", include_in_schema=False)
    async def index() -> FileResponse:
        return FileResponse(path=str(INDEX_HTML_PATH))

    @app.get("/api/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        """Liveness probe; answers regardless of the store connection state."""

        manager = get_connection_manager(request)
        return HealthResponse(
            status="ok",
            environment=request.app.state.settings.environment,
            timestamp=datetime.now(timezone.utc),
            database=manager.state.value,
        )

    return app


app = create_app()


def serve() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    ShutdownCoordinator(app.state.connection_manager).install()
    logger.info("Server starting on port %s", settings.port)
    logger.info("Mode: %s", settings.environment)
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    uvicorn.Server(config).run()


if __name__ == "__main__":
    serve()
