from contextlib import asynccontextmanager
from typing import Optional
import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import Store
from errors import AppError
from time_utils import utc_now
from auth.routes import router as auth_router
from routes.lists import router as lists_router
from routes.members import router as members_router
from routes.tasks import router as tasks_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _build_store() -> Store:
    kwargs = {}
    if not config.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_size"] = config.DB_POOL_SIZE
    store = Store(config.DATABASE_URL, **kwargs)
    if config.CREATE_SCHEMA_ON_STARTUP:
        store.create_schema()
    return store


def _field_name(location) -> str:
    # ("body", "tags", 0) -> "tags.0"; the leading source is dropped
    parts = [str(part) for part in location if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def create_app(store: Optional[Store] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Store to serve from. When omitted, one is created from
            config.DATABASE_URL at startup and disposed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = store is None
        app.state.store = _build_store() if owns_store else store
        logger.info(f"To-Do API started (environment: {config.ENVIRONMENT})")
        try:
            yield
        finally:
            if owns_store:
                app.state.store.dispose()
            logger.info("To-Do API stopped")

    app = FastAPI(
        title="To-Do List API",
        description="Collaborative to-do lists with shared membership, tasks, subtasks and tags",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        # Unhandled errors propagate past this middleware and are rendered as 500
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            client = request.client.host if request.client else "-"
            logger.info(
                f"{request.method} {request.url.path} from {client} -> {status_code} ({elapsed_ms:.1f}ms)"
            )

    # ============== Error envelope ==============

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [{"field": _field_name(error["loc"]), "message": error["msg"]} for error in exc.errors()]
        logger.debug(f"Validation failed for {request.method} {request.url.path}: {details}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Validation failed", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # ============== Health & index ==============

    @app.get("/health")
    def health_check(request: Request):
        """Report whether the database is reachable."""
        try:
            request.app.state.store.ping()
        except Exception:
            logger.exception("Health check failed: database unreachable")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"status": "unhealthy", "timestamp": utc_now().isoformat(), "database": "disconnected"},
            )
        return {"status": "healthy", "timestamp": utc_now().isoformat(), "database": "connected"}

    @app.get("/")
    def index():
        return {
            "message": "To-Do List API",
            "version": app.version,
            "endpoints": {
                "health": "/health",
                "auth": "/api/auth",
                "lists": "/api/lists",
                "tasks": "/api/tasks",
            },
        }

    app.include_router(auth_router)
    app.include_router(lists_router)
    app.include_router(members_router)
    app.include_router(tasks_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
