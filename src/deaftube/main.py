"""FastAPI application entry point."""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from deaftube import __version__
from deaftube.api.deps import get_storage
from deaftube.api.errors import register_exception_handlers
from deaftube.api.routes import auth, comments, health, users, videos
from deaftube.config import settings
from deaftube.logging import bind_request_context, get_logger, setup_logging

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__)

    # Startup: verify database connection and create tables in dev
    try:
        from deaftube.db.session import init_db

        init_db()
        logger.info("database_connected")
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="DeafTube",
    description="Video sharing for deaf and hard-of-hearing creators",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def request_context(request: Request, call_next) -> Response:
    """Tag log lines with a request id, echo it back and log the outcome."""
    request_id = request.headers.get("x-request-id") or uuid4().hex[:16]
    bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "request_finished",
        status=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


# Register routers
app.include_router(health.router)
app.include_router(auth.router, prefix="/api")
app.include_router(videos.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(comments.router, prefix="/api")

# Uploaded files, served straight from the store's category directories
app.mount("/uploads", StaticFiles(directory=get_storage().base_path), name="uploads")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Service banner."""
    return {
        "name": "DeafTube",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "deaftube.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
