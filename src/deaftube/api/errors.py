"""Conversion of service errors into JSON error responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from deaftube.logging import get_logger
from deaftube.services.errors import DeafTubeError, StorageFailureError

logger = get_logger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def deaftube_error_handler(request: Request, exc: DeafTubeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    return error_response(exc.status_code, exc.message)


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "storage_failure",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return error_response(StorageFailureError.status_code, StorageFailureError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on an application."""
    app.add_exception_handler(DeafTubeError, deaftube_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
