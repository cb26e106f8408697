"""Structured logging configuration.

Every log line passes through :func:`redact_credentials` before it is
rendered, so handlers can log request data without leaking passwords,
bearer tokens or full email addresses. Request-scoped fields (request id,
method, path and, once authenticated, the caller's user id) are carried in
structlog context variables and merged into each line.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from deaftube.config import settings

SECRET_KEYS = frozenset({"password", "token", "authorization", "jwt_secret"})
MASKED = "***"


def _mask_email(value: Any) -> Any:
    if not isinstance(value, str) or "@" not in value:
        return value
    local, _, domain = value.partition("@")
    return f"{local[:1]}{MASKED}@{domain}"


def redact_credentials(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask secrets and email addresses in a log event."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = MASKED
    if "email" in event_dict:
        event_dict["email"] = _mask_email(event_dict["email"])
    return event_dict


def setup_logging() -> None:
    """Configure structured logging for the application."""
    if settings.log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        redact_credentials,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.log_level.upper())

    # The request middleware logs its own access line
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance for a module."""
    return structlog.get_logger(name)


def bind_request_context(**values: Any) -> None:
    """Replace the context attached to every log line of the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def bind_caller(user_id: str) -> None:
    """Attach the authenticated caller to the rest of the request's log lines."""
    structlog.contextvars.bind_contextvars(user_id=user_id)
