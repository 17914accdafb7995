"""Structured logging for the registry and its HTTP API.

Events go through structlog into the standard library, so third-party loggers
share one stream. ``merge_contextvars`` runs first: whatever the request
middleware binds (the request id) is attached to every registry, audit and
API event logged while that request is served.
"""
import logging
import re
import sys
import uuid

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids are echoed into logs and headers, so keep them plain
_CLIENT_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _processors(log_format: str) -> list:
    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    return [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        renderer,
    ]


def setup_structured_logging(log_level: str = "INFO", log_format: str = "json"):
    """
    Configure structlog and the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        log_format: "json" for one JSON object per line, "console" for local runs

    Raises:
        ValueError: Unknown log level
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    structlog.configure(
        processors=_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to ``name`` (usually __name__)."""
    return structlog.get_logger(name)


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def resolve_request_id(environ) -> str:
    """Reuse a well-formed X-Request-ID sent by the client, otherwise mint one."""
    incoming = environ.get("HTTP_X_REQUEST_ID", "")
    if _CLIENT_REQUEST_ID.match(incoming):
        return incoming
    return generate_request_id()


class RequestIDMiddleware:
    """
    WSGI middleware giving every request an id.

    The id is bound into structlog's context for the duration of the request
    and returned to the client in the X-Request-ID header.
    """

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        request_id = resolve_request_id(environ)

        def start_response_with_id(status, headers, exc_info=None):
            headers.append((REQUEST_ID_HEADER, request_id))
            return start_response(status, headers, exc_info)

        clear_contextvars()
        bind_contextvars(request_id=request_id)
        try:
            return self.app(environ, start_response_with_id)
        finally:
            clear_contextvars()
