"""
Request logging and logger setup.

Each request gets a correlation ID (taken from X-Correlation-ID when the
caller sends one) that is echoed back along with the handling time, and
one access line is logged per request.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("travel_billing.http")

# Attributes every LogRecord has; anything else came in through `extra`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends the `extra` fields of a record as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(context.items()))
        return line


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the service loggers (idempotent)."""
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    # Module loggers live under backend.app.*, request logs under travel_billing.*
    for name in ("travel_billing", "backend.app"):
        target = logging.getLogger(name)
        target.setLevel(level.upper())
        if not target.handlers:
            target.addHandler(handler)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = str(elapsed_ms)

        fields = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        }
        if response.status_code >= 500:
            logger.error("request failed", extra=fields)
        elif response.status_code >= 400:
            logger.warning("request rejected", extra=fields)
        else:
            logger.info("request served", extra=fields)

        return response
