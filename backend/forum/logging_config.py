"""Logging setup and request logging middleware."""
import logging
import sys
import time
import uuid

from fastapi import FastAPI, Request

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("forum.requests")

handler = logging.StreamHandler(stream=sys.stdout)
handler.setFormatter(logging.Formatter(LOG_FORMAT))


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once; repeated calls only adjust the level."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if handler not in root_logger.handlers:
        root_logger.addHandler(handler)


def register_request_logging(app: FastAPI) -> None:
    """Log every request and stamp it with an X-Request-ID."""

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {duration_ms:.1f}ms request_id={request_id}"
        )
        return response
