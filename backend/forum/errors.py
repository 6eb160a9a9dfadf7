"""Exception handlers producing the `{"error": message}` envelope."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

VALUE_ERROR_PREFIX = "Value error, "


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def validation_message(exc: RequestValidationError) -> str:
    """Collapse pydantic errors into one client-facing message."""
    errors = exc.errors()
    if not errors:
        return "Invalid request body"

    first = errors[0]
    error_type = first.get("type", "")
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]

    if error_type == "json_invalid" or (error_type == "missing" and not loc):
        return "Invalid request body"
    if error_type == "model_attributes_type" or error_type == "dict_type":
        return "Invalid request body"
    if error_type == "missing":
        return f"{loc[-1]} is required"

    message = str(first.get("msg", "Invalid request"))
    if message.startswith(VALUE_ERROR_PREFIX):
        message = message[len(VALUE_ERROR_PREFIX):]
    elif loc:
        message = f"{loc[-1]}: {message}"
    return message


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers so every failure uses the same error envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = validation_message(exc)
        logger.info(f"Rejected {request.method} {request.url.path}: {message}")
        return error_response(400, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(500, "Internal server error")
