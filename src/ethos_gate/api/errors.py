"""Translate exceptions into the API's ``{"error": ...}`` response bodies."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ethos_gate.core.errors import GateError, RateLimitError

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    *,
    retry_after: int | None = None,
) -> JSONResponse:
    """Build an error body, adding the retry hint for rate-limit rejections."""
    body: dict[str, object] = {"error": message}
    headers: dict[str, str] | None = None
    if retry_after is not None:
        body["retryAfter"] = retry_after
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid value"))
    return f"{location}: {message}" if location else message


async def handle_gate_error(request: Request, exc: GateError) -> JSONResponse:
    if isinstance(exc, RateLimitError):
        return error_response(exc.status_code, exc.message, retry_after=exc.retry_after)
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Internal error on %s: %s", request.url.path, exc.message)
        return error_response(exc.status_code, "Internal server error")
    return error_response(exc.status_code, exc.message)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on ``app``."""
    app.add_exception_handler(GateError, handle_gate_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        handle_request_validation_error,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, handle_unexpected_error)
