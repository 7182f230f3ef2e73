"""
Translate Bunq adapter errors into HTTP responses.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bunq_bridge.core.errors import (
    ApiCallFailed,
    BunqError,
    ConfigurationError,
    InvalidParameterError,
    MalformedResponse,
)

logger = logging.getLogger(__name__)


def status_for(exc: BunqError) -> HTTPStatus:
    if isinstance(exc, ConfigurationError):
        return HTTPStatus.INTERNAL_SERVER_ERROR
    if isinstance(exc, InvalidParameterError):
        return HTTPStatus.UNPROCESSABLE_ENTITY
    return HTTPStatus.BAD_GATEWAY


async def handle_bunq_error(request: Request, exc: BunqError) -> JSONResponse:
    status = status_for(exc)
    content: dict = {"detail": str(exc).split("\n\n", 1)[0]}
    if isinstance(exc, ApiCallFailed):
        content["provider"] = exc.to_dict()
    elif isinstance(exc, MalformedResponse):
        content["step"] = exc.step
        content["expected"] = list(exc.expected)
    if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.warning("%s %s failed: %s", request.method, request.url.path, content["detail"])
    return JSONResponse(status_code=status, content=content)


def register_error_handlers(app: FastAPI) -> None:
    """Install the handler for every ``BunqError`` raised by routes or dependencies."""
    app.add_exception_handler(BunqError, handle_bunq_error)


__all__ = ["handle_bunq_error", "register_error_handlers", "status_for"]
