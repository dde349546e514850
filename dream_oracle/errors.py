from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dream_oracle.models import ErrorBody, ErrorResponse


logger = logging.getLogger("dream-oracle.errors")


class DreamServiceError(Exception):
    """A request the service refuses to complete, rendered as the failure envelope."""

    def __init__(self, code: str, message: str, status_code: int, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.retryable = retryable


def config_error() -> DreamServiceError:
    return DreamServiceError("CONFIG_ERROR", "Service configuration error", 500, retryable=True)


def unauthorized(message: str) -> DreamServiceError:
    return DreamServiceError("UNAUTHORIZED", message, 401)


def invalid_json() -> DreamServiceError:
    return DreamServiceError("INVALID_JSON", "Request body must be valid JSON", 400)


def validation_error(message: str) -> DreamServiceError:
    return DreamServiceError("VALIDATION_ERROR", message, 400)


def error_response(code: str, message: str, status_code: int, retryable: bool = False) -> JSONResponse:
    payload = ErrorResponse(error=ErrorBody(code=code, message=message, retryable=retryable))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DreamServiceError)
    async def _dream_service_error(request: Request, exc: DreamServiceError) -> JSONResponse:
        return error_response(exc.code, exc.message, exc.status_code, exc.retryable)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 405:
            return error_response("METHOD_NOT_ALLOWED", f"Method {request.method} is not allowed", 405)
        if exc.status_code == 404:
            return error_response("NOT_FOUND", "Route not found", 404)
        return error_response("HTTP_ERROR", str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unexpected error path=%s error=%s", request.url.path, exc, exc_info=True)
        return error_response(
            "INTERNAL_ERROR",
            "An unexpected error occurred. Please try again.",
            500,
            retryable=True,
        )
