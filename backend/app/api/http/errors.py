"""Exception handlers mapping application errors to HTTP responses.

Every error body has the shape ``{"error": str, "code": int, "timestamp": str}``
where ``code`` repeats the HTTP status.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.exceptions import (
    AppError,
    CollaboratorTimeoutError,
    EmptyTranscriptionError,
    GenerationFailedError,
    InvalidAudioFormatError,
    PayloadTooLargeError,
    SynthesisFailedError,
    TranscriptionFailedError,
    ValidationError,
)
from app.schemas.voice import ErrorResponse

logger = logging.getLogger("api")

# First match wins; timeouts subclass their stage failure so they come first
STATUS_TABLE: list[tuple[type[AppError], int]] = [
    (CollaboratorTimeoutError, 504),
    (PayloadTooLargeError, 413),
    (InvalidAudioFormatError, 422),
    (EmptyTranscriptionError, 422),
    (TranscriptionFailedError, 422),
    (GenerationFailedError, 500),
    (SynthesisFailedError, 500),
    (ValidationError, 400),
]


def status_for(error: AppError) -> int:
    """Map an application error to its HTTP status."""
    for error_type, status_code in STATUS_TABLE:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_response(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(error=message, code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        status_code = status_for(exc)
        log = logger.warning if status_code < 500 else logger.error
        log(
            f"Application error: {exc.message}",
            extra={
                "service": "api",
                "error_code": exc.code,
                "status": status_code,
                "path": request.url.path,
                "metadata": exc.details,
            },
        )
        return error_response(status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning(
            "Request validation failed",
            extra={"service": "api", "path": request.url.path, "error": str(exc.errors())},
        )
        return error_response(400, "Invalid request")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            f"Unhandled exception: {exc}",
            extra={"service": "api", "path": request.url.path, "error_code": type(exc).__name__},
        )
        return error_response(500, "Internal server error")
