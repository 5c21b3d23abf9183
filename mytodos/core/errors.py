"""Application exceptions and their HTTP mapping.

Every failure reaches the client as `{"error": <kind>, "message": <text>}`.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TodoAppError(Exception):
    """Base exception for the application."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class BadRequestError(TodoAppError):
    """Raised when input validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "bad_request"


class UnauthorizedError(TodoAppError):
    """Raised when the credential token is missing, malformed or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthorized"


class NotFoundError(TodoAppError):
    """Raised when a resource is absent or not owned by the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        details = {"resource": resource}
        if identifier is not None:
            details["identifier"] = identifier
        super().__init__(message, details)


class UpstreamError(TodoAppError):
    """Raised when a language-model provider call fails."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "upstream_error"

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} provider error: {message}", {"provider": provider})


_STATUS_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def register_exception_handlers(app: FastAPI, expose_details: bool = False) -> None:
    """
    Attach the error handlers to an application.

    Args:
        app: FastAPI application
        expose_details: Include exception text for unexpected failures
            (never enabled in production)
    """

    @app.exception_handler(TodoAppError)
    async def app_error_handler(request: Request, exc: TodoAppError):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error_code, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "bad_request",
                "message": "Validation error",
                "details": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Not Found - {request.url.path}"
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": _STATUS_ERROR_CODES.get(exc.status_code, "error"),
                "message": message,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Hide internal error details from clients; keep them in the log."""
        logger.exception("Unhandled exception: %s", exc)
        content = {"error": "internal_error", "message": "Internal server error"}
        if expose_details:
            content["detail"] = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
        )
