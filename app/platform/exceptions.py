import asyncio
import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.platform.response import api_response

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, data: dict | None = None):
        self.message = message or self.message
        self.data = data
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "Resource already exists"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Not authenticated"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "Access denied"


class ExpiredError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "EXPIRED"
    message = "Resource has expired"


class UpstreamError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_ERROR"
    message = "Upstream service unavailable"


class UpstreamTimeoutError(UpstreamError):
    status_code = status.HTTP_408_REQUEST_TIMEOUT
    code = "TIMEOUT"
    message = "Upstream service timed out"


class EmailDeliveryError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "EMAIL_DELIVERY_FAILED"
    message = "Failed to send email"


def add_exception_handlers(app):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        data = {"error_code": exc.code}
        if exc.data:
            data.update(exc.data)
        return api_response(message=exc.message, status_code=exc.status_code, data=data)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_400_BAD_REQUEST,
            data={"errors": exc.errors()},
        )

    @app.exception_handler(PoolTimeoutError)
    @app.exception_handler(asyncio.TimeoutError)
    async def timeout_exception_handler(request: Request, exc: Exception):
        logger.error(f"Timeout on {request.method} {request.url.path}: {exc!r}")
        return api_response(
            message="Request timed out",
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            data={"error_code": UpstreamTimeoutError.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logging.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
