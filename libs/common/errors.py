"""Error taxonomy shared by every router and service.

Each error is an ``HTTPException`` so FastAPI renders it without extra
handlers. ``UpstreamError`` keeps the real cause for the server log and only
ever sends a generic message to the client.
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from libs.common.logging import get_logger

logger = get_logger(__name__)


class AppError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class ConflictError(AppError):
    # Duplicate actions are reported as a plain 400 with an explanation.
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Action already performed"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Admin access required"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class SignatureError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid signature"


class UpstreamError(AppError):
    """An identity, store, or payment gateway call failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        # ``message`` goes to the log only.
        self.message = message
        logger.error(
            "Upstream failure: %s",
            message,
            exc_info=cause,
            extra={"extra_fields": {"cause": repr(cause) if cause else None}},
        )
        super().__init__()


async def _store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(
        "Unhandled store error on %s %s", request.method, request.url.path
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": UpstreamError.default_detail},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Map uncaught store errors to an opaque 500."""
    app.add_exception_handler(SQLAlchemyError, _store_error_handler)
