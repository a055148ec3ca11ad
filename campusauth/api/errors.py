"""
Domain exception to HTTP response mapping.

Routes let domain exceptions propagate; the handler registered here
renders them as ``{"code": ..., "detail": ...}`` with a fixed status
and message per exception type. Exception arguments (emails, ids) are
never echoed back to the client.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from campusauth.domain.exceptions import (
    AccountNotFound,
    AuthError,
    CannotModifySelf,
    CodeExpired,
    CodeMismatch,
    CodeNotFound,
    CodeNotVerified,
    DeliveryError,
    EmailAlreadyRegistered,
    EmptyCode,
    InsufficientPermissions,
    PasswordAlreadySet,
    PasswordMismatch,
    PasswordTooLong,
    SamePassword,
)

logger = logging.getLogger(__name__)

ERROR_RESPONSES: dict[type[AuthError], tuple[int, str]] = {
    CodeNotFound: (status.HTTP_404_NOT_FOUND, "No pending verification for this email"),
    EmptyCode: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"),
    CodeExpired: (status.HTTP_400_BAD_REQUEST, "Verification code has expired"),
    CodeMismatch: (status.HTTP_400_BAD_REQUEST, "Verification code does not match"),
    CodeNotVerified: (status.HTTP_400_BAD_REQUEST, "Verification required before use"),
    DeliveryError: (status.HTTP_502_BAD_GATEWAY, "Failed to send verification code"),
    AccountNotFound: (status.HTTP_404_NOT_FOUND, "Account not found"),
    EmailAlreadyRegistered: (status.HTTP_409_CONFLICT, "Email already registered"),
    InsufficientPermissions: (status.HTTP_403_FORBIDDEN, "Insufficient permissions"),
    CannotModifySelf: (status.HTTP_400_BAD_REQUEST, "Cannot modify your own account"),
    PasswordTooLong: (status.HTTP_400_BAD_REQUEST, "Password is too long"),
    PasswordMismatch: (status.HTTP_400_BAD_REQUEST, "Current password is incorrect"),
    SamePassword: (status.HTTP_400_BAD_REQUEST, "New password must differ from the current one"),
    PasswordAlreadySet: (status.HTTP_409_CONFLICT, "Account already has a password"),
}


def error_response_for(exc: AuthError) -> tuple[int, str]:
    """Return (status_code, detail) for a domain exception, walking its MRO."""
    for cls in type(exc).__mro__:
        if cls in ERROR_RESPONSES:
            return ERROR_RESPONSES[cls]
    return status.HTTP_400_BAD_REQUEST, "Request failed"


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    status_code, detail = error_response_for(exc)
    if status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc!r}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}")
    return JSONResponse(status_code=status_code, content={"code": exc.code, "detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain exception handler on an application."""
    app.add_exception_handler(AuthError, auth_error_handler)
