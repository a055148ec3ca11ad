"""
Domain layer - Pure business logic with zero framework imports.

This package contains the verification-code lifecycle, the role
hierarchy and the account flows built on them. It defines its own port
interfaces for infrastructure abstraction.
"""

from .account_flow import MAX_PASSWORD_BYTES, AccountAuthFlow, normalize_email
from .admin import AdminService
from .exceptions import (
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
    VerificationError,
)
from .ports import Account, AccountRepository, CodeIntent, EmailSender, Role
from .roles import ADMIN_HIERARCHY, USER_ADMIN_HIERARCHY, RoleAuthorizer
from .verification import VerificationCodeRegistry

__all__ = [
    "ADMIN_HIERARCHY",
    "Account",
    "AccountAuthFlow",
    "AccountNotFound",
    "AccountRepository",
    "AdminService",
    "AuthError",
    "CannotModifySelf",
    "CodeExpired",
    "CodeIntent",
    "CodeMismatch",
    "CodeNotFound",
    "CodeNotVerified",
    "DeliveryError",
    "EmailAlreadyRegistered",
    "EmailSender",
    "EmptyCode",
    "InsufficientPermissions",
    "MAX_PASSWORD_BYTES",
    "PasswordAlreadySet",
    "PasswordMismatch",
    "PasswordTooLong",
    "Role",
    "RoleAuthorizer",
    "SamePassword",
    "USER_ADMIN_HIERARCHY",
    "VerificationCodeRegistry",
    "VerificationError",
    "normalize_email",
]
