"""
Domain exceptions - Semantic error types for the account core.

Each exception carries a stable ``code`` string so the API layer can
report failures without leaking infrastructure details. Exceptions are
raised at the point of detection and propagate unchanged.
"""


class AuthError(Exception):
    """Base class for account domain errors."""

    code = "AUTH_ERROR"


class VerificationError(AuthError):
    """Base class for verification code failures."""

    code = "VERIFICATION_ERROR"


class CodeNotFound(VerificationError):
    """No pending verification exists for the email."""

    code = "NOT_FOUND_CODE"


class EmptyCode(VerificationError):
    """Stored entry has no code. Internal invariant violation."""

    code = "EMPTY_CODE"


class CodeExpired(VerificationError):
    """Code TTL elapsed. The entry is gone; request a new code."""

    code = "EXPIRED_CODE"


class CodeMismatch(VerificationError):
    """Submitted code is wrong. The entry is kept for retries."""

    code = "MISMATCH_CODE"


class CodeNotVerified(VerificationError):
    """Code used before a successful verification."""

    code = "FAILED_CODE_VERIFY"


class DeliveryError(AuthError):
    """Mail delivery failed. The stored code stays valid."""

    code = "FAILED_CODE_SEND"


class AccountNotFound(AuthError):
    """No account matches the email or id."""

    code = "NOT_FOUND_USER"


class EmailAlreadyRegistered(AuthError):
    """An account already exists for the email."""

    code = "EMAIL_ALREADY_EXISTS"


class InsufficientPermissions(AuthError):
    """Requester's role does not allow the operation."""

    code = "INSUFFICIENT_PERMISSIONS"


class CannotModifySelf(AuthError):
    """Admins may not change or delete their own account."""

    code = "CANNOT_MODIFY_SELF"


class PasswordTooLong(AuthError):
    """Password exceeds bcrypt's 72-byte input limit."""

    code = "PASSWORD_TOO_LONG"


class PasswordMismatch(AuthError):
    """Current password does not match the stored hash."""

    code = "MISMATCH_PASSWORD"


class SamePassword(AuthError):
    """New password equals the current one."""

    code = "IS_SAME_PASSWORD"


class PasswordAlreadySet(AuthError):
    """Invitation resend for an account that already has a password."""

    code = "PASSWORD_ALREADY_SET"
