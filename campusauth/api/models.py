"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from campusauth.domain.account_flow import MAX_PASSWORD_BYTES
from campusauth.domain.ports import Account, Role


def _within_bcrypt_limit(value: str) -> str:
    if len(value.encode()) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


# Longer input would make bcrypt raise instead of hashing
BcryptPassword = Annotated[str, AfterValidator(_within_bcrypt_limit)]


class RequestCodeRequest(BaseModel):
    """Request model for registration and forgot-password code requests."""

    email: EmailStr


class CodeSentResponse(BaseModel):
    """Response model after a verification code was mailed."""

    message: str
    email: str
    expires_in_seconds: int


class VerifyCodeRequest(BaseModel):
    """Request model for code verification."""

    email: EmailStr
    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^\d{6}$",
        description="6-digit verification code",
    )


class VerifyCodeResponse(BaseModel):
    """Response model for a successful verification."""

    message: str
    email: str


class CompleteRegistrationRequest(BaseModel):
    """Request model for finishing a registration after verification."""

    email: EmailStr
    password: BcryptPassword = Field(..., min_length=8, description="User password (min 8 characters)")


class ResetPasswordRequest(BaseModel):
    """Request model for setting a new password after verification."""

    email: EmailStr
    new_password: BcryptPassword = Field(..., min_length=8, description="New password (min 8 characters)")


class ChangePasswordRequest(BaseModel):
    """Request model for a signed-in password change."""

    current_password: str
    new_password: BcryptPassword = Field(..., min_length=8, description="New password (min 8 characters)")


class UpdateProfileRequest(BaseModel):
    """Request model for editing the signed-in account."""

    username: str = Field(..., min_length=1, max_length=255)


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class AccountResponse(BaseModel):
    """Public view of an account. Never includes the password hash."""

    id: str
    email: str
    username: str
    role: Role

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(id=account.id, email=account.email, username=account.username, role=account.role)


class CreateAdminRequest(BaseModel):
    """Request model for creating an administrator account."""

    email: EmailStr
    username: str = Field(..., min_length=1, max_length=255)
    role: Role


class ChangeRoleRequest(BaseModel):
    """Request model for changing an account's role."""

    role: Role


class ErrorResponse(BaseModel):
    """Standard error response model."""

    code: str
    detail: str
