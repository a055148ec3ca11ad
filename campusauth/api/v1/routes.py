"""
API v1 routes.

Defines REST endpoints for verification-gated account flows and admin
management. Handlers are plain functions so FastAPI runs them in its
threadpool; the domain and the database driver are synchronous.

Domain exceptions propagate to the handler in ``campusauth.api.errors``.
"""

from fastapi import APIRouter, Depends, status

from campusauth.api.dependencies import get_account_flow, get_admin_service, get_current_account
from campusauth.api.guards import require_admin, require_admin_manager
from campusauth.api.models import (
    AccountResponse,
    ChangePasswordRequest,
    ChangeRoleRequest,
    CodeSentResponse,
    CompleteRegistrationRequest,
    CreateAdminRequest,
    ErrorResponse,
    MessageResponse,
    RequestCodeRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from campusauth.domain.account_flow import AccountAuthFlow, normalize_email
from campusauth.domain.admin import AdminService
from campusauth.domain.ports import Account, CodeIntent

router = APIRouter()

_CODE_ERRORS = {
    400: {"model": ErrorResponse, "description": "Code expired, mismatched or not verified"},
    404: {"model": ErrorResponse, "description": "No pending verification"},
}


def _code_sent(flow: AccountAuthFlow, email: str, intent: CodeIntent) -> CodeSentResponse:
    return CodeSentResponse(
        message="Verification code sent",
        email=email,
        expires_in_seconds=flow.ttl_for(intent) * 60,
    )


@router.post(
    "/auth/register",
    response_model=CodeSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["auth"],
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        502: {"model": ErrorResponse, "description": "Email delivery failed"},
    },
    summary="Start a registration",
    description="Send a 6-digit verification code to the email address.",
)
def register(
    request_data: RequestCodeRequest,
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> CodeSentResponse:
    email = flow.request_code(request_data.email, CodeIntent.REGISTER)
    return _code_sent(flow, email, CodeIntent.REGISTER)


@router.post(
    "/auth/register/complete",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["auth"],
    responses={**_CODE_ERRORS, 409: {"model": ErrorResponse, "description": "Email already registered"}},
    summary="Finish a registration",
    description="Create the account once the email's code has been verified.",
)
def complete_registration(
    request_data: CompleteRegistrationRequest,
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> AccountResponse:
    account = flow.complete_action(request_data.email, CodeIntent.REGISTER, request_data.password)
    return AccountResponse.from_account(account)


@router.post(
    "/auth/password/forgot",
    response_model=CodeSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["auth"],
    responses={
        404: {"model": ErrorResponse, "description": "Account not found"},
        502: {"model": ErrorResponse, "description": "Email delivery failed"},
    },
    summary="Request a password reset code",
)
def forgot_password(
    request_data: RequestCodeRequest,
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> CodeSentResponse:
    email = flow.request_code(request_data.email, CodeIntent.RESET_PASSWORD)
    return _code_sent(flow, email, CodeIntent.RESET_PASSWORD)


@router.post(
    "/auth/verify-code",
    response_model=VerifyCodeResponse,
    tags=["auth"],
    responses=_CODE_ERRORS,
    summary="Verify an emailed code",
    description="Mark the email's pending code as verified. Wrong codes may be retried until expiry.",
)
def verify_code(
    request_data: VerifyCodeRequest,
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> VerifyCodeResponse:
    flow.confirm_code(request_data.email, request_data.code)
    return VerifyCodeResponse(message="Verification successful", email=normalize_email(request_data.email))


@router.post(
    "/auth/password/reset",
    response_model=MessageResponse,
    tags=["auth"],
    responses={**_CODE_ERRORS, 404: {"model": ErrorResponse, "description": "Account or code not found"}},
    summary="Set a new password",
    description="Consume the verified code and replace the password. "
    "Also completes an administrator invitation.",
)
def reset_password(
    request_data: ResetPasswordRequest,
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> MessageResponse:
    flow.complete_action(request_data.email, CodeIntent.RESET_PASSWORD, request_data.new_password)
    return MessageResponse(message="Password updated")


@router.get(
    "/auth/me",
    response_model=AccountResponse,
    tags=["auth"],
    responses={401: {"description": "Invalid credentials"}},
    summary="Current account",
)
def me(account: Account = Depends(get_current_account)) -> AccountResponse:
    return AccountResponse.from_account(account)


@router.put(
    "/auth/me",
    response_model=AccountResponse,
    tags=["auth"],
    responses={401: {"description": "Invalid credentials"}},
    summary="Update current account",
)
def update_me(
    request_data: UpdateProfileRequest,
    account: Account = Depends(get_current_account),
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> AccountResponse:
    updated = flow.update_profile(account.id, request_data.username)
    return AccountResponse.from_account(updated)


@router.post(
    "/auth/password/change",
    response_model=MessageResponse,
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse, "description": "Current password wrong or unchanged"},
        401: {"description": "Invalid credentials"},
    },
    summary="Change password",
    description="Replace the password of the signed-in account.",
)
def change_password(
    request_data: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> MessageResponse:
    flow.change_password(account.id, request_data.current_password, request_data.new_password)
    return MessageResponse(message="Password changed")


@router.get(
    "/admins",
    response_model=list[AccountResponse],
    tags=["admins"],
    summary="List administrator accounts",
)
def list_admins(
    requester: Account = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> list[AccountResponse]:
    return [AccountResponse.from_account(a) for a in service.list_admins(requester.id)]


@router.post(
    "/admins",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["admins"],
    responses={
        403: {"model": ErrorResponse, "description": "Role not below requester"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
    summary="Create an administrator",
    description="Create a password-less account and email an invitation code.",
)
def create_admin(
    request_data: CreateAdminRequest,
    requester: Account = Depends(require_admin_manager),
    service: AdminService = Depends(get_admin_service),
) -> AccountResponse:
    account = service.create_admin(
        requester.id, request_data.email, request_data.username, request_data.role
    )
    return AccountResponse.from_account(account)


@router.patch(
    "/admins/{account_id}/role",
    response_model=AccountResponse,
    tags=["admins"],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Change an administrator's role",
)
def change_role(
    account_id: str,
    request_data: ChangeRoleRequest,
    requester: Account = Depends(require_admin_manager),
    service: AdminService = Depends(get_admin_service),
) -> AccountResponse:
    account = service.change_role(requester.id, account_id, request_data.role)
    return AccountResponse.from_account(account)


@router.post(
    "/admins/{account_id}/invitation",
    response_model=CodeSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["admins"],
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Password already set"},
        502: {"model": ErrorResponse, "description": "Email delivery failed"},
    },
    summary="Resend an administrator invitation",
)
def resend_invitation(
    account_id: str,
    requester: Account = Depends(require_admin_manager),
    service: AdminService = Depends(get_admin_service),
) -> CodeSentResponse:
    target = service.resend_invitation(requester.id, account_id)
    return _code_sent(service.flow, target.email, CodeIntent.INVITE)


@router.delete(
    "/admins/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["admins"],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete an administrator",
)
def delete_admin(
    account_id: str,
    requester: Account = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> None:
    service.delete_admin(requester.id, account_id)
