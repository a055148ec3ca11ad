"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

import logging
from functools import lru_cache

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from campusauth.adapters.repository.postgres import PostgresAccountRepository
from campusauth.adapters.smtp.console import ConsoleEmailSender
from campusauth.config.settings import get_settings
from campusauth.domain.account_flow import MAX_PASSWORD_BYTES, AccountAuthFlow, normalize_email
from campusauth.domain.admin import AdminService
from campusauth.domain.ports import Account, AccountRepository, EmailSender
from campusauth.domain.roles import RoleAuthorizer
from campusauth.domain.verification import VerificationCodeRegistry

logger = logging.getLogger(__name__)

# Compared against when the account is unknown or has no password yet,
# so bcrypt always runs and response time does not reveal which case hit.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(request: Request) -> AccountRepository:
    """Create repository with connection pool from app state."""
    pool = get_pool(request)
    return PostgresAccountRepository(pool)


def get_registry(request: Request) -> VerificationCodeRegistry:
    """
    Get the verification code registry from app state.

    The registry is in-memory, so it must be a single instance per app.
    """
    return request.app.state.registry


@lru_cache
def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return ConsoleEmailSender(from_address=get_settings().mail_from)


@lru_cache
def get_authorizer() -> RoleAuthorizer:
    """Get the role authorizer for the admin hierarchy."""
    return RoleAuthorizer(elevated_role=get_settings().elevated_role)


def get_account_flow(
    registry: VerificationCodeRegistry = Depends(get_registry),
    repository: AccountRepository = Depends(get_repository),
    email_sender: EmailSender = Depends(get_email_sender),
) -> AccountAuthFlow:
    """
    Create the account flow with injected dependencies.

    Wires together the registry, the repository and the email sender.
    """
    settings = get_settings()
    return AccountAuthFlow(
        registry=registry,
        accounts=repository,
        email_sender=email_sender,
        code_ttl_minutes=settings.code_ttl_minutes,
        invite_ttl_minutes=settings.invite_ttl_minutes,
        bcrypt_cost=settings.bcrypt_cost,
        site_name=settings.site_name,
    )


def get_admin_service(
    repository: AccountRepository = Depends(get_repository),
    authorizer: RoleAuthorizer = Depends(get_authorizer),
    flow: AccountAuthFlow = Depends(get_account_flow),
) -> AdminService:
    """Create the admin service sharing the request's repository and flow."""
    return AdminService(accounts=repository, authorizer=authorizer, flow=flow)


# HTTP BASIC AUTH security schemes for OpenAPI documentation
http_basic = HTTPBasic()
optional_http_basic = HTTPBasic(auto_error=False)


def authenticate(credentials: HTTPBasicCredentials, repository: AccountRepository) -> Account | None:
    """
    Resolve Basic credentials to an account.

    bcrypt always runs, also for unknown emails, password-less
    (invited) accounts and passwords over bcrypt's input limit, none of
    which authenticate.

    Returns:
        The account, or None if the credentials do not match
    """
    email = normalize_email(credentials.username)
    account = repository.find_by_email(email)

    password = credentials.password.encode()
    usable = (
        account is not None
        and bool(account.password_hash)
        and len(password) <= MAX_PASSWORD_BYTES
    )
    stored_hash = account.password_hash if usable else _DUMMY_BCRYPT_HASH

    password_valid = bcrypt.checkpw(password[:MAX_PASSWORD_BYTES], stored_hash.encode())

    if not usable or not password_valid:
        logger.info(f"Authentication failed for: {email}")
        return None
    return account


def unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Basic"},
    )


def get_current_account(
    credentials: HTTPBasicCredentials = Depends(http_basic),
    repository: AccountRepository = Depends(get_repository),
) -> Account:
    """Authenticated account, or 401."""
    account = authenticate(credentials, repository)
    if account is None:
        raise unauthorized()
    return account
