"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry tests
- In-memory account repository and recording email sender
- A wired registry, flow, authorizer and admin service
"""

import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from campusauth.domain.account_flow import AccountAuthFlow
from campusauth.domain.admin import AdminService
from campusauth.domain.exceptions import EmailAlreadyRegistered
from campusauth.domain.ports import Account, Role
from campusauth.domain.roles import RoleAuthorizer
from campusauth.domain.verification import VerificationCodeRegistry


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemoryAccountRepository:
    """AccountRepository double backed by a dict keyed on id."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}

    def add(self, email: str, role: Role, password_hash: str | None = None, username: str = "") -> Account:
        account = Account(
            id=str(uuid.uuid4()),
            email=email,
            username=username or email.split("@")[0],
            role=role,
            password_hash=password_hash,
        )
        self.accounts[account.id] = account
        return account

    def find_by_email(self, email: str) -> Account | None:
        return next((a for a in self.accounts.values() if a.email == email), None)

    def find_by_id(self, account_id: str) -> Account | None:
        return self.accounts.get(account_id)

    def create_account(
        self, email: str, username: str, role: Role, password_hash: str | None
    ) -> Account:
        if self.find_by_email(email) is not None:
            raise EmailAlreadyRegistered(email)
        return self.add(email, role, password_hash, username)

    def update_password_hash(self, email: str, password_hash: str) -> bool:
        account = self.find_by_email(email)
        if account is None:
            return False
        self.accounts[account.id] = replace(account, password_hash=password_hash)
        return True

    def update_role(self, account_id: str, role: Role) -> Account | None:
        account = self.accounts.get(account_id)
        if account is None:
            return None
        self.accounts[account_id] = replace(account, role=role)
        return self.accounts[account_id]

    def update_username(self, account_id: str, username: str) -> Account | None:
        account = self.accounts.get(account_id)
        if account is None:
            return None
        self.accounts[account_id] = replace(account, username=username)
        return self.accounts[account_id]

    def delete_account(self, account_id: str) -> bool:
        return self.accounts.pop(account_id, None) is not None

    def list_by_roles(self, roles: Iterable[Role]) -> list[Account]:
        wanted = set(roles)
        return [a for a in self.accounts.values() if a.role in wanted]


class RecordingEmailSender:
    """EmailSender double that keeps every message."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append((to, subject, body))

    def last_code(self) -> str:
        body = self.sent[-1][2]
        return body.split("Verification code: ", 1)[1][:6]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> VerificationCodeRegistry:
    return VerificationCodeRegistry(clock=clock)


@pytest.fixture
def accounts() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def flow(
    registry: VerificationCodeRegistry,
    accounts: InMemoryAccountRepository,
    sender: RecordingEmailSender,
) -> AccountAuthFlow:
    # Minimum bcrypt cost keeps the suite fast
    return AccountAuthFlow(registry=registry, accounts=accounts, email_sender=sender, bcrypt_cost=4)


@pytest.fixture
def authorizer() -> RoleAuthorizer:
    return RoleAuthorizer()


@pytest.fixture
def admin_service(
    accounts: InMemoryAccountRepository, authorizer: RoleAuthorizer, flow: AccountAuthFlow
) -> AdminService:
    return AdminService(accounts=accounts, authorizer=authorizer, flow=flow)
