"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the value types that cross them. Adapters
implement these protocols.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """
    Account roles.

    Values are storage labels only. Rank comparisons go through the
    explicit hierarchy in ``campusauth.domain.roles``, never through
    string ordering.
    """

    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMINISTRATOR = "ADMINISTRATOR"


class CodeIntent(Enum):
    """
    Why a verification code was sent.

    Selects the email wording, the TTL, and what completing the
    action persists.
    """

    REGISTER = "register"
    RESET_PASSWORD = "reset_password"
    INVITE = "invite"


@dataclass(frozen=True)
class Account:
    """Persisted principal. ``password_hash`` is None until a password is set."""

    id: str
    email: str
    username: str
    role: Role
    password_hash: str | None
    created_at: datetime | None = None


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def find_by_email(self, email: str) -> Account | None:
        """Return the account for a normalized email, or None."""
        ...

    def find_by_id(self, account_id: str) -> Account | None:
        """Return the account with this id, or None."""
        ...

    def create_account(
        self, email: str, username: str, role: Role, password_hash: str | None
    ) -> Account:
        """
        Insert a new account.

        Raises:
            EmailAlreadyRegistered: If the email is already taken
        """
        ...

    def update_password_hash(self, email: str, password_hash: str) -> bool:
        """Replace the password hash. Returns False if no account matched."""
        ...

    def update_role(self, account_id: str, role: Role) -> Account | None:
        """Change an account's role. Returns the updated account, or None."""
        ...

    def update_username(self, account_id: str, username: str) -> Account | None:
        """Change an account's display name. Returns the updated account, or None."""
        ...

    def delete_account(self, account_id: str) -> bool:
        """Remove an account. Returns False if no account matched."""
        ...

    def list_by_roles(self, roles: Iterable[Role]) -> list[Account]:
        """Return all accounts whose role is one of ``roles``, oldest first."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver rendered content to an address.

        Args:
            to: Recipient email address
            subject: Subject line
            body: Rendered plain-text body

        Raises:
            Exception: Any delivery failure. The flow wraps it in DeliveryError.
        """
        ...
