"""
Admin account management gated by the role hierarchy.

Requesters are identified by account id. Every check runs before any
write, so a rejected request leaves storage untouched.
"""

import logging
from dataclasses import dataclass

from .account_flow import AccountAuthFlow, normalize_email
from .exceptions import (
    AccountNotFound,
    CannotModifySelf,
    EmailAlreadyRegistered,
    InsufficientPermissions,
    PasswordAlreadySet,
)
from .ports import Account, AccountRepository, CodeIntent, Role
from .roles import RoleAuthorizer

logger = logging.getLogger(__name__)


@dataclass
class AdminService:
    """Create, re-role, list and delete administrator accounts."""

    accounts: AccountRepository
    authorizer: RoleAuthorizer
    flow: AccountAuthFlow

    def list_admins(self, requester_id: str) -> list[Account]:
        """Accounts whose role belongs to the admin hierarchy."""
        self._get(requester_id)
        return self.accounts.list_by_roles(self.authorizer.hierarchy)

    def create_admin(self, requester_id: str, email: str, username: str, role: Role) -> Account:
        """
        Create a password-less admin account and mail an invitation code.

        The invitee completes the INVITE flow to set a password.

        Raises:
            AccountNotFound: Unknown requester
            InsufficientPermissions: role is not below the requester's rank
            EmailAlreadyRegistered: Email already has an account
        """
        requester = self._get(requester_id)
        if role not in self.authorizer.creatable_roles(requester.role):
            logger.warning(
                f"Create admin rejected: {requester.id} ({requester.role.value}) -> {role.value}"
            )
            raise InsufficientPermissions(role.value)

        normalized_email = normalize_email(email)
        if self.accounts.find_by_email(normalized_email) is not None:
            raise EmailAlreadyRegistered(normalized_email)

        account = self.accounts.create_account(
            email=normalized_email, username=username, role=role, password_hash=None
        )
        self.flow.request_code(normalized_email, CodeIntent.INVITE)

        logger.info(f"Admin created: {normalized_email} ({role.value}) by {requester.id}")
        return account

    def change_role(self, requester_id: str, target_id: str, role: Role) -> Account:
        """
        Move a lower-ranked account to another role below the requester.

        Raises:
            CannotModifySelf: requester_id == target_id
            AccountNotFound: Unknown requester or target
            InsufficientPermissions: Target or new role not below requester
        """
        if requester_id == target_id:
            raise CannotModifySelf(requester_id)

        requester = self._get(requester_id)
        target = self._get(target_id)

        if not self.authorizer.can_modify(requester.role, target.role):
            raise InsufficientPermissions(target.role.value)
        if role not in self.authorizer.creatable_roles(requester.role):
            raise InsufficientPermissions(role.value)

        updated = self.accounts.update_role(target_id, role)
        if updated is None:
            raise AccountNotFound(target_id)

        logger.info(f"Role changed: {target_id} {target.role.value} -> {role.value} by {requester_id}")
        return updated

    def resend_invitation(self, requester_id: str, target_id: str) -> Account:
        """
        Mail a fresh INVITE code to an account that has not set a password.

        The new code replaces any earlier one. Also recovers a create_admin
        whose first invitation failed with DeliveryError.

        Raises:
            AccountNotFound: Unknown requester or target
            InsufficientPermissions: Target not below the requester
            PasswordAlreadySet: Target already completed the invitation
        """
        requester = self._get(requester_id)
        target = self._get(target_id)

        if not self.authorizer.can_modify(requester.role, target.role):
            raise InsufficientPermissions(target.role.value)
        if target.password_hash is not None:
            raise PasswordAlreadySet(target.email)

        self.flow.request_code(target.email, CodeIntent.INVITE)
        logger.info(f"Invitation resent: {target.email} by {requester.id}")
        return target

    def delete_admin(self, requester_id: str, target_id: str) -> None:
        """
        Delete an account at or below the requester's rank.

        Raises:
            CannotModifySelf: requester_id == target_id
            AccountNotFound: Unknown requester or target
            InsufficientPermissions: Target ranks above the requester
        """
        if requester_id == target_id:
            raise CannotModifySelf(requester_id)

        requester = self._get(requester_id)
        target = self._get(target_id)

        if not self.authorizer.can_delete(requester.role, target.role):
            raise InsufficientPermissions(target.role.value)

        if not self.accounts.delete_account(target_id):
            raise AccountNotFound(target_id)
        self.flow.registry.delete_code(target.email)

        logger.info(f"Admin deleted: {target_id} by {requester_id}")

    def _get(self, account_id: str) -> Account:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account
