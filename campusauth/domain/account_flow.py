"""
Account auth flow - Verification-gated account lifecycle.

Every sensitive change to an account (activating a registration,
resetting a password, accepting an admin invitation) runs in three
steps:

1. request_code:    mint a code, store it, mail it
2. confirm_code:    the user proves control of the mailbox
3. complete_action: consume the verified code, then persist

The ordering in step 3 is the safety property of the whole flow:
the code is consumed first and the account is written only if that
succeeds. A failed use_code leaves the account untouched.
"""

import logging
from dataclasses import dataclass, replace

import bcrypt

from .exceptions import (
    AccountNotFound,
    DeliveryError,
    EmailAlreadyRegistered,
    PasswordMismatch,
    PasswordTooLong,
    SamePassword,
)
from .ports import Account, AccountRepository, CodeIntent, EmailSender, Role
from .verification import DEFAULT_TTL_MINUTES, VerificationCodeRegistry

logger = logging.getLogger(__name__)

# bcrypt rejects longer input
MAX_PASSWORD_BYTES = 72

_SUBJECTS = {
    CodeIntent.REGISTER: "Confirm your email address",
    CodeIntent.RESET_PASSWORD: "Password reset code",
    CodeIntent.INVITE: "Your administrator account is ready",
}

_LEADS = {
    CodeIntent.REGISTER: "Use the code below to finish creating your account.",
    CodeIntent.RESET_PASSWORD: "Use the code below to reset your password.",
    CodeIntent.INVITE: (
        "An administrator account was created for you. "
        "Use the code below to set your password."
    ),
}


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def render_code_email(intent: CodeIntent, code: str, ttl_minutes: int, site_name: str) -> tuple[str, str]:
    """Return (subject, body) for a verification email."""
    subject = f"[{site_name}] {_SUBJECTS[intent]}"
    body = (
        f"{_LEADS[intent]}\n\n"
        f"Verification code: {code}\n\n"
        f"This code expires in {ttl_minutes} minutes.\n"
        f"If you did not request it, you can ignore this email.\n"
    )
    return subject, body


@dataclass
class AccountAuthFlow:
    """
    Orchestrates the registry, the mailer and the account repository.

    Registration creates USER accounts. Password reset and invitation
    both replace the password hash of an existing account.
    """

    registry: VerificationCodeRegistry
    accounts: AccountRepository
    email_sender: EmailSender
    code_ttl_minutes: int = DEFAULT_TTL_MINUTES
    invite_ttl_minutes: int = 24 * 60
    bcrypt_cost: int = 10
    site_name: str = "Department"

    def ttl_for(self, intent: CodeIntent) -> int:
        """Minutes a code for this intent stays valid."""
        if intent is CodeIntent.INVITE:
            return self.invite_ttl_minutes
        return self.code_ttl_minutes

    def request_code(self, email: str, intent: CodeIntent) -> str:
        """
        Mint, store and mail a verification code.

        Returns:
            Normalized email address

        Raises:
            EmailAlreadyRegistered: REGISTER for an email that has an account
            AccountNotFound: RESET_PASSWORD/INVITE for an unknown email
            DeliveryError: Mail could not be sent; the stored code stays valid
        """
        normalized_email = normalize_email(email)
        self._check_preconditions(normalized_email, intent)

        ttl_minutes = self.ttl_for(intent)
        code = self.registry.generate_code()
        self.registry.store_code(normalized_email, code, ttl_minutes)

        subject, body = render_code_email(intent, code, ttl_minutes, self.site_name)
        try:
            self.email_sender.send(normalized_email, subject, body)
        except Exception as e:
            logger.error(f"Failed to send {intent.value} code to {normalized_email}: {e}")
            raise DeliveryError(normalized_email) from e

        logger.info(f"{intent.value} code sent to: {normalized_email}")
        return normalized_email

    def confirm_code(self, email: str, code: str) -> None:
        """
        Verify a submitted code. Registry failures propagate unchanged.
        """
        self.registry.verify_code(normalize_email(email), code)

    def complete_action(self, email: str, intent: CodeIntent, password: str) -> Account:
        """
        Consume the verified code, then apply the password change.

        Raises:
            EmailAlreadyRegistered / AccountNotFound: As in request_code
            PasswordTooLong: Raised before the code is consumed
            CodeNotFound / EmptyCode / CodeNotVerified: From use_code;
                nothing is persisted
        """
        normalized_email = normalize_email(email)
        account = self._check_preconditions(normalized_email, intent)
        password_hash = self._hash_password(password)

        self.registry.use_code(normalized_email)

        if intent is CodeIntent.REGISTER:
            created = self.accounts.create_account(
                email=normalized_email,
                username=normalized_email.split("@", 1)[0],
                role=Role.USER,
                password_hash=password_hash,
            )
            logger.info(f"Registration completed: {normalized_email}")
            return created

        if not self.accounts.update_password_hash(normalized_email, password_hash):
            raise AccountNotFound(normalized_email)
        logger.info(f"Password set via {intent.value}: {normalized_email}")
        return replace(account, password_hash=password_hash)

    def _check_preconditions(self, email: str, intent: CodeIntent) -> Account | None:
        account = self.accounts.find_by_email(email)
        if intent is CodeIntent.REGISTER:
            if account is not None:
                logger.warning(f"Registration rejected - email already exists: {email}")
                raise EmailAlreadyRegistered(email)
            return None
        if account is None:
            logger.warning(f"{intent.value} rejected - account not found: {email}")
            raise AccountNotFound(email)
        return account

    def change_password(self, account_id: str, current_password: str, new_password: str) -> None:
        """
        Replace the password of a signed-in account.

        Raises:
            AccountNotFound: Unknown account id
            PasswordMismatch: current_password is wrong or no password is set
            SamePassword: new_password equals current_password
            PasswordTooLong: new_password exceeds MAX_PASSWORD_BYTES
        """
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise AccountNotFound(account_id)

        if not self._password_matches(current_password, account.password_hash):
            logger.warning(f"Password change rejected - current password mismatch: {account.email}")
            raise PasswordMismatch(account.email)
        if current_password == new_password:
            logger.warning(f"Password change rejected - same password: {account.email}")
            raise SamePassword(account.email)

        if not self.accounts.update_password_hash(account.email, self._hash_password(new_password)):
            raise AccountNotFound(account_id)
        logger.info(f"Password changed: {account.email}")

    def update_profile(self, account_id: str, username: str) -> Account:
        """Change the display name of an account."""
        updated = self.accounts.update_username(account_id, username.strip())
        if updated is None:
            raise AccountNotFound(account_id)
        logger.info(f"Profile updated: {updated.email}")
        return updated

    @staticmethod
    def _password_matches(password: str, password_hash: str | None) -> bool:
        candidate = password.encode()
        if not password_hash or len(candidate) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(candidate, password_hash.encode())

    def _hash_password(self, password: str) -> str:
        if len(password.encode()) > MAX_PASSWORD_BYTES:
            raise PasswordTooLong(f"{MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()
