"""
Unit tests for AccountAuthFlow orchestration.

Tests verify:
- Email normalization and intent preconditions
- Code minting and delivery, including delivery failures
- complete_action only persists after a successful use_code
"""

from unittest.mock import Mock

import bcrypt
import pytest

from campusauth.domain.account_flow import (
    MAX_PASSWORD_BYTES,
    AccountAuthFlow,
    normalize_email,
    render_code_email,
)
from campusauth.domain.exceptions import (
    AccountNotFound,
    CodeExpired,
    CodeMismatch,
    CodeNotFound,
    CodeNotVerified,
    DeliveryError,
    EmailAlreadyRegistered,
    PasswordMismatch,
    PasswordTooLong,
    SamePassword,
)
from campusauth.domain.ports import CodeIntent, Role

EMAIL = "student@example.ac.kr"


class TestNormalization:
    def test_strip_and_lowercase(self) -> None:
        assert normalize_email("  Student@Example.AC.kr ") == EMAIL

    def test_request_code_returns_normalized_email(self, flow: AccountAuthFlow, sender) -> None:
        assert flow.request_code("  STUDENT@example.ac.kr", CodeIntent.REGISTER) == EMAIL
        assert sender.sent[0][0] == EMAIL


class TestRenderCodeEmail:
    def test_body_contains_code_and_ttl(self) -> None:
        subject, body = render_code_email(CodeIntent.RESET_PASSWORD, "123456", 10, "IoT")
        assert subject.startswith("[IoT] ")
        assert "123456" in body
        assert "10 minutes" in body

    @pytest.mark.parametrize("intent", list(CodeIntent))
    def test_every_intent_renders(self, intent: CodeIntent) -> None:
        subject, body = render_code_email(intent, "654321", 5, "Dept")
        assert subject
        assert "654321" in body


class TestRequestCode:
    def test_register_stores_and_sends_code(self, flow: AccountAuthFlow, registry, sender) -> None:
        flow.request_code(EMAIL, CodeIntent.REGISTER)

        assert registry.has_code(EMAIL) is True
        assert len(sender.sent) == 1
        assert registry.verify_code(EMAIL, sender.last_code()) is True

    def test_register_existing_email_rejected(self, flow: AccountAuthFlow, accounts, sender) -> None:
        accounts.add(EMAIL, Role.USER)

        with pytest.raises(EmailAlreadyRegistered):
            flow.request_code(EMAIL, CodeIntent.REGISTER)
        assert sender.sent == []

    def test_reset_unknown_email_rejected(self, flow: AccountAuthFlow, registry, sender) -> None:
        with pytest.raises(AccountNotFound):
            flow.request_code(EMAIL, CodeIntent.RESET_PASSWORD)
        assert registry.has_code(EMAIL) is False
        assert sender.sent == []

    def test_delivery_failure_keeps_code(self, registry, accounts) -> None:
        failing_sender = Mock()
        failing_sender.send.side_effect = ConnectionError("smtp down")
        flow = AccountAuthFlow(registry=registry, accounts=accounts, email_sender=failing_sender)

        with pytest.raises(DeliveryError) as exc_info:
            flow.request_code(EMAIL, CodeIntent.REGISTER)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert registry.has_code(EMAIL) is True

    def test_second_request_invalidates_first_code(self, flow: AccountAuthFlow, registry, sender) -> None:
        flow.request_code(EMAIL, CodeIntent.REGISTER)
        first = sender.last_code()
        flow.request_code(EMAIL, CodeIntent.REGISTER)
        second = sender.last_code()

        if first != second:
            with pytest.raises(CodeMismatch):
                registry.verify_code(EMAIL, first)
        assert registry.verify_code(EMAIL, second) is True

    def test_invite_uses_invite_ttl(self, flow: AccountAuthFlow, accounts, clock) -> None:
        accounts.add(EMAIL, Role.ADMIN)
        flow.request_code(EMAIL, CodeIntent.INVITE)
        clock.advance(hours=23)
        assert flow.registry.has_code(EMAIL) is True

    def test_ttl_for(self, flow: AccountAuthFlow) -> None:
        assert flow.ttl_for(CodeIntent.REGISTER) == 10
        assert flow.ttl_for(CodeIntent.RESET_PASSWORD) == 10
        assert flow.ttl_for(CodeIntent.INVITE) == 24 * 60


class TestConfirmCode:
    def test_propagates_registry_errors(self, flow: AccountAuthFlow, sender, clock) -> None:
        with pytest.raises(CodeNotFound):
            flow.confirm_code(EMAIL, "123456")

        flow.request_code(EMAIL, CodeIntent.REGISTER)
        wrong = "000000" if sender.last_code() != "000000" else "111111"
        with pytest.raises(CodeMismatch):
            flow.confirm_code(EMAIL, wrong)

        clock.advance(minutes=11)
        with pytest.raises(CodeExpired):
            flow.confirm_code(EMAIL, sender.last_code())

    def test_normalizes_email(self, flow: AccountAuthFlow, sender) -> None:
        flow.request_code(EMAIL, CodeIntent.REGISTER)
        flow.confirm_code(EMAIL.upper(), sender.last_code())


class TestCompleteRegistration:
    def test_full_registration(self, flow: AccountAuthFlow, accounts, registry, sender) -> None:
        flow.request_code(EMAIL, CodeIntent.REGISTER)
        flow.confirm_code(EMAIL, sender.last_code())

        account = flow.complete_action(EMAIL, CodeIntent.REGISTER, "s3cret-pass")

        assert account.email == EMAIL
        assert account.role is Role.USER
        assert account.username == "student"
        assert bcrypt.checkpw(b"s3cret-pass", account.password_hash.encode())
        assert accounts.find_by_email(EMAIL) == account
        assert registry.has_code(EMAIL) is False

    def test_without_verify_persists_nothing(self, flow: AccountAuthFlow, accounts, registry) -> None:
        flow.request_code(EMAIL, CodeIntent.REGISTER)

        with pytest.raises(CodeNotVerified):
            flow.complete_action(EMAIL, CodeIntent.REGISTER, "s3cret-pass")

        assert accounts.find_by_email(EMAIL) is None
        assert registry.has_code(EMAIL) is True

    def test_without_code_persists_nothing(self, flow: AccountAuthFlow, accounts) -> None:
        with pytest.raises(CodeNotFound):
            flow.complete_action(EMAIL, CodeIntent.REGISTER, "s3cret-pass")
        assert accounts.find_by_email(EMAIL) is None

    def test_code_cannot_be_replayed(self, flow: AccountAuthFlow, accounts, sender) -> None:
        flow.request_code(EMAIL, CodeIntent.REGISTER)
        flow.confirm_code(EMAIL, sender.last_code())
        flow.complete_action(EMAIL, CodeIntent.REGISTER, "s3cret-pass")

        with pytest.raises(EmailAlreadyRegistered):
            flow.complete_action(EMAIL, CodeIntent.REGISTER, "other-pass")

    def test_repository_not_touched_when_use_fails(self, registry, sender) -> None:
        repo = Mock()
        repo.find_by_email.return_value = None
        flow = AccountAuthFlow(registry=registry, accounts=repo, email_sender=sender, bcrypt_cost=4)

        with pytest.raises(CodeNotFound):
            flow.complete_action(EMAIL, CodeIntent.REGISTER, "s3cret-pass")

        repo.create_account.assert_not_called()
        repo.update_password_hash.assert_not_called()


class TestCompletePasswordReset:
    def test_reset_replaces_hash(self, flow: AccountAuthFlow, accounts, sender) -> None:
        old_hash = bcrypt.hashpw(b"old-password", bcrypt.gensalt(4)).decode()
        accounts.add(EMAIL, Role.USER, password_hash=old_hash)

        flow.request_code(EMAIL, CodeIntent.RESET_PASSWORD)
        flow.confirm_code(EMAIL, sender.last_code())
        account = flow.complete_action(EMAIL, CodeIntent.RESET_PASSWORD, "new-password")

        stored = accounts.find_by_email(EMAIL)
        assert stored.password_hash == account.password_hash
        assert bcrypt.checkpw(b"new-password", stored.password_hash.encode())
        assert not bcrypt.checkpw(b"old-password", stored.password_hash.encode())

    def test_reset_without_verify_keeps_old_hash(self, flow: AccountAuthFlow, accounts) -> None:
        accounts.add(EMAIL, Role.USER, password_hash="$2b$04$unchanged")
        flow.request_code(EMAIL, CodeIntent.RESET_PASSWORD)

        with pytest.raises(CodeNotVerified):
            flow.complete_action(EMAIL, CodeIntent.RESET_PASSWORD, "new-password")

        assert accounts.find_by_email(EMAIL).password_hash == "$2b$04$unchanged"

    def test_reset_unknown_account_does_not_consume_code(self, flow: AccountAuthFlow, registry) -> None:
        registry.store_code(EMAIL, "123456")
        registry.verify_code(EMAIL, "123456")

        with pytest.raises(AccountNotFound):
            flow.complete_action(EMAIL, CodeIntent.RESET_PASSWORD, "new-password")

        assert registry.has_code(EMAIL) is True

    def test_remint_between_verify_and_use_fails_closed(self, flow: AccountAuthFlow, accounts, sender) -> None:
        accounts.add(EMAIL, Role.USER, password_hash="$2b$04$unchanged")
        flow.request_code(EMAIL, CodeIntent.RESET_PASSWORD)
        flow.confirm_code(EMAIL, sender.last_code())

        flow.request_code(EMAIL, CodeIntent.RESET_PASSWORD)

        with pytest.raises(CodeNotVerified):
            flow.complete_action(EMAIL, CodeIntent.RESET_PASSWORD, "new-password")
        assert accounts.find_by_email(EMAIL).password_hash == "$2b$04$unchanged"


class TestPasswordLength:
    def test_overlong_password_keeps_code(self, flow: AccountAuthFlow, accounts, registry, sender) -> None:
        flow.request_code(EMAIL, CodeIntent.REGISTER)
        flow.confirm_code(EMAIL, sender.last_code())

        with pytest.raises(PasswordTooLong):
            flow.complete_action(EMAIL, CodeIntent.REGISTER, "x" * 100)

        assert accounts.find_by_email(EMAIL) is None
        assert registry.has_code(EMAIL) is True

        account = flow.complete_action(EMAIL, CodeIntent.REGISTER, "s3cret-pass")
        assert account.email == EMAIL

    def test_multibyte_length_counts_bytes(self, flow: AccountAuthFlow, accounts, registry, sender) -> None:
        accounts.add(EMAIL, Role.USER, password_hash="$2b$04$unchanged")
        flow.request_code(EMAIL, CodeIntent.RESET_PASSWORD)
        flow.confirm_code(EMAIL, sender.last_code())

        # 25 characters, 75 bytes
        with pytest.raises(PasswordTooLong):
            flow.complete_action(EMAIL, CodeIntent.RESET_PASSWORD, "비" * 25)

        assert accounts.find_by_email(EMAIL).password_hash == "$2b$04$unchanged"
        assert registry.has_code(EMAIL) is True

    def test_exact_limit_accepted(self, flow: AccountAuthFlow, sender) -> None:
        password = "p" * MAX_PASSWORD_BYTES
        flow.request_code(EMAIL, CodeIntent.REGISTER)
        flow.confirm_code(EMAIL, sender.last_code())

        account = flow.complete_action(EMAIL, CodeIntent.REGISTER, password)

        assert bcrypt.checkpw(password.encode(), account.password_hash.encode())


class TestChangePassword:
    @pytest.fixture
    def member(self, accounts):
        password_hash = bcrypt.hashpw(b"old-password", bcrypt.gensalt(4)).decode()
        return accounts.add(EMAIL, Role.USER, password_hash=password_hash)

    def test_replaces_hash(self, flow: AccountAuthFlow, accounts, member) -> None:
        flow.change_password(member.id, "old-password", "new-password")

        stored = accounts.find_by_id(member.id).password_hash.encode()
        assert bcrypt.checkpw(b"new-password", stored)
        assert not bcrypt.checkpw(b"old-password", stored)

    def test_wrong_current_password(self, flow: AccountAuthFlow, accounts, member) -> None:
        with pytest.raises(PasswordMismatch):
            flow.change_password(member.id, "not-my-password", "new-password")
        assert accounts.find_by_id(member.id) == member

    def test_same_password_rejected(self, flow: AccountAuthFlow, accounts, member) -> None:
        with pytest.raises(SamePassword):
            flow.change_password(member.id, "old-password", "old-password")
        assert accounts.find_by_id(member.id) == member

    def test_account_without_password(self, flow: AccountAuthFlow, accounts) -> None:
        invited = accounts.add(EMAIL, Role.ADMIN)

        with pytest.raises(PasswordMismatch):
            flow.change_password(invited.id, "", "new-password")
        assert accounts.find_by_id(invited.id).password_hash is None

    def test_overlong_new_password(self, flow: AccountAuthFlow, accounts, member) -> None:
        with pytest.raises(PasswordTooLong):
            flow.change_password(member.id, "old-password", "n" * 80)
        assert accounts.find_by_id(member.id) == member

    def test_unknown_account(self, flow: AccountAuthFlow) -> None:
        with pytest.raises(AccountNotFound):
            flow.change_password("missing", "old-password", "new-password")


class TestUpdateProfile:
    def test_sets_username(self, flow: AccountAuthFlow, accounts) -> None:
        member = accounts.add(EMAIL, Role.USER)

        updated = flow.update_profile(member.id, "  Kim Student ")

        assert updated.username == "Kim Student"
        assert accounts.find_by_id(member.id).username == "Kim Student"
        assert updated.role is Role.USER

    def test_unknown_account(self, flow: AccountAuthFlow) -> None:
        with pytest.raises(AccountNotFound):
            flow.update_profile("missing", "name")
