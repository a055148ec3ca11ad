"""
Verification code registry - One-time email codes with lazy expiry.

Per-email state machine
=======================

    ABSENT   --store_code-->           PENDING
    PENDING  --verify_code (match)-->  VERIFIED
    PENDING  --verify_code (wrong)-->  PENDING   (retry allowed)
    PENDING  --verify_code (expired)-> ABSENT
    VERIFIED --use_code-->             ABSENT
    VERIFIED --store_code-->           PENDING   (re-mint drops verification)

Expiry is data, not a timer: ``expires_at`` is checked when an entry is
touched. There is no background sweep.

Every public operation holds the registry lock for its whole
read-modify-write, so a re-mint racing a verify/use pair is seen either
before or after it, never halfway.
"""

import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .exceptions import CodeExpired, CodeMismatch, CodeNotFound, CodeNotVerified, EmptyCode

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 10

_CODE_FLOOR = 100000
_CODE_SPAN = 900000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class VerificationEntry:
    """Live code for one email. Owned by the registry, never handed out."""

    code: str
    expires_at: datetime
    verified: bool = False


@dataclass
class VerificationCodeRegistry:
    """
    In-memory store holding at most one live code per email.

    The clock is injectable so expiry can be exercised in tests.
    Callers are expected to pass normalized emails.
    """

    clock: Callable[[], datetime] = _utcnow
    _entries: dict[str, VerificationEntry] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def generate_code(self) -> str:
        """
        Generate a 6-digit numeric code.

        Uniform over [100000, 999999] using the secrets module.
        """
        return str(_CODE_FLOOR + secrets.randbelow(_CODE_SPAN))

    def store_code(self, email: str, code: str, ttl_minutes: int = DEFAULT_TTL_MINUTES) -> None:
        """
        Store a fresh PENDING entry, replacing any previous one.

        A replaced code, verified or not, can never be verified again.
        """
        expires_at = self.clock() + timedelta(minutes=ttl_minutes)
        with self._lock:
            self._entries[email] = VerificationEntry(code=code, expires_at=expires_at)
        logger.info("Verification code stored for email: %s", email)

    def verify_code(self, email: str, code: str) -> bool:
        """
        Check a submitted code and mark the entry verified.

        The entry is kept after a match so use_code can consume it, and
        after a mismatch so the caller can retry until expiry.

        Returns:
            True on match (also on repeated matches before use)

        Raises:
            CodeNotFound: No entry for email
            EmptyCode: Entry has no code
            CodeExpired: TTL elapsed; the entry is deleted
            CodeMismatch: Wrong code; the entry is kept
        """
        with self._lock:
            entry = self._entries.get(email)
            if entry is None:
                logger.warning("Verification attempt for non-existent code: %s", email)
                raise CodeNotFound(email)

            if not entry.code:
                logger.warning("Verification attempt for empty code: %s", email)
                raise EmptyCode(email)

            if self.clock() > entry.expires_at:
                del self._entries[email]
                logger.warning("Expired verification code attempt: %s", email)
                raise CodeExpired(email)

            if not secrets.compare_digest(entry.code.encode(), code.encode()):
                logger.warning("Invalid verification code attempt: %s", email)
                raise CodeMismatch(email)

            entry.verified = True

        logger.info("Verification successful: %s", email)
        return True

    def use_code(self, email: str) -> bool:
        """
        Consume a verified code. Succeeds at most once per mint.

        Raises:
            CodeNotFound: No entry for email (including already consumed)
            EmptyCode: Entry has no code
            CodeNotVerified: verify_code has not succeeded for this entry
        """
        with self._lock:
            entry = self._entries.get(email)
            if entry is None:
                logger.warning("Use attempt for non-existent code: %s", email)
                raise CodeNotFound(email)

            if not entry.code:
                logger.warning("Use attempt for empty code: %s", email)
                raise EmptyCode(email)

            if not entry.verified:
                logger.warning("Attempt to use unverified code: %s", email)
                raise CodeNotVerified(email)

            del self._entries[email]

        logger.info("Verification code used and deleted for: %s", email)
        return True

    def delete_code(self, email: str) -> None:
        """Remove any entry for email. No-op when absent."""
        with self._lock:
            deleted = self._entries.pop(email, None) is not None
        if deleted:
            logger.debug("Verification code deleted for: %s", email)

    def has_code(self, email: str) -> bool:
        """
        Report whether a live entry exists.

        An expired entry is reaped here and reported as absent.
        """
        with self._lock:
            entry = self._entries.get(email)
            if entry is None:
                return False
            if self.clock() > entry.expires_at:
                del self._entries[email]
                logger.debug("Expired verification code reaped for: %s", email)
                return False
            return True
