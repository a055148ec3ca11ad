"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging rendered emails for development and demos.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Nothing leaves the process; the email is written to the log instead.
    """

    def __init__(self, from_address: str = "noreply@localhost") -> None:
        self.from_address = from_address

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Log the email at INFO level (simulates delivery).

        Args:
            to: Recipient email address (normalized by domain layer)
            subject: Subject line
            body: Rendered plain-text body
        """
        logger.info("[EMAIL] From: %s To: %s Subject: %s\n%s", self.from_address, to, subject, body)
