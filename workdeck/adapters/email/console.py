"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging messages for local development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Used when no mail provider is configured.
    """

    def send(self, email: str, subject: str, body: str) -> None:
        """
        Log the message instead of delivering it.

        The body carries the verification code, so it is logged at INFO level
        to be visible in container logs.
        """
        logger.info("[VERIFICATION] Email: %s Subject: %s\n%s", email, subject, body)
