"""
Pending registration manager - Verification code lifecycle.

A pending registration binds a normalized email to a one-time code and the
staged data that verification will commit. There is at most one per email:

    initiate  -> create or fully replace (new code, payload, expiry)
    resend    -> new code and expiry in place, payload untouched
    verify    -> check code and expiry, then consume exactly once

Wrong codes and expired codes raise the same error so callers cannot tell
them apart.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .exceptions import InvalidOrExpiredCode, PendingRegistrationNotFound
from .models import AddRole, NewAccount, PendingRegistration, StagedPayload, normalize_email
from .ports import EmailSender, PendingRegistrationRepository

logger = logging.getLogger(__name__)

DEFAULT_OTP_TTL = timedelta(minutes=10)
OTP_BYTES = 3


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_otp() -> str:
    """
    Generate a 6-character uppercase hex verification code.

    Uses secrets module for cryptographic randomness.
    """
    return secrets.token_hex(OTP_BYTES).upper()


@dataclass
class PendingRegistrationManager:
    """Creates, refreshes, validates, and consumes pending registrations."""

    repository: PendingRegistrationRepository
    email_sender: EmailSender
    ttl: timedelta = DEFAULT_OTP_TTL
    clock: Callable[[], datetime] = field(default=utcnow)

    def initiate(self, email: str, payload: StagedPayload) -> PendingRegistration:
        """
        Stage payload under email and send a fresh verification code.

        Any previous pending registration for the email is replaced.
        """
        pending = PendingRegistration(
            email=normalize_email(email),
            otp=generate_otp(),
            otp_expires=self.clock() + self.ttl,
            staged_payload=payload,
        )
        pending = self.repository.upsert(pending)
        self._send_code(pending, resent=False)
        return pending

    def resend(self, email: str) -> PendingRegistration:
        """
        Issue a new code for an existing pending registration.

        Raises:
            PendingRegistrationNotFound: If nothing is pending for email
        """
        normalized_email = normalize_email(email)
        pending = self.repository.refresh_code(
            normalized_email, generate_otp(), self.clock() + self.ttl
        )
        if pending is None:
            raise PendingRegistrationNotFound("Registration not found")
        self._send_code(pending, resent=True)
        return pending

    def verify(self, email: str, otp: str) -> StagedPayload:
        """
        Check the code and consume the pending registration.

        Returns:
            The staged payload to commit

        Raises:
            PendingRegistrationNotFound: If nothing is pending, or a concurrent
                verification consumed it first
            InvalidOrExpiredCode: If the code is wrong or past its expiry
        """
        normalized_email = normalize_email(email)
        pending = self.repository.find(normalized_email)
        if pending is None:
            raise PendingRegistrationNotFound("Registration not found or expired")

        supplied = otp.strip().upper()
        code_valid = secrets.compare_digest(pending.otp.encode(), supplied.encode())
        if not code_valid or pending.is_expired(self.clock()):
            raise InvalidOrExpiredCode("Invalid or expired OTP")

        consumed = self.repository.consume(normalized_email, pending.otp)
        if consumed is None:
            raise PendingRegistrationNotFound("Registration not found or expired")
        return consumed.staged_payload

    def _send_code(self, pending: PendingRegistration, *, resent: bool) -> None:
        subject, body = _render_code_email(pending, resent=resent, ttl=self.ttl)
        try:
            self.email_sender.send(pending.email, subject, body)
        except Exception:
            # The code stays valid; the user can ask for a resend.
            logger.exception("Failed to send verification code to %s", pending.email)


def _render_code_email(
    pending: PendingRegistration, *, resent: bool, ttl: timedelta
) -> tuple[str, str]:
    minutes = int(ttl.total_seconds() // 60)
    footer = f"This code will expire in {minutes} minutes."

    if resent:
        return (
            "WorkDeck - Email Verification (Resent)",
            f"Your new verification code is: {pending.otp}\n\n{footer}\n",
        )

    match pending.staged_payload:
        case AddRole(role=role):
            return (
                "WorkDeck - Add New Role Verification",
                f"You're adding a {role.value} role to your existing WorkDeck account.\n\n"
                f"Your verification code is: {pending.otp}\n\n{footer}\n",
            )
        case NewAccount():
            return (
                "WorkDeck - Email Verification",
                f"Welcome to WorkDeck!\n\nYour email verification code is: {pending.otp}\n\n"
                f"{footer}\nIf you didn't request this, please ignore this email.\n",
            )
    raise TypeError(f"Unknown staged payload: {pending.staged_payload!r}")
