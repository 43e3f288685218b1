"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from .models import Account, OAuthProvider, PendingRegistration, Role


class PendingRegistrationRepository(Protocol):
    """Port interface for pending registration persistence."""

    def find(self, email: str) -> PendingRegistration | None:
        """Return the pending registration for a normalized email, if any."""
        ...

    def upsert(self, pending: PendingRegistration) -> PendingRegistration:
        """
        Create or fully replace the pending registration for pending.email.

        At most one record exists per email; a replaced record loses its
        previous code, expiry, and staged payload.
        """
        ...

    def refresh_code(self, email: str, otp: str, otp_expires: datetime) -> PendingRegistration | None:
        """
        Replace code and expiry in place, keeping the staged payload.

        Returns:
            Updated record, or None if no record exists for email
        """
        ...

    def consume(self, email: str, otp: str) -> PendingRegistration | None:
        """
        Atomically delete the record if it still carries otp.

        Exactly one concurrent caller receives the record; the others get None.
        """
        ...

    def purge_expired(self, max_age_seconds: int) -> int:
        """Delete records older than max_age_seconds. Returns the number removed."""
        ...


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def find_by_email(self, email: str) -> Account | None:
        ...

    def find_by_id(self, account_id: UUID) -> Account | None:
        ...

    def create(self, account: Account) -> Account:
        """
        Insert a new account and return it with its id assigned.

        Raises:
            EmailAlreadyRegistered: If the email is already taken
        """
        ...

    def add_role(self, account_id: UUID, role: Role) -> Account | None:
        """
        Atomically append role unless already present.

        Returns:
            Account after the update, or None if the account does not exist
        """
        ...

    def update_fields(self, account_id: UUID, changes: dict[str, Any]) -> Account | None:
        """
        Write only the named profile columns; roles and credentials are untouched.

        Returns:
            Account after the update, or None if the account does not exist

        Raises:
            ValueError: If changes names a column that is not a profile field
        """
        ...

    def link_provider(self, account_id: UUID, provider: OAuthProvider, subject: str) -> Account | None:
        """
        Atomically fill the provider slot if it is still empty.

        Returns:
            Account after the update, or None if the account does not exist
        """
        ...

    def set_primary_role(self, account_id: UUID, role: Role) -> Account | None:
        """
        Atomically set the primary role, only if the account holds role.

        Returns:
            Updated account, or None if the account is missing or lacks role
        """
        ...


class PasswordHasher(Protocol):
    """Port interface for password hashing."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, hashed: str | None) -> bool:
        """Compare in constant time; a missing hash never verifies."""
        ...


class TokenIssuer(Protocol):
    """Port interface for bearer token issuance."""

    def issue(self, account_id: UUID) -> str:
        ...

    def decode(self, token: str) -> UUID | None:
        """Return the account id carried by a valid token, None otherwise."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, email: str, subject: str, body: str) -> None:
        """
        Deliver a plain-text message.

        Args:
            email: Recipient email address
            subject: Message subject line
            body: Plain-text body
        """
        ...
