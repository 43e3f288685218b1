"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory repository fakes and a controllable clock for domain tests
- Real bcrypt/JWT adapters tuned for speed
- A PostgreSQL connection pool that skips when the database is unreachable
"""

import copy
import logging
from collections.abc import Callable, Generator
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from workdeck.adapters.repository.postgres import run_migrations
from workdeck.adapters.security import BcryptPasswordHasher, JwtTokenIssuer
from workdeck.config.settings import get_settings
from workdeck.domain.accounts import AccountService
from workdeck.domain.exceptions import EmailAlreadyRegistered
from workdeck.domain.models import PROFILE_FIELDS, Account, OAuthProvider, PendingRegistration, Role
from workdeck.domain.pending import PendingRegistrationManager

TEST_JWT_SECRET = "test-secret-key-for-unit-tests-only"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemoryPendingRegistrationRepository:
    """Dict-backed PendingRegistrationRepository with the same contract as PostgreSQL."""

    def __init__(self, clock: Callable[[], datetime]) -> None:
        self.records: dict[str, PendingRegistration] = {}
        self._clock = clock

    def find(self, email: str) -> PendingRegistration | None:
        record = self.records.get(email)
        return replace(record) if record is not None else None

    def upsert(self, pending: PendingRegistration) -> PendingRegistration:
        stored = replace(pending, created_at=self._clock())
        self.records[pending.email] = stored
        return replace(stored)

    def refresh_code(self, email: str, otp: str, otp_expires: datetime) -> PendingRegistration | None:
        record = self.records.get(email)
        if record is None:
            return None
        record.otp = otp
        record.otp_expires = otp_expires
        record.created_at = self._clock()
        return replace(record)

    def consume(self, email: str, otp: str) -> PendingRegistration | None:
        record = self.records.get(email)
        if record is None or record.otp != otp:
            return None
        return self.records.pop(email)

    def purge_expired(self, max_age_seconds: int) -> int:
        cutoff = self._clock() - timedelta(seconds=max_age_seconds)
        stale = [email for email, r in self.records.items() if r.created_at < cutoff]
        for email in stale:
            del self.records[email]
        return len(stale)


class InMemoryAccountRepository:
    """Dict-backed AccountRepository; stores copies so tests see only written state."""

    def __init__(self) -> None:
        self.accounts: dict[UUID, Account] = {}

    def find_by_email(self, email: str) -> Account | None:
        for account in self.accounts.values():
            if account.email == email:
                return copy.deepcopy(account)
        return None

    def find_by_id(self, account_id: UUID) -> Account | None:
        account = self.accounts.get(account_id)
        return copy.deepcopy(account) if account is not None else None

    def create(self, account: Account) -> Account:
        if any(a.email == account.email for a in self.accounts.values()):
            raise EmailAlreadyRegistered("An account with this email already exists")
        stored = copy.deepcopy(account)
        stored.id = uuid4()
        self.accounts[stored.id] = stored
        return copy.deepcopy(stored)

    def update_fields(self, account_id: UUID, changes: dict[str, Any]) -> Account | None:
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Not profile fields: {sorted(unknown)}")
        account = self.accounts.get(account_id)
        if account is None:
            return None
        for field_name, value in changes.items():
            setattr(account, field_name, copy.deepcopy(value))
        return copy.deepcopy(account)

    def link_provider(self, account_id: UUID, provider: OAuthProvider, subject: str) -> Account | None:
        account = self.accounts.get(account_id)
        if account is None:
            return None
        account.link_provider(provider, subject)
        return copy.deepcopy(account)

    def set_primary_role(self, account_id: UUID, role: Role) -> Account | None:
        account = self.accounts.get(account_id)
        if account is None or not account.has_role(role):
            return None
        account.primary_role = role
        return copy.deepcopy(account)

    def add_role(self, account_id: UUID, role: Role) -> Account | None:
        account = self.accounts.get(account_id)
        if account is None:
            return None
        account.add_role(role)
        return copy.deepcopy(account)


class RecordingEmailSender:
    """EmailSender that keeps every message it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def send(self, email: str, subject: str, body: str) -> None:
        self.sent.append((email, subject, body))


class FailingEmailSender:
    def send(self, email: str, subject: str, body: str) -> None:
        raise ConnectionError("SMTP relay unreachable")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def pending_repo(clock: FakeClock) -> InMemoryPendingRegistrationRepository:
    return InMemoryPendingRegistrationRepository(clock)


@pytest.fixture
def account_repo() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def password_hasher() -> BcryptPasswordHasher:
    # Minimum bcrypt cost keeps the suite fast
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def token_issuer() -> JwtTokenIssuer:
    return JwtTokenIssuer(secret_key=TEST_JWT_SECRET, expires_minutes=30)


@pytest.fixture
def manager(
    pending_repo: InMemoryPendingRegistrationRepository,
    email_sender: RecordingEmailSender,
    clock: FakeClock,
) -> PendingRegistrationManager:
    return PendingRegistrationManager(
        repository=pending_repo, email_sender=email_sender, clock=clock
    )


@pytest.fixture
def service(
    account_repo: InMemoryAccountRepository,
    manager: PendingRegistrationManager,
    password_hasher: BcryptPasswordHasher,
    token_issuer: JwtTokenIssuer,
) -> AccountService:
    return AccountService(
        accounts=account_repo,
        pending=manager,
        password_hasher=password_hasher,
        token_issuer=token_issuer,
    )


@pytest.fixture
def make_account(
    account_repo: InMemoryAccountRepository, password_hasher: BcryptPasswordHasher
) -> Callable[..., Account]:
    """Factory for accounts stored directly in the in-memory repository."""

    def _make(
        email: str = "existing@example.com",
        roles: tuple[Role, ...] = (Role.CLIENT,),
        primary_role: Role | None = None,
        password: str | None = "Secret123",
        **fields: object,
    ) -> Account:
        account = Account(
            email=email,
            name=fields.pop("name", "Existing User"),
            password_hash=password_hasher.hash(password) if password is not None else None,
            roles=list(roles),
            primary_role=primary_role or roles[0],
            location=fields.pop("location", "Lisbon"),
            is_verified=fields.pop("is_verified", True),
            **fields,
        )
        return account_repo.create(account)

    return _make


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool for integration and adversarial tests.

    Skips dependent tests when PostgreSQL is not running.
    """
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=5)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    logging.getLogger(__name__).info("Running migrations for integration tests")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pg_pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Empty both tables before each database test."""
    with pg_pool.connection() as conn:
        conn.execute("DELETE FROM pending_registrations")
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield pg_pool
