"""
PostgreSQL repository adapters - Implement the domain repository protocols.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design:
-------------------
No application-level locks are taken. Every invariant that two concurrent
requests could break is delegated to a single atomic statement:

1. **One pending registration per email**: primary key on email plus
   INSERT ... ON CONFLICT DO UPDATE.

2. **Verify exactly once**: DELETE ... WHERE email AND otp RETURNING. Only
   one transaction can delete the row; the rest see zero rows.

3. **Email uniqueness**: UNIQUE constraint on accounts.email. A racing
   INSERT fails with UniqueViolation, surfaced as EmailAlreadyRegistered.

4. **No duplicate roles**: conditional UPDATE that only appends when the
   role is not already in the array.

5. **No lost updates**: accounts are never written back whole. Every change is
   a targeted UPDATE of the columns it owns, so a role appended by a
   concurrent verification survives every other write.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from psycopg import errors, sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from workdeck.domain.exceptions import EmailAlreadyRegistered
from workdeck.domain.models import (
    PROFILE_FIELDS,
    Account,
    AddRole,
    NewAccount,
    OAuthProvider,
    PendingRegistration,
    Role,
    StagedPayload,
)

logger = logging.getLogger(__name__)

# Account column holding each provider's subject id
_PROVIDER_COLUMNS = {
    OAuthProvider.GOOGLE: "google_id",
    OAuthProvider.GITHUB: "github_id",
}


def payload_to_json(payload: StagedPayload) -> dict[str, Any]:
    """Serialize a staged payload with an explicit variant tag."""
    match payload:
        case NewAccount():
            return {
                "kind": "new_account",
                "name": payload.name,
                "password": payload.password,
                "role": payload.role.value,
                "location": payload.location,
            }
        case AddRole():
            return {
                "kind": "add_role",
                "role": payload.role.value,
                "account_id": str(payload.account_id),
                "name": payload.name,
                "location": payload.location,
            }
    raise TypeError(f"Unknown staged payload: {payload!r}")


def payload_from_json(data: dict[str, Any]) -> StagedPayload:
    """Inverse of payload_to_json."""
    kind = data.get("kind")
    if kind == "new_account":
        return NewAccount(
            name=data["name"],
            password=data["password"],
            role=Role(data["role"]),
            location=data.get("location", ""),
        )
    if kind == "add_role":
        return AddRole(
            role=Role(data["role"]),
            account_id=UUID(data["account_id"]),
            name=data.get("name", ""),
            location=data.get("location", ""),
        )
    raise ValueError(f"Unknown staged payload kind: {kind!r}")


def _pending_from_row(row: dict[str, Any]) -> PendingRegistration:
    return PendingRegistration(
        email=row["email"],
        otp=row["otp"],
        otp_expires=row["otp_expires"],
        staged_payload=payload_from_json(row["staged_payload"]),
        created_at=row["created_at"],
    )


def _account_from_row(row: dict[str, Any]) -> Account:
    return Account(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        password_hash=row["password_hash"],
        roles=[Role(role) for role in row["roles"]],
        primary_role=Role(row["primary_role"]),
        location=row["location"],
        is_verified=row["is_verified"],
        oauth_ids={
            provider: row[column]
            for provider, column in _PROVIDER_COLUMNS.items()
            if row[column]
        },
        avatar=row["avatar"],
        company_name=row["company_name"],
        company_size=row["company_size"],
        industry=row["industry"],
        website=row["website"],
        skills=list(row["skills"]),
        experience=row["experience"],
        hourly_rate=row["hourly_rate"],
        title=row["title"],
        bio=row["bio"],
    )


def _account_params(account: Account) -> dict[str, Any]:
    # Enum members are passed by value so they land in TEXT columns as tags
    params: dict[str, Any] = {
        "id": account.id,
        "email": account.email,
        "name": account.name,
        "password_hash": account.password_hash,
        "roles": [role.value for role in account.roles],
        "primary_role": account.primary_role.value,
        "location": account.location,
        "is_verified": account.is_verified,
        "avatar": account.avatar,
        "company_name": account.company_name,
        "company_size": account.company_size,
        "industry": account.industry,
        "website": account.website,
        "skills": list(account.skills),
        "experience": account.experience,
        "hourly_rate": account.hourly_rate,
        "title": account.title,
        "bio": account.bio,
    }
    for provider, column in _PROVIDER_COLUMNS.items():
        params[column] = account.oauth_ids.get(provider)
    return params


class PostgresPendingRegistrationRepository:
    """
    Implements PendingRegistrationRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def find(self, email: str) -> PendingRegistration | None:
        query = """
            SELECT email, otp, otp_expires, staged_payload, created_at
            FROM pending_registrations
            WHERE email = %s
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (email,))
            row = cursor.fetchone()
        return _pending_from_row(row) if row is not None else None

    def upsert(self, pending: PendingRegistration) -> PendingRegistration:
        """
        Create or fully replace the pending registration for an email.

        created_at is reset so the purge window restarts with the new code.
        """
        query = """
            INSERT INTO pending_registrations (email, otp, otp_expires, staged_payload, created_at)
            VALUES (%s, %s, %s, %s, NOW())
            ON CONFLICT (email) DO UPDATE
            SET otp = EXCLUDED.otp,
                otp_expires = EXCLUDED.otp_expires,
                staged_payload = EXCLUDED.staged_payload,
                created_at = NOW()
            RETURNING email, otp, otp_expires, staged_payload, created_at
        """
        params = (
            pending.email,
            pending.otp,
            pending.otp_expires,
            Jsonb(payload_to_json(pending.staged_payload)),
        )
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            conn.commit()
        return _pending_from_row(row)

    def refresh_code(
        self, email: str, otp: str, otp_expires: datetime
    ) -> PendingRegistration | None:
        query = """
            UPDATE pending_registrations
            SET otp = %s, otp_expires = %s, created_at = NOW()
            WHERE email = %s
            RETURNING email, otp, otp_expires, staged_payload, created_at
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (otp, otp_expires, email))
            row = cursor.fetchone()
            conn.commit()
        return _pending_from_row(row) if row is not None else None

    def consume(self, email: str, otp: str) -> PendingRegistration | None:
        """
        Delete and return the record if it still carries otp.

        Matching on otp as well as email means a resend between the read and
        this delete makes the stale code lose.
        """
        query = """
            DELETE FROM pending_registrations
            WHERE email = %s AND otp = %s
            RETURNING email, otp, otp_expires, staged_payload, created_at
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (email, otp))
            row = cursor.fetchone()
            conn.commit()
        return _pending_from_row(row) if row is not None else None

    def purge_expired(self, max_age_seconds: int) -> int:
        query = """
            DELETE FROM pending_registrations
            WHERE created_at < NOW() - %s * INTERVAL '1 second'
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, (max_age_seconds,))
            conn.commit()
            return cursor.rowcount


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def find_by_email(self, email: str) -> Account | None:
        return self._fetch_one("SELECT * FROM accounts WHERE email = %s", (email,))

    def find_by_id(self, account_id: UUID) -> Account | None:
        return self._fetch_one("SELECT * FROM accounts WHERE id = %s", (account_id,))

    def create(self, account: Account) -> Account:
        """
        Insert a new account.

        Raises:
            EmailAlreadyRegistered: If the UNIQUE constraint on email fires
        """
        query = """
            INSERT INTO accounts (
                email, name, password_hash, roles, primary_role, location, is_verified,
                google_id, github_id, avatar, company_name, company_size, industry, website,
                skills, experience, hourly_rate, title, bio
            )
            VALUES (
                %(email)s, %(name)s, %(password_hash)s, %(roles)s, %(primary_role)s,
                %(location)s, %(is_verified)s, %(google_id)s, %(github_id)s, %(avatar)s,
                %(company_name)s, %(company_size)s, %(industry)s, %(website)s,
                %(skills)s, %(experience)s, %(hourly_rate)s, %(title)s, %(bio)s
            )
            RETURNING *
        """
        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, _account_params(account))
                row = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation:
            raise EmailAlreadyRegistered("An account with this email already exists") from None
        return _account_from_row(row)

    def update_fields(self, account_id: UUID, changes: dict[str, Any]) -> Account | None:
        """
        Write only the named profile columns.

        Roles, primary role, and credentials are never written here, so a
        concurrent role addition cannot be undone by a profile update.
        """
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Not profile fields: {sorted(unknown)}")
        if not changes:
            return self.find_by_id(account_id)

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder(column))
            for column in sorted(changes)
        )
        query = sql.SQL(
            "UPDATE accounts SET {}, updated_at = NOW() WHERE id = %(id)s RETURNING *"
        ).format(assignments)
        params = {**changes, "id": account_id}
        if "skills" in params:
            params["skills"] = list(params["skills"])
        return self._update_one(query, params)

    def link_provider(
        self, account_id: UUID, provider: OAuthProvider, subject: str
    ) -> Account | None:
        """Fill the provider column only while it is still NULL."""
        query = sql.SQL(
            "UPDATE accounts SET {column} = %(subject)s, updated_at = NOW() "
            "WHERE id = %(id)s AND {column} IS NULL RETURNING *"
        ).format(column=sql.Identifier(_PROVIDER_COLUMNS[provider]))
        account = self._update_one(query, {"id": account_id, "subject": subject})
        if account is not None:
            return account
        # Zero rows: either the slot was already filled or the account is gone
        return self.find_by_id(account_id)

    def set_primary_role(self, account_id: UUID, role: Role) -> Account | None:
        """Set primary_role in the same statement that checks the role is held."""
        query = """
            UPDATE accounts
            SET primary_role = %(role)s, updated_at = NOW()
            WHERE id = %(id)s AND %(role)s = ANY(roles)
            RETURNING *
        """
        return self._update_one(query, {"id": account_id, "role": role.value})

    def add_role(self, account_id: UUID, role: Role) -> Account | None:
        """
        Append role unless already held, dropping the 'pending' placeholder.

        Returns the account either way; None only if it does not exist.
        """
        query = """
            UPDATE accounts
            SET roles = array_append(array_remove(roles, 'pending'), %(role)s),
                updated_at = NOW()
            WHERE id = %(id)s AND NOT (%(role)s = ANY(roles))
            RETURNING *
        """
        account = self._update_one(query, {"id": account_id, "role": role.value})
        if account is not None:
            return account
        # Zero rows: either the role was already held or the account is gone
        return self.find_by_id(account_id)

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> Account | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
        return _account_from_row(row) if row is not None else None

    def _update_one(self, query: str | sql.Composed, params: dict[str, Any]) -> Account | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            conn.commit()
        return _account_from_row(row) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: workdeck/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
