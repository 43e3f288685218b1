"""Repository adapters - Database implementations."""

from .postgres import PostgresAccountRepository, PostgresPendingRegistrationRepository, run_migrations

__all__ = ["PostgresAccountRepository", "PostgresPendingRegistrationRepository", "run_migrations"]
