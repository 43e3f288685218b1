"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
Process-scoped resources (connection pool, background email sender) are
created in the application lifespan and read from app.state.
"""

from datetime import timedelta
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from workdeck.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresPendingRegistrationRepository,
)
from workdeck.adapters.security import BcryptPasswordHasher, JwtTokenIssuer
from workdeck.config.settings import Settings, get_settings
from workdeck.domain.accounts import AccountService
from workdeck.domain.pending import PendingRegistrationManager
from workdeck.domain.ports import EmailSender

bearer_scheme = HTTPBearer(auto_error=False)


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_email_sender(request: Request) -> EmailSender:
    """Get the process-wide email sender created at startup."""
    return request.app.state.email_sender


def get_token_issuer(settings: Settings = Depends(get_settings)) -> JwtTokenIssuer:
    return JwtTokenIssuer(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_expire_minutes,
    )


def get_pending_manager(
    request: Request, settings: Settings = Depends(get_settings)
) -> PendingRegistrationManager:
    return PendingRegistrationManager(
        repository=PostgresPendingRegistrationRepository(get_pool(request)),
        email_sender=get_email_sender(request),
        ttl=timedelta(seconds=settings.otp_ttl_seconds),
    )


def get_account_service(
    request: Request,
    settings: Settings = Depends(get_settings),
    pending: PendingRegistrationManager = Depends(get_pending_manager),
    token_issuer: JwtTokenIssuer = Depends(get_token_issuer),
) -> AccountService:
    """
    Create account service with injected dependencies.

    Wires together repositories, password hasher, token issuer, and the
    pending registration manager.
    """
    return AccountService(
        accounts=PostgresAccountRepository(get_pool(request)),
        pending=pending,
        password_hasher=BcryptPasswordHasher(rounds=settings.bcrypt_cost),
        token_issuer=token_issuer,
        allow_unverified_login=settings.allow_unverified_login,
    )


def get_current_account_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    token_issuer: JwtTokenIssuer = Depends(get_token_issuer),
) -> UUID:
    """
    Resolve the caller's account id from the bearer token.

    Returns 401 for a missing, malformed, expired, or forged token.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    account_id = token_issuer.decode(credentials.credentials)
    if account_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account_id
