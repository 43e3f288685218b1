"""
Domain layer - Pure business logic with zero framework imports.

This package contains the account, role, and verification state machine.
It defines its own port interfaces for infrastructure abstraction, so
adapters can be swapped without touching business rules.
"""

from .accounts import (
    AccountService,
    AuthSession,
    OAuthSession,
    RegistrationCompleted,
    RegistrationStarted,
    parse_role,
)
from .exceptions import (
    AccountNotFound,
    AuthError,
    Conflict,
    EmailAlreadyRegistered,
    EmailNotVerified,
    InvalidCredentials,
    InvalidInput,
    InvalidOrExpiredCode,
    InvalidRole,
    NotFound,
    PendingRegistrationNotFound,
    RoleAlreadyHeld,
    RoleNotHeld,
    Unauthorized,
)
from .models import (
    Account,
    AddRole,
    NewAccount,
    OAuthProvider,
    PendingRegistration,
    Role,
    StagedPayload,
    normalize_email,
)
from .pending import PendingRegistrationManager
from .ports import (
    AccountRepository,
    EmailSender,
    PasswordHasher,
    PendingRegistrationRepository,
    TokenIssuer,
)

__all__ = [
    "Account",
    "AccountNotFound",
    "AccountRepository",
    "AccountService",
    "AddRole",
    "AuthError",
    "AuthSession",
    "Conflict",
    "EmailAlreadyRegistered",
    "EmailNotVerified",
    "EmailSender",
    "InvalidCredentials",
    "InvalidInput",
    "InvalidOrExpiredCode",
    "InvalidRole",
    "NewAccount",
    "NotFound",
    "OAuthProvider",
    "OAuthSession",
    "PasswordHasher",
    "PendingRegistration",
    "PendingRegistrationManager",
    "PendingRegistrationNotFound",
    "PendingRegistrationRepository",
    "RegistrationCompleted",
    "RegistrationStarted",
    "Role",
    "RoleAlreadyHeld",
    "RoleNotHeld",
    "StagedPayload",
    "TokenIssuer",
    "Unauthorized",
    "normalize_email",
    "parse_role",
]
