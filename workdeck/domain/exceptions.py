"""
Domain exceptions - Semantic error types for accounts and registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
The four top-level categories map one-to-one onto API status codes.
"""


class AuthError(Exception):
    """Base class for authentication domain errors."""

    pass


class InvalidInput(AuthError):
    """Missing, malformed, or unacceptable input."""

    pass


class InvalidRole(InvalidInput):
    """Role is not one of the selectable role tags."""

    pass


class InvalidOrExpiredCode(InvalidInput):
    """Verification code mismatch or expiry (deliberately indistinguishable)."""

    pass


class RoleNotHeld(InvalidInput):
    """Account does not hold the requested role."""

    pass


class Unauthorized(AuthError):
    """Caller could not be authenticated."""

    pass


class InvalidCredentials(Unauthorized):
    """Unknown email, missing local password, or password mismatch."""

    pass


class EmailNotVerified(Unauthorized):
    """Account exists but its email address was never confirmed."""

    pass


class NotFound(AuthError):
    """Referenced record does not exist."""

    pass


class PendingRegistrationNotFound(NotFound):
    """No pending registration for this email (never started, consumed, or purged)."""

    pass


class AccountNotFound(NotFound):
    """No account for this email or id."""

    pass


class Conflict(AuthError):
    """Operation collides with existing state."""

    pass


class RoleAlreadyHeld(Conflict):
    """Account already holds the role being registered."""

    pass


class EmailAlreadyRegistered(Conflict):
    """Store rejected an account create because the email is taken."""

    pass
