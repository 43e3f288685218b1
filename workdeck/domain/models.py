"""
Domain models - Accounts, roles, and pending registrations.

Role / Verification State Machine
=================================

    [no account] --begin_registration--> [pending: NewAccount] --verify--> [account, 1 role, verified]
    [account lacks R] --begin_registration(R)--> [pending: AddRole] --verify--> [account, +R]
    [account holds R] --begin_registration(R)--> RoleAlreadyHeld (no state change)
    [no account] --oauth_login--> [account, role or PENDING, verified]
    [primary_role=PENDING] --oauth_login(R) / update_role(R)--> [primary_role=R, roles+=R]

PENDING is a placeholder, never a selectable role. Choosing a concrete role
replaces the placeholder in the role list.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Role tags an account can hold."""

    FREELANCER = "freelancer"
    CLIENT = "client"
    PENDING = "pending"


SELECTABLE_ROLES = (Role.FREELANCER, Role.CLIENT)


class OAuthProvider(str, Enum):
    """Identity providers an account can be linked to."""

    GOOGLE = "google"
    GITHUB = "github"


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


@dataclass(frozen=True)
class NewAccount:
    """Staged data for an account that does not exist yet."""

    name: str
    password: str = field(repr=False)
    role: Role
    location: str = ""


@dataclass(frozen=True)
class AddRole:
    """Staged data for adding a role to an existing account."""

    role: Role
    account_id: UUID
    name: str = ""
    location: str = ""


StagedPayload = NewAccount | AddRole


@dataclass
class PendingRegistration:
    """Short-lived verification record keyed by normalized email."""

    email: str
    otp: str
    otp_expires: datetime
    staged_payload: StagedPayload
    created_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.otp_expires


# Account fields a profile update may write; roles and credentials have
# their own atomic operations
PROFILE_FIELDS = frozenset(
    {
        "name",
        "location",
        "avatar",
        "company_name",
        "company_size",
        "industry",
        "website",
        "skills",
        "experience",
        "hourly_rate",
        "title",
        "bio",
    }
)


@dataclass
class Account:
    """Durable user account."""

    email: str
    name: str = ""
    password_hash: str | None = field(default=None, repr=False)
    roles: list[Role] = field(default_factory=list)
    primary_role: Role = Role.PENDING
    location: str = ""
    is_verified: bool = False
    oauth_ids: dict[OAuthProvider, str] = field(default_factory=dict)
    avatar: str | None = None

    # Client profile
    company_name: str | None = None
    company_size: str | None = None
    industry: str | None = None
    website: str | None = None

    # Freelancer profile
    skills: list[str] = field(default_factory=list)
    experience: str | None = None
    hourly_rate: float | None = None
    title: str | None = None
    bio: str | None = None

    id: UUID | None = None

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def add_role(self, role: Role) -> bool:
        """
        Append a role if absent, dropping the PENDING placeholder.

        Returns:
            True if the role list changed
        """
        if role in self.roles:
            return False
        self.roles = [r for r in self.roles if r is not Role.PENDING]
        self.roles.append(role)
        return True

    def link_provider(self, provider: OAuthProvider, subject: str) -> bool:
        """
        Record the provider subject id if the provider slot is empty.

        Returns:
            True if the slot was filled by this call
        """
        if self.oauth_ids.get(provider):
            return False
        self.oauth_ids[provider] = subject
        return True

    def is_profile_complete(self) -> bool:
        """Whether the profile for the current primary role has its required fields."""
        if self.primary_role is Role.CLIENT:
            return bool(self.company_size)
        if self.primary_role is Role.FREELANCER:
            return bool(self.skills) and self.hourly_rate is not None
        return False
