"""
Account service - Registration, login, OAuth linking, and role resolution.

This module owns the durable account record. Registration is two-phase:
begin_registration stages data through the PendingRegistrationManager and
verify_registration commits it once the emailed code checks out. A second
role on an existing account goes through the same two phases.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from .exceptions import (
    AccountNotFound,
    EmailAlreadyRegistered,
    EmailNotVerified,
    InvalidCredentials,
    InvalidInput,
    InvalidRole,
    RoleAlreadyHeld,
    RoleNotHeld,
)
from .models import (
    SELECTABLE_ROLES,
    Account,
    AddRole,
    NewAccount,
    OAuthProvider,
    Role,
    StagedPayload,
    normalize_email,
)
from .pending import PendingRegistrationManager
from .ports import AccountRepository, PasswordHasher, TokenIssuer
from .profile import clean_text, normalize_skills, parse_hourly_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationStarted:
    email: str
    role: Role
    is_adding_role: bool


@dataclass(frozen=True)
class RegistrationCompleted:
    account: Account
    is_adding_role: bool
    new_role: Role | None = None


@dataclass(frozen=True)
class AuthSession:
    token: str
    account: Account


@dataclass(frozen=True)
class OAuthSession:
    token: str
    account: Account
    is_new_user: bool
    needs_role_selection: bool
    needs_profile_completion: bool


def parse_role(value: str | Role) -> Role:
    """
    Parse a selectable role tag.

    Raises:
        InvalidRole: If value is not 'freelancer' or 'client'
    """
    try:
        role = Role(value)
    except ValueError:
        raise InvalidRole("Invalid role. Must be 'freelancer' or 'client'") from None
    if role not in SELECTABLE_ROLES:
        raise InvalidRole("Invalid role. Must be 'freelancer' or 'client'")
    return role


@dataclass
class AccountService:
    """
    Domain service for accounts and roles.

    Orchestrates registration staging and commit, credential checks,
    OAuth linking, primary-role selection, and profile completion.
    """

    accounts: AccountRepository
    pending: PendingRegistrationManager
    password_hasher: PasswordHasher
    token_issuer: TokenIssuer
    allow_unverified_login: bool = False

    # -- Registration -----------------------------------------------------

    def begin_registration(
        self, name: str, email: str, password: str, role: str | Role, location: str = ""
    ) -> RegistrationStarted:
        """
        Stage a registration and email a verification code.

        New emails stage a NewAccount. Existing accounts that lack the role
        stage an AddRole carrying the account's own name and location; the
        password is not re-collected in that case.

        Raises:
            InvalidRole: If role is not selectable
            RoleAlreadyHeld: If the existing account already holds role
        """
        selected = parse_role(role)
        normalized_email = normalize_email(email)

        existing = self.accounts.find_by_email(normalized_email)
        if existing is None:
            payload: StagedPayload = NewAccount(
                name=name.strip(),
                password=password,
                role=selected,
                location=(location or "").strip(),
            )
        elif existing.has_role(selected):
            raise RoleAlreadyHeld(
                f"You already have a {selected.value} account. Please login instead."
            )
        else:
            payload = AddRole(
                role=selected,
                account_id=existing.id,
                name=existing.name,
                location=existing.location,
            )

        self.pending.initiate(normalized_email, payload)
        is_adding_role = isinstance(payload, AddRole)
        logger.info(
            "Registration staged for %s (role=%s, adding_role=%s)",
            normalized_email,
            selected.value,
            is_adding_role,
        )
        return RegistrationStarted(
            email=normalized_email, role=selected, is_adding_role=is_adding_role
        )

    def verify_registration(self, email: str, otp: str) -> RegistrationCompleted:
        """Check the emailed code, then commit the staged payload."""
        normalized_email = normalize_email(email)
        payload = self.pending.verify(normalized_email, otp)
        return self.complete_registration(normalized_email, payload)

    def complete_registration(self, email: str, payload: StagedPayload) -> RegistrationCompleted:
        """
        Commit a staged payload returned by a successful verification.

        Raises:
            AccountNotFound: If an AddRole target account no longer exists
            EmailAlreadyRegistered: If a concurrent registration created the
                account first
        """
        match payload:
            case AddRole(role=role, account_id=account_id):
                account = self.accounts.add_role(account_id, role)
                if account is None:
                    raise AccountNotFound("User not found")
                logger.info("Role %s added to account %s", role.value, account_id)
                return RegistrationCompleted(account=account, is_adding_role=True, new_role=role)
            case NewAccount(name=name, password=password, role=role, location=location):
                account = self.accounts.create(
                    Account(
                        email=normalize_email(email),
                        name=name,
                        password_hash=self.password_hasher.hash(password),
                        roles=[role],
                        primary_role=role,
                        location=location,
                        is_verified=True,
                    )
                )
                logger.info("Account %s created with role %s", account.id, role.value)
                return RegistrationCompleted(account=account, is_adding_role=False)
        raise TypeError(f"Unknown staged payload: {payload!r}")

    # -- Login ------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthSession:
        """
        Check email and password and issue a bearer token.

        Raises:
            InvalidCredentials: Unknown email, no local password, or mismatch
            EmailNotVerified: Account unverified and the policy rejects it
        """
        account = self.accounts.find_by_email(normalize_email(email))
        # Always run the hash comparison so unknown emails take as long as known ones
        password_valid = self.password_hasher.verify(
            password, account.password_hash if account is not None else None
        )
        if account is None or not password_valid:
            raise InvalidCredentials("Invalid credentials")
        if not account.is_verified and not self.allow_unverified_login:
            raise EmailNotVerified("Please verify your email before logging in")
        return self._session(account)

    def oauth_login(
        self,
        email: str,
        name: str,
        provider: str | OAuthProvider,
        provider_id: str,
        role: str | Role | None = None,
    ) -> OAuthSession:
        """
        Sign in through an identity provider, linking or creating the account.

        The provider has already proven ownership of the email, so created
        accounts are verified and have no local password.

        Raises:
            InvalidInput: Unknown provider, blank provider id, or bad role
        """
        try:
            oauth_provider = OAuthProvider(provider)
        except ValueError:
            raise InvalidInput("Unsupported OAuth provider") from None
        subject = (provider_id or "").strip()
        if not subject:
            raise InvalidInput("Provider id is required")
        requested = parse_role(role) if role else None
        normalized_email = normalize_email(email)

        account = self.accounts.find_by_email(normalized_email)
        if account is None:
            try:
                created = self.accounts.create(
                    Account(
                        email=normalized_email,
                        name=(name or "").strip(),
                        roles=[requested or Role.PENDING],
                        primary_role=requested or Role.PENDING,
                        is_verified=True,
                        oauth_ids={oauth_provider: subject},
                    )
                )
            except EmailAlreadyRegistered:
                # Lost a concurrent create; link to the winner instead
                logger.info("Concurrent account creation for %s, linking instead", normalized_email)
                account = self.accounts.find_by_email(normalized_email)
                if account is None:
                    raise
            else:
                logger.info("Account %s created via %s", created.id, oauth_provider.value)
                return OAuthSession(
                    token=self.token_issuer.issue(created.id),
                    account=created,
                    is_new_user=True,
                    needs_role_selection=requested is None,
                    needs_profile_completion=requested is not None,
                )

        if not account.oauth_ids.get(oauth_provider):
            account = self._require(self.accounts.link_provider(account.id, oauth_provider, subject))

        needs_role_selection = False
        needs_profile_completion = False
        if account.primary_role is Role.PENDING:
            if requested is not None:
                account = self._select_role(account.id, requested)
                needs_profile_completion = True
            else:
                needs_role_selection = True
        else:
            needs_profile_completion = not account.is_profile_complete()

        return OAuthSession(
            token=self.token_issuer.issue(account.id),
            account=account,
            is_new_user=False,
            needs_role_selection=needs_role_selection,
            needs_profile_completion=needs_profile_completion,
        )

    # -- Roles ------------------------------------------------------------

    def switch_role(self, account_id: UUID, role: str | Role) -> Account:
        """
        Make one of the account's held roles the primary role.

        Raises:
            InvalidRole: If role is not selectable
            AccountNotFound: If the account does not exist
            RoleNotHeld: If the account does not hold role
        """
        selected = parse_role(role)
        account = self._get_by_id(account_id)
        if not account.has_role(selected):
            raise RoleNotHeld("You don't have access to this role")
        # Roles only grow, so a role held at load time is still held here
        return self._require(self.accounts.set_primary_role(account.id, selected))

    def update_role(self, email: str, role: str | Role) -> AuthSession:
        """Select the primary role during onboarding, adding it if needed."""
        selected = parse_role(role)
        account = self._get_by_email(email)
        return self._session(self._select_role(account.id, selected))

    # -- Profiles ---------------------------------------------------------

    def complete_client_profile(
        self,
        email: str,
        company_name: str,
        company_size: str,
        industry: str | None = None,
        website: str | None = None,
    ) -> AuthSession:
        """
        Record the client company details and re-issue a token.

        Raises:
            InvalidInput: If company name or company size is blank
            AccountNotFound: If no account has this email
        """
        company_name = clean_text(company_name)
        company_size = clean_text(company_size)
        if not company_name or not company_size:
            raise InvalidInput("Company name and company size are required")

        changes: dict[str, object] = {"company_name": company_name, "company_size": company_size}
        if clean_text(industry):
            changes["industry"] = clean_text(industry)
        if clean_text(website):
            changes["website"] = clean_text(website)
        account = self._get_by_email(email)
        return self._session(self._update_fields(account.id, changes))

    def complete_freelancer_profile(
        self,
        email: str,
        skills: str | Iterable[str] | None = None,
        experience: str | None = None,
        hourly_rate: float | str | None = None,
        bio: str | None = None,
        title: str | None = None,
    ) -> AuthSession:
        """
        Fill in freelancer profile fields; absent fields are left untouched.

        Inputs are normalized before the account is loaded so that bad input
        is rejected without a store round-trip.
        """
        changes: dict[str, object] = {}
        normalized_skills = normalize_skills(skills) if skills else None
        if normalized_skills:
            changes["skills"] = normalized_skills
        if hourly_rate not in (None, ""):
            changes["hourly_rate"] = parse_hourly_rate(hourly_rate)
        for field_name, value in (("experience", experience), ("bio", bio), ("title", title)):
            if clean_text(value):
                changes[field_name] = clean_text(value)

        account = self._get_by_email(email)
        return self._session(self._update_fields(account.id, changes))

    def update_profile(
        self,
        account_id: UUID,
        name: str | None = None,
        bio: str | None = None,
        skills: str | Iterable[str] | None = None,
        location: str | None = None,
    ) -> Account:
        """
        Patch the caller's own profile; None leaves a field unchanged.

        Raises:
            InvalidInput: If skills is neither a string nor a list of strings
            AccountNotFound: If the account does not exist
        """
        changes: dict[str, object] = {}
        if skills is not None:
            changes["skills"] = normalize_skills(skills)
        if clean_text(name):
            changes["name"] = clean_text(name)
        if bio is not None:
            changes["bio"] = clean_text(bio)
        if location is not None:
            changes["location"] = location.strip()
        return self._update_fields(account_id, changes)

    # -- Helpers ----------------------------------------------------------

    def _session(self, account: Account) -> AuthSession:
        return AuthSession(token=self.token_issuer.issue(account.id), account=account)

    def _get_by_email(self, email: str) -> Account:
        account = self.accounts.find_by_email(normalize_email(email))
        if account is None:
            raise AccountNotFound("User not found")
        return account

    def _get_by_id(self, account_id: UUID) -> Account:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise AccountNotFound("User not found")
        return account

    def _require(self, account: Account | None) -> Account:
        # Repository writes return None when the account vanished mid-request
        if account is None:
            raise AccountNotFound("User not found")
        return account

    def _select_role(self, account_id: UUID, role: Role) -> Account:
        """Append role if missing, then make it primary; two atomic writes."""
        self._require(self.accounts.add_role(account_id, role))
        return self._require(self.accounts.set_primary_role(account_id, role))

    def _update_fields(self, account_id: UUID, changes: dict[str, object]) -> Account:
        return self._require(self.accounts.update_fields(account_id, changes))
