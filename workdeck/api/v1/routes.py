"""
API v1 routes.

Defines REST endpoints for registration, verification, login, OAuth sign-in,
role selection, and profile completion. Domain errors propagate to the
handlers in workdeck.api.errors.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from workdeck.api.dependencies import (
    get_account_service,
    get_current_account_id,
    get_pending_manager,
)
from workdeck.api.models import (
    CompleteFreelancerProfileRequest,
    CompleteProfileRequest,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OAuthLoginRequest,
    OAuthLoginResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    ResendOtpRequest,
    RoleResponse,
    SwitchRoleRequest,
    UpdateProfileRequest,
    UpdateRoleRequest,
    UserResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from workdeck.domain.accounts import AccountService
from workdeck.domain.pending import PendingRegistrationManager

auth_router = APIRouter(prefix="/auth", tags=["auth"])
users_router = APIRouter(prefix="/users", tags=["users"])

_BAD_REQUEST = {400: {"model": ErrorResponse, "description": "Invalid input"}}
_UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Not authenticated"}}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Not found"}}
_CONFLICT = {409: {"model": ErrorResponse, "description": "Conflicts with existing account state"}}


@auth_router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_BAD_REQUEST, **_CONFLICT},
    summary="Begin registration",
    description="Stage a new account, or a new role on an existing account, "
    "and email a verification code.",
)
def register(
    request_data: RegisterRequest,
    service: AccountService = Depends(get_account_service),
) -> RegisterResponse:
    started = service.begin_registration(
        name=request_data.name,
        email=request_data.email,
        password=request_data.password,
        role=request_data.role,
        location=request_data.location,
    )
    if started.is_adding_role:
        message = f"OTP sent to add {started.role.value} role to your existing account."
    else:
        message = "OTP sent to your email. Please verify to complete registration."
    return RegisterResponse(message=message, is_adding_role=started.is_adding_role)


@auth_router.post(
    "/verify-otp",
    response_model=VerifyOtpResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND, **_CONFLICT},
    summary="Verify emailed code",
    description="Consume the pending registration and create the account "
    "or add the staged role.",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    service: AccountService = Depends(get_account_service),
) -> VerifyOtpResponse:
    completed = service.verify_registration(request_data.email, request_data.otp)
    if completed.is_adding_role:
        return VerifyOtpResponse(
            message=f"{completed.new_role.value} role added successfully",
            is_adding_role=True,
            new_role=completed.new_role.value,
        )
    return VerifyOtpResponse(
        message="Email verified and account created successfully",
        is_adding_role=False,
    )


@auth_router.post(
    "/resend-otp",
    response_model=MessageResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Resend verification code",
)
def resend_otp(
    request_data: ResendOtpRequest,
    pending: PendingRegistrationManager = Depends(get_pending_manager),
) -> MessageResponse:
    pending.resend(request_data.email)
    return MessageResponse(message="New OTP sent to your email")


@auth_router.post(
    "/login",
    response_model=LoginResponse,
    responses={**_BAD_REQUEST, **_UNAUTHORIZED},
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    session = service.login(request_data.email, request_data.password)
    return LoginResponse(token=session.token, user=UserResponse.from_account(session.account))


@auth_router.post(
    "/oauth",
    response_model=OAuthLoginResponse,
    responses={**_BAD_REQUEST},
    summary="Sign in through an identity provider",
    description="Link the provider to an existing account or create a verified "
    "account, and report which onboarding step is still owed.",
)
def oauth_login(
    request_data: OAuthLoginRequest,
    service: AccountService = Depends(get_account_service),
) -> OAuthLoginResponse:
    session = service.oauth_login(
        email=request_data.email,
        name=request_data.name,
        provider=request_data.provider,
        provider_id=request_data.provider_id,
        role=request_data.role,
    )
    return OAuthLoginResponse(
        token=session.token,
        is_new_user=session.is_new_user,
        needs_role_selection=session.needs_role_selection,
        needs_profile_completion=session.needs_profile_completion,
        user=UserResponse.from_account(session.account),
    )


@auth_router.post(
    "/switch-role",
    response_model=RoleResponse,
    responses={**_BAD_REQUEST, **_UNAUTHORIZED, **_NOT_FOUND},
    summary="Switch the active role",
)
def switch_role(
    request_data: SwitchRoleRequest,
    account_id: UUID = Depends(get_current_account_id),
    service: AccountService = Depends(get_account_service),
) -> RoleResponse:
    account = service.switch_role(account_id, request_data.role)
    return RoleResponse(message="Role switched successfully", user=UserResponse.from_account(account))


@auth_router.post(
    "/update-role",
    response_model=RoleResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Choose a role during onboarding",
)
def update_role(
    request_data: UpdateRoleRequest,
    service: AccountService = Depends(get_account_service),
) -> RoleResponse:
    session = service.update_role(request_data.email, request_data.role)
    return RoleResponse(
        message="Role updated successfully",
        token=session.token,
        user=UserResponse.from_account(session.account),
    )


@auth_router.post(
    "/complete-profile",
    response_model=ProfileResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Complete a client profile",
)
def complete_profile(
    request_data: CompleteProfileRequest,
    service: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    session = service.complete_client_profile(
        email=request_data.email,
        company_name=request_data.company_name,
        company_size=request_data.company_size,
        industry=request_data.industry,
        website=request_data.website,
    )
    return ProfileResponse(
        message="Profile completed successfully",
        token=session.token,
        user=UserResponse.from_account(session.account),
    )


@auth_router.post(
    "/complete-freelancer-profile",
    response_model=ProfileResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Complete a freelancer profile",
)
@auth_router.post(
    "/complete-oauth-profile",
    response_model=ProfileResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Complete a freelancer profile after OAuth sign-in",
)
def complete_freelancer_profile(
    request_data: CompleteFreelancerProfileRequest,
    service: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    session = service.complete_freelancer_profile(
        email=request_data.email,
        skills=request_data.skills,
        experience=request_data.experience,
        hourly_rate=request_data.hourly_rate,
        bio=request_data.bio or request_data.description,
        title=request_data.title,
    )
    return ProfileResponse(
        message="Freelancer profile completed successfully",
        token=session.token,
        user=UserResponse.from_account(session.account),
    )


@users_router.put(
    "/profile",
    response_model=UserResponse,
    responses={**_BAD_REQUEST, **_UNAUTHORIZED, **_NOT_FOUND},
    summary="Update the caller's profile",
)
def update_profile(
    request_data: UpdateProfileRequest,
    account_id: UUID = Depends(get_current_account_id),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    account = service.update_profile(
        account_id,
        name=request_data.name,
        bio=request_data.bio,
        skills=request_data.skills,
        location=request_data.location,
    )
    return UserResponse.from_account(account)


router = APIRouter(tags=["v1"])
router.include_router(auth_router)
router.include_router(users_router)
