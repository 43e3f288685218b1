"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field names are camelCase on the wire and snake_case in Python.
"""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from workdeck.domain.models import Account

CompanySize = Literal["1", "2-10", "11-50", "51-200", "200+"]


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class UserResponse(CamelModel):
    """Public view of an account. Never carries the password hash."""

    id: UUID
    name: str
    email: str
    roles: list[str]
    primary_role: str
    avatar: str | None = None

    @classmethod
    def from_account(cls, account: Account) -> "UserResponse":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            roles=[role.value for role in account.roles],
            primary_role=account.primary_role.value,
            avatar=account.avatar,
        )


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str


class RegisterRequest(CamelModel):
    """Request model for registration initiation."""

    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, description="At least 8 characters with upper, lower, and digit")
    role: str = Field(..., description="'freelancer' or 'client'")
    location: str = Field("", max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not (any(c.islower() for c in v) and any(c.isupper() for c in v) and any(c.isdigit() for c in v)):
            raise ValueError("Password must contain an uppercase letter, a lowercase letter, and a number")
        return v


class RegisterResponse(CamelModel):
    message: str
    is_adding_role: bool


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=16)


class VerifyOtpResponse(CamelModel):
    message: str
    is_adding_role: bool
    new_role: str | None = None


class ResendOtpRequest(CamelModel):
    email: EmailStr


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(CamelModel):
    token: str
    user: UserResponse


class OAuthLoginRequest(CamelModel):
    email: EmailStr
    name: str = ""
    provider: str
    provider_id: str = Field(..., min_length=1)
    role: str | None = None


class OAuthLoginResponse(CamelModel):
    token: str
    is_new_user: bool
    needs_role_selection: bool
    needs_profile_completion: bool
    user: UserResponse


class SwitchRoleRequest(CamelModel):
    role: str


class UpdateRoleRequest(CamelModel):
    email: EmailStr
    role: str


class RoleResponse(CamelModel):
    message: str
    token: str | None = None
    user: UserResponse


class CompleteProfileRequest(CamelModel):
    """Client profile completion."""

    email: EmailStr
    company_name: str = Field(..., min_length=1, max_length=100)
    company_size: CompanySize
    industry: str | None = Field(None, max_length=100)
    website: str | None = Field(None, max_length=200)


class CompleteFreelancerProfileRequest(CamelModel):
    """
    Freelancer profile completion.

    skills may be a comma-separated string or a list; hourlyRate may be a
    number or a numeric string. Both are normalized by the domain.
    """

    email: EmailStr
    skills: str | list[str] | None = None
    experience: str | None = None
    hourly_rate: float | str | None = None
    bio: str | None = Field(None, max_length=500)
    description: str | None = Field(None, max_length=500)
    title: str | None = Field(None, max_length=100)


class ProfileResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class UpdateProfileRequest(CamelModel):
    name: str | None = Field(None, max_length=50)
    bio: str | None = Field(None, max_length=500)
    skills: str | list[str] | None = None
    location: str | None = Field(None, max_length=100)
