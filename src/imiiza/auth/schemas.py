"""Pydantic schemas for authentication endpoints"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    """Applicant self-registration. Staff accounts are provisioned by admins."""
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User information (excludes password_hash)."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    email: str
    role: str
    status: str
    project_count: int = Field(0, alias="projectCount")


class AuthResponse(BaseModel):
    """Envelope returned by login and signup.

    Attributes:
        token: JWT access token
        expires_in: Token expiry in seconds
    """
    success: bool = True
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


def user_response(user) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        status=user.status,
        project_count=user.project_count or 0,
    )
