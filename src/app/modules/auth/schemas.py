"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict, EmailStr


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """User response schema for login."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    program_id: str | None = None
    is_active: bool
    email_verified: bool
    created_at: str
    updated_at: str


class LoginResponse(TokenResponse):
    """Login response schema."""

    user: UserResponse


class RefreshRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str
