"""Authentication schemas."""

from datetime import datetime

from pydantic import AliasChoices, EmailStr, Field, model_validator

from src.schemas.base import CamelModel


class UserRegister(CamelModel):
    """User registration form fields (files are handled separately)."""

    full_name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=72)


class UserLogin(CamelModel):
    """User login request. Either email or username identifies the account."""

    email: str | None = Field(None, max_length=255)
    username: str | None = Field(None, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)

    @model_validator(mode="after")
    def require_identifier(self) -> "UserLogin":
        """Ensure at least one of email/username was given."""
        if not (self.email and self.email.strip()) and not (
            self.username and self.username.strip()
        ):
            raise ValueError("Username or email is required")
        return self


class ChangePasswordRequest(CamelModel):
    """Change password request."""

    old_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=72)


class AccountUpdate(CamelModel):
    """Update account details."""

    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr = Field(..., max_length=255)


class TokenPair(CamelModel):
    """Access/refresh token pair."""

    access_token: str
    refresh_token: str


class UserResponse(CamelModel):
    """User information response. Never carries credential hashes."""

    id: int
    username: str
    email: str
    full_name: str
    avatar: str = Field(validation_alias=AliasChoices("avatar_url", "avatar"))
    cover_image: str | None = Field(
        None,
        validation_alias=AliasChoices("cover_image_url", "coverImage"),
        serialization_alias="coverImage",
    )
    watch_history: list[int] = []
    created_at: datetime
    updated_at: datetime


class AuthResponse(CamelModel):
    """Authentication response with tokens and user info."""

    user: UserResponse
    access_token: str
    refresh_token: str


class MessageResponse(CamelModel):
    """Plain acknowledgement."""

    message: str
