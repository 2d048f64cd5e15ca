"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import (
    AccountUpdate,
    AuthResponse,
    ChangePasswordRequest,
    MessageResponse,
    TokenPair,
    UserLogin,
    UserRegister,
    UserResponse,
)
from src.schemas.channel import ChannelProfile, VideoOwner, VideoSummary

__all__ = [
    "UserRegister",
    "UserLogin",
    "ChangePasswordRequest",
    "AccountUpdate",
    "TokenPair",
    "AuthResponse",
    "UserResponse",
    "MessageResponse",
    "ChannelProfile",
    "VideoOwner",
    "VideoSummary",
]
