"""Authentication API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from src.api.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    extract_bearer_token,
    get_blob_store,
    get_current_user,
    get_password_verifier,
    get_token_service,
)
from src.api.uploads import has_file, spooled_upload
from src.config import get_settings
from src.database import get_db
from src.models.user import User
from src.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    MessageResponse,
    TokenPair,
    UserLogin,
    UserRegister,
    UserResponse,
)
from src.services.auth import authenticate_user, register_user
from src.services.blob_store import BlobStore
from src.services.errors import Unauthenticated, ValidationError
from src.services.passwords import PasswordVerifier
from src.services.tokens import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["auth"])


def set_token_cookies(response: Response, tokens: TokenPair) -> None:
    """Attach both tokens as httpOnly cookies."""
    secure = get_settings().cookie_secure
    response.set_cookie(ACCESS_TOKEN_COOKIE, tokens.access_token, httponly=True, secure=secure)
    response.set_cookie(REFRESH_TOKEN_COOKIE, tokens.refresh_token, httponly=True, secure=secure)


def clear_token_cookies(response: Response) -> None:
    secure = get_settings().cookie_secure
    response.delete_cookie(ACCESS_TOKEN_COOKIE, httponly=True, secure=secure)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, httponly=True, secure=secure)


def _describe(error: PydanticValidationError) -> str:
    """Turn the first pydantic error into a short client message."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "input"
    return f"Invalid {field}: {first['msg']}"


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    db: Annotated[Session, Depends(get_db)],
    passwords: Annotated[PasswordVerifier, Depends(get_password_verifier)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    full_name: Annotated[str | None, Form(alias="fullName")] = None,
    username: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
):
    """Register a new user with an avatar and optional cover image."""
    if any(not (value and value.strip()) for value in (full_name, username, email, password)):
        raise ValidationError("All fields are required")

    try:
        data = UserRegister(
            full_name=full_name, username=username.strip(), email=email.strip(), password=password
        )
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from None

    if not has_file(avatar):
        raise ValidationError("User avatar is required")

    with spooled_upload(avatar) as avatar_path, spooled_upload(cover_image) as cover_image_path:
        user = register_user(db, passwords, blob_store, data, avatar_path, cover_image_path)

    return user


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    passwords: Annotated[PasswordVerifier, Depends(get_password_verifier)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
):
    """Login with email or username and password."""
    user = authenticate_user(
        db,
        passwords,
        credentials.password,
        email=credentials.email,
        username=credentials.username,
    )

    pair = tokens.issue_token_pair(user.id)
    set_token_cookies(response, pair)
    logger.info(f"User {user.id} logged in")

    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    current_user: Annotated[User, Depends(get_current_user)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
):
    """Logout: forget the refresh token and clear cookies.

    Access tokens already handed out stay valid until they expire.
    """
    tokens.invalidate(current_user.id)
    clear_token_cookies(response)
    return MessageResponse(message="User logged out")


@router.post("/refresh-token", response_model=TokenPair)
def refresh_token(
    request: Request,
    response: Response,
    tokens: Annotated[TokenService, Depends(get_token_service)],
):
    """Exchange a refresh token for a new token pair."""
    presented = extract_bearer_token(
        request.cookies, request.headers, cookie_name=REFRESH_TOKEN_COOKIE
    )
    if presented is None:
        raise Unauthenticated("Unauthorized request")

    pair = tokens.rotate_refresh_token(presented)
    set_token_cookies(response, pair)
    return pair


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    passwords: Annotated[PasswordVerifier, Depends(get_password_verifier)],
):
    """Change the current user's password."""
    passwords.change_password(current_user, payload.old_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")
