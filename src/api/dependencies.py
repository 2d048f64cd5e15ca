"""FastAPI dependencies for authentication and services."""

from collections.abc import Mapping
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session, defer

from src.config import get_settings
from src.database import get_db
from src.models.user import User
from src.services.blob_store import BlobStore, CloudinaryBlobStore
from src.services.errors import Unauthenticated
from src.services.passwords import PasswordVerifier
from src.services.profile import ProfileAggregator
from src.services.tokens import TokenConfig, TokenService

ACCESS_TOKEN_COOKIE = "accessToken"  # noqa: S105
REFRESH_TOKEN_COOKIE = "refreshToken"  # noqa: S105


def extract_bearer_token(
    cookies: Mapping[str, str],
    headers: Mapping[str, str],
    cookie_name: str = ACCESS_TOKEN_COOKIE,
) -> str | None:
    """Find a token in the named cookie or an ``Authorization: Bearer`` header.

    The cookie wins when both are present.
    """
    token = (cookies.get(cookie_name) or "").strip()
    if token:
        return token

    authorization = headers.get("authorization") or headers.get("Authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


def get_token_service(db: Annotated[Session, Depends(get_db)]) -> TokenService:
    """Get token service with dependencies."""
    return TokenService(db, TokenConfig.from_settings(get_settings()))


def get_password_verifier(db: Annotated[Session, Depends(get_db)]) -> PasswordVerifier:
    """Get password verifier with dependencies."""
    return PasswordVerifier(db)


def get_profile_aggregator(db: Annotated[Session, Depends(get_db)]) -> ProfileAggregator:
    """Get profile aggregator with dependencies."""
    return ProfileAggregator(db)


def get_blob_store() -> BlobStore:
    """Get the configured blob store."""
    return CloudinaryBlobStore.from_settings(get_settings())


def get_current_user(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> User:
    """Get the current authenticated user from the access token."""
    token = extract_bearer_token(request.cookies, request.headers)
    if token is None:
        raise Unauthenticated("Unauthorized request")

    user_id = tokens.verify_access_token(token)

    user = (
        db.query(User)
        .options(defer(User.password_hash), defer(User.refresh_token_hash))
        .filter(User.id == user_id)
        .first()
    )
    if user is None:
        raise Unauthenticated("Invalid access token")

    return user
