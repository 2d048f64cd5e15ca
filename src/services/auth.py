"""Account operations: registration, login and profile updates."""

import logging
from enum import Enum
from pathlib import Path

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.user import User
from src.schemas.auth import UserRegister
from src.services.blob_store import BlobStore, BlobStoreError
from src.services.errors import (
    Conflict,
    InternalError,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from src.services.passwords import PasswordVerifier

logger = logging.getLogger(__name__)


class ImageKind(str, Enum):
    """Profile images a user can replace."""

    AVATAR = "avatar"
    COVER_IMAGE = "coverImage"

    @property
    def column(self) -> str:
        return "avatar_url" if self is ImageKind.AVATAR else "cover_image_url"


def normalize_username(username: str) -> str:
    return username.strip().lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_username(db: Session, username: str) -> User | None:
    """Get a user by username."""
    return db.query(User).filter(User.username == normalize_username(username)).first()


def discard_blobs(blob_store: BlobStore, urls: list[str]) -> None:
    """Best-effort removal of uploaded files that no record points at."""
    for url in urls:
        try:
            blob_store.delete(url)
        except BlobStoreError as e:
            logger.error(f"Failed to clean up blob {url}: {e}")


def register_user(
    db: Session,
    passwords: PasswordVerifier,
    blob_store: BlobStore,
    data: UserRegister,
    avatar_path: Path | None,
    cover_image_path: Path | None = None,
) -> User:
    """Create a new user, uploading the avatar and optional cover image first."""
    username = normalize_username(data.username)
    email = normalize_email(data.email)
    full_name = data.full_name.strip()
    if not username or not full_name:
        raise ValidationError("All fields are required")
    if avatar_path is None:
        raise ValidationError("User avatar is required")

    if get_user_by_username(db, username) or get_user_by_email(db, email):
        raise Conflict("User with email or username already exists")

    uploaded: list[str] = []
    try:
        avatar_url = blob_store.upload(avatar_path)
        uploaded.append(avatar_url)
        cover_image_url = None
        if cover_image_path is not None:
            cover_image_url = blob_store.upload(cover_image_path)
            uploaded.append(cover_image_url)
    except BlobStoreError as e:
        logger.error(f"Image upload failed during registration of '{username}': {e}")
        discard_blobs(blob_store, uploaded)
        raise InternalError("Error while uploading images") from None

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=passwords.hash(data.password),
        avatar_url=avatar_url,
        cover_image_url=cover_image_url,
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        db.rollback()
        discard_blobs(blob_store, uploaded)
        raise Conflict("User with email or username already exists") from None
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create user '{username}': {e}")
        discard_blobs(blob_store, uploaded)
        raise InternalError("Something went wrong while creating user") from None

    db.refresh(user)
    logger.info(f"Registered user {user.id} ('{username}')")
    return user


def authenticate_user(
    db: Session,
    passwords: PasswordVerifier,
    password: str,
    email: str | None = None,
    username: str | None = None,
) -> User:
    """Find a user by email or username and check the password."""
    has_email = bool(email and email.strip())
    has_username = bool(username and username.strip())
    if not has_email and not has_username:
        raise ValidationError("Username or email is required")

    user = get_user_by_email(db, email) if has_email else None
    if user is None and has_username:
        user = get_user_by_username(db, username)
    if not user:
        raise NotFound("User does not exist")
    if not passwords.verify(password, user.password_hash):
        raise InvalidCredentials("Invalid user credentials")
    return user


def update_user_image(
    db: Session,
    blob_store: BlobStore,
    user: User,
    kind: ImageKind,
    local_path: Path,
) -> User:
    """Replace the user's avatar or cover image.

    The record is only touched after the upload succeeded.
    """
    try:
        url = blob_store.upload(local_path)
    except BlobStoreError as e:
        logger.error(f"Upload of {kind.value} failed for user {user.id}: {e}")
        raise InternalError(f"Error while uploading {kind.value}") from None

    previous_url = getattr(user, kind.column)
    try:
        setattr(user, kind.column, url)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to save {kind.value} for user {user.id}: {e}")
        discard_blobs(blob_store, [url])
        raise InternalError(f"Error while updating {kind.value}") from None

    db.refresh(user)
    if previous_url:
        discard_blobs(blob_store, [previous_url])
    return user


def update_account_details(db: Session, user: User, full_name: str, email: str) -> User:
    """Update the user's display name and email."""
    full_name = full_name.strip()
    email = normalize_email(email)
    if not full_name or not email:
        raise ValidationError("All fields are required")

    taken = db.query(User.id).filter(User.email == email, User.id != user.id).first()
    if taken:
        raise Conflict("Email is already in use")

    user.full_name = full_name
    user.email = email
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email is already in use") from None
    db.refresh(user)
    return user
