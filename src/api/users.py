"""User profile, channel and watch history endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from src.api.dependencies import get_blob_store, get_current_user, get_profile_aggregator
from src.api.uploads import has_file, spooled_upload
from src.database import get_db
from src.models.user import User
from src.schemas.auth import AccountUpdate, UserResponse
from src.schemas.channel import ChannelProfile, VideoSummary
from src.services.auth import ImageKind, update_account_details, update_user_image
from src.services.blob_store import BlobStore
from src.services.errors import ValidationError
from src.services.profile import ProfileAggregator

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/current-user", response_model=UserResponse)
def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.patch("/update-account", response_model=UserResponse)
def update_account(
    payload: AccountUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Update full name and email."""
    return update_account_details(db, current_user, payload.full_name, payload.email)


@router.patch("/update-image", response_model=UserResponse)
def update_image(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
):
    """Replace either the avatar or the cover image (exactly one per request)."""
    provided = [
        (kind, upload)
        for kind, upload in ((ImageKind.AVATAR, avatar), (ImageKind.COVER_IMAGE, cover_image))
        if has_file(upload)
    ]
    if len(provided) != 1:
        raise ValidationError("Provide exactly one of avatar or coverImage")

    kind, upload = provided[0]
    with spooled_upload(upload) as local_path:
        return update_user_image(db, blob_store, current_user, kind, local_path)


@router.get("/channel/{username}", response_model=ChannelProfile)
def get_channel_profile(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    profiles: Annotated[ProfileAggregator, Depends(get_profile_aggregator)],
):
    """Get a channel's public profile with subscription counts."""
    return profiles.get_channel_profile(username, viewer_id=current_user.id)


@router.get("/watch-history", response_model=list[VideoSummary])
def get_watch_history(
    current_user: Annotated[User, Depends(get_current_user)],
    profiles: Annotated[ProfileAggregator, Depends(get_profile_aggregator)],
):
    """Get the current user's watch history in stored order."""
    return profiles.get_watch_history(current_user.id)
