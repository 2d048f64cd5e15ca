"""Channel profile and watch history schemas."""

from pydantic import AliasChoices, Field

from src.schemas.base import CamelModel


class ChannelProfile(CamelModel):
    """Public view of a user's channel with subscription counts."""

    id: int
    full_name: str
    username: str
    email: str
    avatar: str
    cover_image: str | None = None
    subscriber_count: int = 0
    subscribed_to_count: int = 0
    is_subscribed_by_viewer: bool = False


class VideoOwner(CamelModel):
    """Minimal owner projection embedded in video summaries."""

    full_name: str
    username: str
    avatar: str = Field(validation_alias=AliasChoices("avatar_url", "avatar"))


class VideoSummary(CamelModel):
    """Video as listed in a watch history."""

    id: int
    title: str
    description: str | None = None
    thumbnail: str = Field(validation_alias=AliasChoices("thumbnail_url", "thumbnail"))
    video_file: str = Field(
        validation_alias=AliasChoices("video_file_url", "videoFile"),
        serialization_alias="videoFile",
    )
    duration: float
    views: int
    owner: VideoOwner | None = None
