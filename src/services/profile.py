"""Channel profile and watch history aggregation."""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, aliased

from src.models.subscription import Subscription
from src.models.user import User
from src.models.video import Video, WatchHistoryEntry
from src.schemas.channel import ChannelProfile, VideoOwner, VideoSummary
from src.services.auth import get_user_by_username
from src.services.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


class ProfileAggregator:
    """Builds derived views of users from several small repository queries."""

    def __init__(self, db: Session):
        self.db = db

    def count_subscribers(self, channel_id: int) -> int:
        """Number of users subscribed to the channel."""
        count = (
            self.db.query(func.count(Subscription.id))
            .filter(Subscription.channel_id == channel_id)
            .scalar()
        )
        return count or 0

    def count_subscriptions(self, subscriber_id: int) -> int:
        """Number of channels the user subscribes to."""
        count = (
            self.db.query(func.count(Subscription.id))
            .filter(Subscription.subscriber_id == subscriber_id)
            .scalar()
        )
        return count or 0

    def is_subscribed(self, subscriber_id: int | None, channel_id: int) -> bool:
        """Check whether a subscription row links subscriber to channel."""
        if subscriber_id is None:
            return False
        row = (
            self.db.query(Subscription.id)
            .filter(
                Subscription.subscriber_id == subscriber_id,
                Subscription.channel_id == channel_id,
            )
            .first()
        )
        return row is not None

    def get_channel_profile(self, username: str, viewer_id: int | None = None) -> ChannelProfile:
        """Public channel view with subscriber counts for the given username."""
        if not username or not username.strip():
            raise ValidationError("Username is missing")

        channel = get_user_by_username(self.db, username)
        if channel is None:
            raise NotFound("Channel does not exist")

        return ChannelProfile(
            id=channel.id,
            full_name=channel.full_name,
            username=channel.username,
            email=channel.email,
            avatar=channel.avatar_url,
            cover_image=channel.cover_image_url,
            subscriber_count=self.count_subscribers(channel.id),
            subscribed_to_count=self.count_subscriptions(channel.id),
            is_subscribed_by_viewer=self.is_subscribed(viewer_id, channel.id),
        )

    def get_watch_history(self, user_id: int) -> list[VideoSummary]:
        """Videos from the user's watch history, in stored order, with owners.

        Entries whose video has been deleted are skipped; a deleted owner
        yields ``owner=None``.
        """
        owner = aliased(User)
        # Entry id keeps repeat views of the same video as separate rows
        rows = (
            self.db.query(WatchHistoryEntry.id, Video, owner)
            .select_from(WatchHistoryEntry)
            .join(Video, WatchHistoryEntry.video_id == Video.id)
            .outerjoin(owner, Video.owner_id == owner.id)
            .filter(WatchHistoryEntry.user_id == user_id)
            .order_by(WatchHistoryEntry.id)
            .all()
        )

        history = []
        for _entry_id, video, video_owner in rows:
            summary = VideoSummary.model_validate(video)
            summary.owner = VideoOwner.model_validate(video_owner) if video_owner else None
            history.append(summary)
        return history
