"""SQLAlchemy models."""

from src.models.subscription import Subscription
from src.models.user import User
from src.models.video import Video, WatchHistoryEntry

__all__ = [
    "User",
    "Subscription",
    "Video",
    "WatchHistoryEntry",
]
