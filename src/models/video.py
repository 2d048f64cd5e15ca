"""Video and watch history models."""

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin, timestamp_column


class Video(Base, TimestampMixin):
    """Video uploaded to a user's channel."""

    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String, nullable=True)
    video_file_url = Column(String(1024), nullable=False)
    thumbnail_url = Column(String(1024), nullable=False)
    duration = Column(Float, nullable=False, default=0)  # seconds
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)

    # Relationships
    owner = relationship("User", backref="videos")


class WatchHistoryEntry(Base):
    """One watch event. Entry id order is the user's watch history order."""

    __tablename__ = "watch_history_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column(Integer, ForeignKey("videos.id"), nullable=False)
    watched_at = timestamp_column()

    # Relationships
    user = relationship("User", back_populates="watch_history_entries")
    video = relationship("Video")
