"""User model."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User model for authentication and channel ownership."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)  # always lowercase
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar_url = Column(String(1024), nullable=False)
    cover_image_url = Column(String(1024), nullable=True)
    refresh_token_hash = Column(String(64), nullable=True)  # sha256 hex of the live refresh token

    # Relationships
    watch_history_entries = relationship(
        "WatchHistoryEntry",
        back_populates="user",
        order_by="WatchHistoryEntry.id",
        cascade="all, delete-orphan",
    )

    @property
    def watch_history(self) -> list[int]:
        """Video ids in the order they were recorded."""
        return [entry.video_id for entry in self.watch_history_entries]
