"""Shared columns for SQLAlchemy models."""

from sqlalchemy import Column, DateTime, func


def timestamp_column(*, onupdate: bool = False) -> Column:
    """Timezone-aware timestamp filled in by the database."""
    return Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now() if onupdate else None,
        nullable=False,
    )


class TimestampMixin:
    """Adds created_at and updated_at to users, videos and subscriptions."""

    created_at = timestamp_column()
    updated_at = timestamp_column(onupdate=True)
