"""Tweet model: the persisted unit of work for immediate and scheduled posts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio.db.base import Base

if TYPE_CHECKING:
    from studio.db.models.connected_account import ConnectedAccount

DRAFT_PENDING = "draft_pending"
SCHEDULED = "scheduled"
PUBLISHED = "published"


class Tweet(Base):
    __tablename__ = "tweets"
    __table_args__ = (
        Index("idx_tweets_user_published", "userId", "isPublished", "createdAt"),
        Index("idx_tweets_user_scheduled", "userId", "isScheduled", "scheduledFor"),
        Index("idx_tweets_account_published", "accountId", "isPublished", "createdAt"),
        Index("idx_tweets_twitter_id", "twitterId"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        "userId",
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    account_id: Mapped[str] = mapped_column(
        "accountId",
        String(36),
        ForeignKey("connected_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    media_ids: Mapped[List[str]] = mapped_column("mediaIds", JSON, default=list, nullable=False)
    is_scheduled: Mapped[bool] = mapped_column("isScheduled", Boolean, default=False, nullable=False)
    scheduled_unix: Mapped[Optional[int]] = mapped_column("scheduledUnix", BigInteger, nullable=True)  # ms
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(
        "scheduledFor",
        DateTime(timezone=True),
        nullable=True,
    )
    job_message_id: Mapped[Optional[str]] = mapped_column("jobMessageId", String(255), nullable=True)
    is_published: Mapped[bool] = mapped_column("isPublished", Boolean, default=False, nullable=False)
    twitter_id: Mapped[Optional[str]] = mapped_column("twitterId", String(64), nullable=True)
    error: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(
        "publishedAt",
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        "createdAt",
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    account: Mapped["ConnectedAccount"] = relationship(
        "ConnectedAccount", back_populates="tweets", foreign_keys=[account_id]
    )

    @property
    def state(self) -> str:
        if self.is_published:
            return PUBLISHED
        if self.is_scheduled:
            return SCHEDULED
        return DRAFT_PENDING
