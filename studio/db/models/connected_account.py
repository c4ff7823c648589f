"""ConnectedAccount and ActiveAccount models for linked Twitter/X identities."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio.db.base import Base

if TYPE_CHECKING:
    from studio.db.models.tweet import Tweet
    from studio.db.models.user import User

TWITTER_PROVIDER = "twitter"


class ConnectedAccount(Base):
    __tablename__ = "connected_accounts"
    __table_args__ = (
        UniqueConstraint("userId", "providerId", "accountId", name="uq_connected_accounts_user_provider_account"),
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
        index=True,
    )
    provider_id: Mapped[str] = mapped_column(
        "providerId",
        String(30),
        default=TWITTER_PROVIDER,
        nullable=False,
    )
    account_id: Mapped[str] = mapped_column(
        "accountId",
        String(64),
        nullable=False,
    )  # platform-assigned numeric id
    access_token: Mapped[Optional[str]] = mapped_column(
        "accessToken",
        Text,
        nullable=True,
    )  # encrypted at rest
    access_secret: Mapped[Optional[str]] = mapped_column(
        "accessSecret",
        Text,
        nullable=True,
    )  # encrypted at rest
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column("displayName", String(255), nullable=True)
    profile_image: Mapped[Optional[str]] = mapped_column("profileImage", String(2048), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
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

    user: Mapped["User"] = relationship("User", back_populates="accounts", foreign_keys=[user_id])
    tweets: Mapped[List["Tweet"]] = relationship(
        "Tweet", back_populates="account", cascade="all, delete-orphan"
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_token and self.access_secret)


class ActiveAccount(Base):
    """Durable per-user pointer to the account used when no explicit target is given."""

    __tablename__ = "active_accounts"

    user_id: Mapped[str] = mapped_column(
        "userId",
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    connected_account_id: Mapped[str] = mapped_column(
        "connectedAccountId",
        String(36),
        ForeignKey("connected_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    account: Mapped["ConnectedAccount"] = relationship("ConnectedAccount", foreign_keys=[connected_account_id])
