"""initial

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updatedAt", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "connected_accounts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("userId", sa.String(36), nullable=False),
        sa.Column("providerId", sa.String(30), nullable=False),
        sa.Column("accountId", sa.String(64), nullable=False),
        sa.Column("accessToken", sa.Text(), nullable=True),
        sa.Column("accessSecret", sa.Text(), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("displayName", sa.String(255), nullable=True),
        sa.Column("profileImage", sa.String(2048), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updatedAt", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["userId"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("userId", "providerId", "accountId", name="uq_connected_accounts_user_provider_account"),
    )
    op.create_index("ix_connected_accounts_userId", "connected_accounts", ["userId"])

    op.create_table(
        "active_accounts",
        sa.Column("userId", sa.String(36), nullable=False),
        sa.Column("connectedAccountId", sa.String(36), nullable=False),
        sa.Column("updatedAt", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["userId"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["connectedAccountId"], ["connected_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("userId"),
    )

    op.create_table(
        "tweets",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("userId", sa.String(36), nullable=False),
        sa.Column("accountId", sa.String(36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("mediaIds", sa.JSON(), nullable=False),
        sa.Column("isScheduled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("scheduledUnix", sa.BigInteger(), nullable=True),
        sa.Column("scheduledFor", sa.DateTime(timezone=True), nullable=True),
        sa.Column("jobMessageId", sa.String(255), nullable=True),
        sa.Column("isPublished", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("twitterId", sa.String(64), nullable=True),
        sa.Column("error", sa.JSON(), nullable=True),
        sa.Column("publishedAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updatedAt", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["userId"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["accountId"], ["connected_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_tweets_user_published", "tweets", ["userId", "isPublished", "createdAt"])
    op.create_index("idx_tweets_user_scheduled", "tweets", ["userId", "isScheduled", "scheduledFor"])
    op.create_index("idx_tweets_account_published", "tweets", ["accountId", "isPublished", "createdAt"])
    op.create_index("idx_tweets_twitter_id", "tweets", ["twitterId"])


def downgrade() -> None:
    op.drop_index("idx_tweets_twitter_id", table_name="tweets")
    op.drop_index("idx_tweets_account_published", table_name="tweets")
    op.drop_index("idx_tweets_user_scheduled", table_name="tweets")
    op.drop_index("idx_tweets_user_published", table_name="tweets")
    op.drop_table("tweets")
    op.drop_table("active_accounts")
    op.drop_index("ix_connected_accounts_userId", table_name="connected_accounts")
    op.drop_table("connected_accounts")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
