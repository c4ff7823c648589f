"""SQLAlchemy models - import all for Alembic and relationships."""

from studio.db.base import Base
from studio.db.models.user import User
from studio.db.models.connected_account import ActiveAccount, ConnectedAccount
from studio.db.models.tweet import Tweet

__all__ = [
    "Base",
    "User",
    "ConnectedAccount",
    "ActiveAccount",
    "Tweet",
]
