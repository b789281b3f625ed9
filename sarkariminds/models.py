from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from sarkariminds.db.base import Base

JsonDocument = JSON().with_variant(JSONB(), "postgresql")


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    CONNECTION_REQUEST = "connection_request"
    CONNECTION_ACCEPTED = "connection_accepted"
    NEW_POST = "new_post"
    STORY_REACTION = "story_reaction"
    STORY_REPLY = "story_reply"
    SYSTEM = "system"
    JOB_UPDATE = "job_update"
    MENTION = "mention"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def _relationship_list_table(name: str) -> Table:
    # One row per entry: the owner's list contains peer_id.
    return Table(
        name,
        Base.metadata,
        Column("account_id", ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True),
        Column("peer_id", ForeignKey("accounts.id"), primary_key=True),
        Index(f"ix_{name}_peer_id", "peer_id"),
    )


account_connections = _relationship_list_table("account_connections")
account_followers = _relationship_list_table("account_followers")
account_following = _relationship_list_table("account_following")

RELATIONSHIP_LISTS: dict[str, Table] = {
    "connections": account_connections,
    "followers": account_followers,
    "following": account_following,
}


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        Index("ix_accounts_scheduled_deletion_date", "scheduled_deletion_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    notification_preferences: Mapped[dict[str, Any]] = mapped_column(
        JsonDocument,
        nullable=False,
        default=dict,
    )
    deletion_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scheduled_deletion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    connections: Mapped[list[Account]] = relationship(
        "Account",
        secondary=account_connections,
        primaryjoin=lambda: Account.id == account_connections.c.account_id,
        secondaryjoin=lambda: Account.id == account_connections.c.peer_id,
    )
    followers: Mapped[list[Account]] = relationship(
        "Account",
        secondary=account_followers,
        primaryjoin=lambda: Account.id == account_followers.c.account_id,
        secondaryjoin=lambda: Account.id == account_followers.c.peer_id,
    )
    following: Mapped[list[Account]] = relationship(
        "Account",
        secondary=account_following,
        primaryjoin=lambda: Account.id == account_following.c.account_id,
        secondaryjoin=lambda: Account.id == account_following.c.peer_id,
    )


class Connection(Base):
    __tablename__ = "connections"
    __table_args__ = (
        Index("ix_connections_requester_id", "requester_id"),
        Index("ix_connections_recipient_id", "recipient_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    requester_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    status: Mapped[ConnectionStatus] = mapped_column(
        SqlEnum(ConnectionStatus, name="connection_status", values_callable=_enum_values),
        nullable=False,
        default=ConnectionStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_account_id_created_at", "account_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_id_created_at", "recipient_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    sender_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        SqlEnum(NotificationType, name="notification_type", values_callable=_enum_values),
        nullable=False,
    )
    post_id: Mapped[int | None] = mapped_column(ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    story_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
