"""
eventquest.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- users               — Wallet-anchored accounts with global point totals
- linked_identities   — Zero-or-one external account per (user, provider)
- events              — Organizer campaigns with an activity switch
- event_participants  — Event roster with per-event running point tallies
- tasks               — Platform actions worth a fixed point value
- user_tasks          — The completion ledger, unique per (user, task)
- oauth_request_tokens — Short-lived OAuth1.0a request-token secrets
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all EventQuest ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Platform(enum.StrEnum):
    """External networks a task can point at."""
    TWITTER = "twitter"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TELEGRAM = "telegram"
    DISCORD = "discord"
    YOUTUBE = "youtube"
    WEBSITE = "website"
    OTHER = "other"


class TaskType(enum.StrEnum):
    """The action a participant is asked to perform."""
    FOLLOW = "follow"
    LIKE = "like"
    REPOST = "repost"
    COMMENT = "comment"
    CREATE_POST = "create_post"
    JOIN_SERVER = "join_server"
    SEND_MESSAGE = "send_message"
    JOIN_CHANNEL = "join_channel"
    JOIN_GROUP = "join_group"
    START_BOT = "start_bot"
    SUBSCRIBE = "subscribe"
    LIKE_VIDEO = "like_video"
    COMMENT_VIDEO = "comment_video"
    FOLLOW_PAGE = "follow_page"
    LIKE_POST = "like_post"
    COMMENT_POST = "comment_post"
    VISIT = "visit"
    CUSTOM = "custom"


class Provider(enum.StrEnum):
    """Identity providers a user can link besides their wallet."""
    TWITTER = "twitter"
    TELEGRAM = "telegram"
    DISCORD = "discord"
    GOOGLE = "google"


# ---------------------------------------------------------------------------
# Users — one row per wallet address
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(42), nullable=False, unique=True)
    nonce: Mapped[str] = mapped_column(String(64), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[str] = mapped_column(String(100), default="")
    email: Mapped[str] = mapped_column(String(255), default="")
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    identities: Mapped[list[LinkedIdentity]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    participations: Mapped[list[EventParticipant]] = relationship(
        back_populates="user"
    )

    __table_args__ = (
        Index("ix_users_total_points", "total_points"),
    )

    def identity_for(self, provider: str) -> LinkedIdentity | None:
        """Return the linked identity for *provider*, if any."""
        for identity in self.identities:
            if identity.provider == provider:
                return identity
        return None

    def __repr__(self) -> str:
        return f"<User id={self.id} address={self.address!r} pts={self.total_points}>"


# ---------------------------------------------------------------------------
# LinkedIdentity — external account attached to a user
# ---------------------------------------------------------------------------
class LinkedIdentity(Base):
    """One linked external account.

    ``access_token`` / ``refresh_token`` / ``token_secret`` hold whatever
    credentials the provider's protocol hands back; ``profile`` keeps the
    non-secret display fields (name, photo, email, discriminator …).
    """
    __tablename__ = "linked_identities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    provider_user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str | None] = mapped_column(String(100), default=None)
    access_token: Mapped[str | None] = mapped_column(Text, default=None)
    refresh_token: Mapped[str | None] = mapped_column(Text, default=None)
    token_secret: Mapped[str | None] = mapped_column(Text, default=None)
    profile: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    linked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="identities")

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_linked_identities_user_provider"),
        Index("ix_linked_identities_provider_uid", "provider", "provider_user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<LinkedIdentity user={self.user_id} provider={self.provider!r} "
            f"username={self.username!r}>"
        )


# ---------------------------------------------------------------------------
# Events — organizer campaigns
# ---------------------------------------------------------------------------
class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    creator: Mapped[User] = relationship()
    participants: Mapped[list[EventParticipant]] = relationship(
        back_populates="event", passive_deletes=True,
        order_by="EventParticipant.joined_at",
    )
    tasks: Mapped[list[Task]] = relationship(
        back_populates="event", passive_deletes=True, order_by="Task.id",
    )

    __table_args__ = (
        Index("ix_events_creator", "creator_id"),
        Index("ix_events_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r} active={self.is_active}>"


# ---------------------------------------------------------------------------
# EventParticipant — roster entry with per-event point tally
# ---------------------------------------------------------------------------
class EventParticipant(Base):
    __tablename__ = "event_participants"

    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    event: Mapped[Event] = relationship(back_populates="participants")
    user: Mapped[User] = relationship(back_populates="participations")

    __table_args__ = (
        Index("ix_event_participants_user", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventParticipant event={self.event_id} user={self.user_id} "
            f"pts={self.points_earned}>"
        )


# ---------------------------------------------------------------------------
# Tasks — platform actions belonging to one event
# ---------------------------------------------------------------------------
class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    task_type: Mapped[str] = mapped_column(String(30), nullable=False)
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    custom_platform: Mapped[str | None] = mapped_column(String(50), default=None)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    link_url: Mapped[str] = mapped_column(String(500), nullable=False)
    points_value: Mapped[int] = mapped_column(Integer, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    event: Mapped[Event] = relationship(back_populates="tasks")

    __table_args__ = (
        CheckConstraint("points_value >= 1", name="ck_tasks_points_value_positive"),
        Index("ix_tasks_event", "event_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Task id={self.id} event={self.event_id} "
            f"{self.platform}/{self.task_type} pts={self.points_value}>"
        )


# ---------------------------------------------------------------------------
# UserTask — the completion ledger
# ---------------------------------------------------------------------------
class UserTask(Base):
    """One user's status for one task.

    ``completed`` only ever moves from false to true.  ``points_earned`` is
    copied from the task at completion time and never re-derived.
    """
    __tablename__ = "user_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verification_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    task: Mapped[Task] = relationship()
    event: Mapped[Event] = relationship()

    __table_args__ = (
        # The sole storage-level guard against double completion
        UniqueConstraint("user_id", "task_id", name="uq_user_tasks_user_task"),
        Index("ix_user_tasks_user_event", "user_id", "event_id"),
        Index("ix_user_tasks_task", "task_id"),
        Index("ix_user_tasks_user_completed_at", "user_id", "completed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserTask user={self.user_id} task={self.task_id} "
            f"completed={self.completed}>"
        )


# ---------------------------------------------------------------------------
# OAuthRequestToken — OAuth1.0a handshake staging
# ---------------------------------------------------------------------------
class OAuthRequestToken(Base):
    __tablename__ = "oauth_request_tokens"

    oauth_token: Mapped[str] = mapped_column(String(128), primary_key=True)
    oauth_token_secret: Mapped[str] = mapped_column(String(128), nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_oauth_request_tokens_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<OAuthRequestToken token={self.oauth_token[:8]!r}... user={self.user_id}>"
