"""
vibes.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- users              — External identity (id supplied by the auth provider)
- profiles           — 1:1 presentation metadata, username, staff/bot flags
- posts / post_media — Short-form updates with ordered attachments
- projects           — Showcased builds (votes, bookmarks, comments)
- resources          — Community-submitted learning links
- votes              — One polarity row per (target, user): +1 up, -1 down
- bookmarks          — Saved projects/resources
- post_likes         — Likes on posts
- comments           — Comments on posts, projects and resources
- emoji_reactions    — Emoji reactions on projects, posts and comments
- follows            — Directed follower → following edges
- grants             — Funding calls (+ submissions and applications)
- notifications      — Per-recipient social activity events
- conversations      — Canonical user pair (user1_id < user2_id)
- messages           — Direct messages with a typed payload
- stories            — 24h ephemeral media

Every uniqueness invariant of the interaction ledger is a database
constraint, so concurrent duplicate requests converge on one row.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Timezone-aware "now" used for every Python-side timestamp default."""
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Vibes ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TargetType(enum.StrEnum):
    """Kinds of entity that reaction edges and comments can point at."""
    POST = "post"
    PROJECT = "project"
    RESOURCE = "resource"
    COMMENT = "comment"


class ReactionKind(enum.StrEnum):
    """Reaction edges accepted by the interaction ledger."""
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"
    LIKE = "like"
    BOOKMARK = "bookmark"


class NotificationType(enum.StrEnum):
    """Social events that fan out to a recipient."""
    UPVOTE = "upvote"
    COMMENT = "comment"
    FOLLOW = "follow"
    APPLICATION = "application"
    APPLICATION_UPDATE = "application_update"
    MESSAGE = "message"


class MessageType(enum.StrEnum):
    TEXT = "text"
    VOICE = "voice"
    IMAGE = "image"
    FILE = "file"


class ApplicationStatus(enum.StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class GrantStatus(enum.StrEnum):
    OPEN = "open"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# Users — one row per authenticated account
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, default=None)
    first_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_name: Mapped[str | None] = mapped_column(String(100), default=None)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    profile: Mapped[Profile | None] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or (self.email.split("@")[0] if self.email else "Someone")

    def __repr__(self) -> str:
        return f"<User id={self.id!r} email={self.email!r}>"


# ---------------------------------------------------------------------------
# Profiles — 1:1 with users, created at account time
# ---------------------------------------------------------------------------
class Profile(Base):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    username: Mapped[str | None] = mapped_column(String(64), unique=True, default=None)
    bio: Mapped[str | None] = mapped_column(Text, default=None)
    skills: Mapped[list | None] = mapped_column(JSONB, default=list)
    tools: Mapped[list | None] = mapped_column(JSONB, default=list)
    twitter_url: Mapped[str | None] = mapped_column(String(500), default=None)
    github_url: Mapped[str | None] = mapped_column(String(500), default=None)
    website_url: Mapped[str | None] = mapped_column(String(500), default=None)
    linkedin_url: Mapped[str | None] = mapped_column(String(500), default=None)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_staff: Mapped[bool] = mapped_column(Boolean, default=False)
    is_news_bot: Mapped[bool] = mapped_column(Boolean, default=False)

    user: Mapped[User] = relationship(back_populates="profile")

    def __repr__(self) -> str:
        return f"<Profile user={self.user_id!r} username={self.username!r}>"


# ---------------------------------------------------------------------------
# Posts — short-form updates
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    content: Mapped[str | None] = mapped_column(Text, default=None)
    voice_note_url: Mapped[str | None] = mapped_column(String(500), default=None)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    media: Mapped[list[PostMedia]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostMedia.order_index",
    )

    __table_args__ = (
        Index("ix_posts_user_created", "user_id", "created_at"),
        Index("ix_posts_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id!r} user={self.user_id!r}>"


class PostMedia(Base):
    __tablename__ = "post_media"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    media_type: Mapped[str] = mapped_column(String(20), nullable=False)  # image, video
    media_url: Mapped[str] = mapped_column(String(500), nullable=False)
    preview_url: Mapped[str | None] = mapped_column(String(500), default=None)
    aspect_ratio: Mapped[str | None] = mapped_column(String(20), default=None)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    post: Mapped[Post] = relationship(back_populates="media")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------
class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    demo_url: Mapped[str | None] = mapped_column(String(500), default=None)
    github_url: Mapped[str | None] = mapped_column(String(500), default=None)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    voice_note_url: Mapped[str | None] = mapped_column(String(500), default=None)
    tags: Mapped[list | None] = mapped_column(JSONB, default=list)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_projects_user_created", "user_id", "created_at"),
        Index("ix_projects_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id!r} title={self.title!r}>"


# ---------------------------------------------------------------------------
# Resources — community-submitted learning links
# ---------------------------------------------------------------------------
class Resource(Base):
    __tablename__ = "resources"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(50), default="article")
    tags: Mapped[list | None] = mapped_column(JSONB, default=list)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    user_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=True
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Resource id={self.id!r} title={self.title!r}>"


# ---------------------------------------------------------------------------
# Votes — single polarity row per (target, user)
# ---------------------------------------------------------------------------
class Vote(Base):
    """Upvote (+1) or downvote (-1) on a project or resource.

    Both polarities share one row, so "upvoted and downvoted at once" is
    unrepresentable.  Switching polarity is an UPDATE of ``value``.
    """
    __tablename__ = "votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("target_type", "target_id", "user_id", name="uq_votes_target_user"),
        CheckConstraint("value IN (1, -1)", name="ck_votes_value"),
        Index("ix_votes_target", "target_type", "target_id"),
    )

    def __repr__(self) -> str:
        return f"<Vote {self.target_type}:{self.target_id} user={self.user_id!r} value={self.value}>"


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "target_type", "target_id", "user_id", name="uq_bookmarks_target_user"
        ),
        Index("ix_bookmarks_user", "user_id", "created_at"),
    )


class PostLike(Base):
    __tablename__ = "post_likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),
    )


# ---------------------------------------------------------------------------
# Comments — on posts, projects and resources
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_comments_target_created", "target_type", "target_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Comment id={self.id!r} on {self.target_type}:{self.target_id}>"


class EmojiReaction(Base):
    __tablename__ = "emoji_reactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    emoji: Mapped[str] = mapped_column(String(10), nullable=False)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "emoji", "target_type", "target_id",
            name="uq_emoji_reactions_user_emoji_target",
        ),
        Index("ix_emoji_reactions_target", "target_type", "target_id"),
    )


# ---------------------------------------------------------------------------
# Follows — directed social graph
# ---------------------------------------------------------------------------
class Follow(Base):
    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), primary_key=True
    )
    following_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("follower_id <> following_id", name="ck_follows_no_self"),
        Index("ix_follows_following", "following_id"),
    )

    def __repr__(self) -> str:
        return f"<Follow {self.follower_id!r} -> {self.following_id!r}>"


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------
class Grant(Base):
    __tablename__ = "grants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[str | None] = mapped_column(String(100), default=None)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    requirements: Mapped[str | None] = mapped_column(Text, default=None)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(50), default=GrantStatus.OPEN.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Grant id={self.id!r} title={self.title!r} status={self.status!r}>"


class GrantSubmission(Base):
    """A project entered into a grant.  One per (grant, user), app-enforced."""
    __tablename__ = "grant_submissions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    grant_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("grants.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(50), default=ApplicationStatus.PENDING.value)
    is_winner: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_grant_submissions_grant_user", "grant_id", "user_id"),
    )


class GrantApplication(Base):
    """A free-form pitch to a grant.  One per (grant, user), app-enforced."""
    __tablename__ = "grant_applications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    grant_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("grants.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    pitch: Mapped[str] = mapped_column(Text, nullable=False)
    project_url: Mapped[str | None] = mapped_column(String(500), default=None)
    status: Mapped[str] = mapped_column(String(50), default=ApplicationStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_grant_applications_grant_user", "grant_id", "user_id"),
    )


# ---------------------------------------------------------------------------
# Notifications — per-recipient activity events
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, default=None)
    reference_id: Mapped[str | None] = mapped_column(String(64), default=None)
    reference_type: Mapped[str | None] = mapped_column(String(50), default=None)
    from_user_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
        Index("ix_notifications_reference", "reference_type", "reference_id"),
    )

    def __repr__(self) -> str:
        return f"<Notification id={self.id!r} to={self.user_id!r} type={self.type!r}>"


# ---------------------------------------------------------------------------
# Conversations & messages
# ---------------------------------------------------------------------------
class Conversation(Base):
    """A direct-message thread between exactly two users.

    The pair is stored in canonical order (``user1_id < user2_id``) and is
    unique, so (A, B) and (B, A) always resolve to the same row.
    """
    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    user1_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    user2_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    last_message_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_conversations_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_conversations_canonical"),
        Index("ix_conversations_user2", "user2_id"),
    )

    def other_participant(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def __repr__(self) -> str:
        return f"<Conversation id={self.id!r} {self.user1_id!r}<->{self.user2_id!r}>"


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    conversation_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    content: Mapped[str | None] = mapped_column(Text, default=None)
    message_type: Mapped[str] = mapped_column(String(20), default=MessageType.TEXT.value)
    voice_note_url: Mapped[str | None] = mapped_column(String(500), default=None)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    file_url: Mapped[str | None] = mapped_column(String(500), default=None)
    file_name: Mapped[str | None] = mapped_column(String(255), default=None)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_unread", "conversation_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Message id={self.id!r} conv={self.conversation_id!r} type={self.message_type!r}>"


# ---------------------------------------------------------------------------
# Stories — ephemeral media, visibility filtered at query time
# ---------------------------------------------------------------------------
class Story(Base):
    __tablename__ = "stories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    media_type: Mapped[str] = mapped_column(String(20), nullable=False)
    media_url: Mapped[str] = mapped_column(String(500), nullable=False)
    preview_url: Mapped[str | None] = mapped_column(String(500), default=None)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_stories_user_expires", "user_id", "expires_at"),
        Index("ix_stories_expires", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Story id={self.id!r} user={self.user_id!r} expires={self.expires_at}>"
