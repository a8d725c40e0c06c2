"""Initial schema: identity, content, interaction ledger, messaging, stories

Revision ID: 5c0e7a1d2b94
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c0e7a1d2b94'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(64), primary_key=True)


def _user_fk(name: str = "user_id", nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.String(64), sa.ForeignKey("users.id"), nullable=nullable)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def upgrade() -> None:
    """Create every table of the storage engine."""

    # --- identity ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_table(
        "profiles",
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("username", sa.String(64), nullable=True, unique=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("skills", postgresql.JSONB, nullable=True, server_default="[]"),
        sa.Column("tools", postgresql.JSONB, nullable=True, server_default="[]"),
        sa.Column("twitter_url", sa.String(500), nullable=True),
        sa.Column("github_url", sa.String(500), nullable=True),
        sa.Column("website_url", sa.String(500), nullable=True),
        sa.Column("linkedin_url", sa.String(500), nullable=True),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_staff", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_news_bot", sa.Boolean, nullable=False, server_default=sa.false()),
    )

    # --- content ---
    op.create_table(
        "posts",
        _id(),
        _user_fk(),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("voice_note_url", sa.String(500), nullable=True),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_posts_user_created", "posts", ["user_id", "created_at"])
    op.create_index("ix_posts_created", "posts", ["created_at"])

    op.create_table(
        "post_media",
        _id(),
        sa.Column(
            "post_id", sa.String(64),
            sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("media_type", sa.String(20), nullable=False),
        sa.Column("media_url", sa.String(500), nullable=False),
        sa.Column("preview_url", sa.String(500), nullable=True),
        sa.Column("aspect_ratio", sa.String(20), nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
    )

    op.create_table(
        "projects",
        _id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("demo_url", sa.String(500), nullable=True),
        sa.Column("github_url", sa.String(500), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("voice_note_url", sa.String(500), nullable=True),
        sa.Column("tags", postgresql.JSONB, nullable=True, server_default="[]"),
        _user_fk(),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_projects_user_created", "projects", ["user_id", "created_at"])
    op.create_index("ix_projects_created", "projects", ["created_at"])

    op.create_table(
        "resources",
        _id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("url", sa.String(500), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default="article"),
        sa.Column("tags", postgresql.JSONB, nullable=True, server_default="[]"),
        sa.Column("image_url", sa.String(500), nullable=True),
        _user_fk(nullable=True),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        _created_at(),
    )

    # --- interaction ledger ---
    op.create_table(
        "votes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        _user_fk(),
        sa.Column("value", sa.SmallInteger, nullable=False),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("target_type", "target_id", "user_id", name="uq_votes_target_user"),
        sa.CheckConstraint("value IN (1, -1)", name="ck_votes_value"),
    )
    op.create_index("ix_votes_target", "votes", ["target_type", "target_id"])

    op.create_table(
        "bookmarks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        _user_fk(),
        _created_at(),
        sa.UniqueConstraint(
            "target_type", "target_id", "user_id", name="uq_bookmarks_target_user"
        ),
    )
    op.create_index("ix_bookmarks_user", "bookmarks", ["user_id", "created_at"])

    op.create_table(
        "post_likes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "post_id", sa.String(64),
            sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False,
        ),
        _user_fk(),
        _created_at(),
        sa.UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),
    )

    op.create_table(
        "comments",
        _id(),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        _user_fk(),
        sa.Column("content", sa.Text, nullable=False),
        _created_at(),
    )
    op.create_index(
        "ix_comments_target_created", "comments", ["target_type", "target_id", "created_at"]
    )

    op.create_table(
        "emoji_reactions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _user_fk(),
        sa.Column("emoji", sa.String(10), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "user_id", "emoji", "target_type", "target_id",
            name="uq_emoji_reactions_user_emoji_target",
        ),
    )
    op.create_index("ix_emoji_reactions_target", "emoji_reactions", ["target_type", "target_id"])

    op.create_table(
        "follows",
        sa.Column("follower_id", sa.String(64), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("following_id", sa.String(64), sa.ForeignKey("users.id"), primary_key=True),
        _created_at(),
        sa.CheckConstraint("follower_id <> following_id", name="ck_follows_no_self"),
    )
    op.create_index("ix_follows_following", "follows", ["following_id"])

    # --- grants ---
    op.create_table(
        "grants",
        _id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("amount", sa.String(100), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requirements", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        _user_fk(),
        sa.Column("status", sa.String(50), nullable=False, server_default="open"),
        _created_at(),
    )
    op.create_table(
        "grant_submissions",
        _id(),
        sa.Column(
            "grant_id", sa.String(64),
            sa.ForeignKey("grants.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("project_id", sa.String(64), sa.ForeignKey("projects.id"), nullable=False),
        _user_fk(),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("is_winner", sa.Boolean, nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index(
        "ix_grant_submissions_grant_user", "grant_submissions", ["grant_id", "user_id"]
    )
    op.create_table(
        "grant_applications",
        _id(),
        sa.Column(
            "grant_id", sa.String(64),
            sa.ForeignKey("grants.id", ondelete="CASCADE"), nullable=False,
        ),
        _user_fk(),
        sa.Column("pitch", sa.Text, nullable=False),
        sa.Column("project_url", sa.String(500), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        _created_at(),
    )
    op.create_index(
        "ix_grant_applications_grant_user", "grant_applications", ["grant_id", "user_id"]
    )

    # --- notifications ---
    op.create_table(
        "notifications",
        _id(),
        _user_fk(),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("reference_type", sa.String(50), nullable=True),
        _user_fk("from_user_id", nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index(
        "ix_notifications_reference", "notifications", ["reference_type", "reference_id"]
    )

    # --- messaging ---
    op.create_table(
        "conversations",
        _id(),
        _user_fk("user1_id"),
        _user_fk("user2_id"),
        sa.Column(
            "last_message_at", sa.DateTime(timezone=True),
            nullable=False, server_default=sa.func.now(),
        ),
        _created_at(),
        sa.UniqueConstraint("user1_id", "user2_id", name="uq_conversations_pair"),
        sa.CheckConstraint("user1_id < user2_id", name="ck_conversations_canonical"),
    )
    op.create_index("ix_conversations_user2", "conversations", ["user2_id"])

    op.create_table(
        "messages",
        _id(),
        sa.Column(
            "conversation_id", sa.String(64),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False,
        ),
        _user_fk("sender_id"),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("message_type", sa.String(20), nullable=False, server_default="text"),
        sa.Column("voice_note_url", sa.String(500), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("file_url", sa.String(500), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index(
        "ix_messages_conversation_created", "messages", ["conversation_id", "created_at"]
    )
    op.create_index("ix_messages_unread", "messages", ["conversation_id", "is_read"])

    # --- stories ---
    op.create_table(
        "stories",
        _id(),
        _user_fk(),
        sa.Column("media_type", sa.String(20), nullable=False),
        sa.Column("media_url", sa.String(500), nullable=False),
        sa.Column("preview_url", sa.String(500), nullable=True),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_stories_user_expires", "stories", ["user_id", "expires_at"])
    op.create_index("ix_stories_expires", "stories", ["expires_at"])


def downgrade() -> None:
    """Drop every table, children first."""
    for table in (
        "stories",
        "messages",
        "conversations",
        "notifications",
        "grant_applications",
        "grant_submissions",
        "grants",
        "follows",
        "emoji_reactions",
        "comments",
        "post_likes",
        "bookmarks",
        "votes",
        "resources",
        "projects",
        "post_media",
        "posts",
        "profiles",
        "users",
    ):
        op.drop_table(table)
