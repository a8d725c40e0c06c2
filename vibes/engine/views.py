"""
vibes.engine.views — Typed View Records
========================================

Read paths return these instead of loosely shaped dicts.  Each content
kind has its own record with a ``type`` discriminant, so a mixed feed is a
list of ``PostView | ProjectView`` that callers can switch on.

All records are plain dataclasses; FastAPI serializes them directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from vibes.database.models import Profile, User

__all__ = [
    "AuthorView",
    "CommentView",
    "ConversationView",
    "FeedItem",
    "GrantView",
    "MediaView",
    "MessageView",
    "NotificationView",
    "PostView",
    "ProfileView",
    "ProjectView",
    "ResourceView",
    "StoryGroup",
    "StoryView",
    "UserSummary",
]


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class AuthorView:
    """User + profile, flattened.  Built for every content author.

    Public payload: the account email is never included.
    """

    id: str
    first_name: str | None
    last_name: str | None
    profile_image_url: str | None
    username: str | None = None
    bio: str | None = None
    skills: list = field(default_factory=list)
    tools: list = field(default_factory=list)
    is_admin: bool = False
    is_staff: bool = False
    is_news_bot: bool = False

    @classmethod
    def from_rows(cls, user: User, profile: Profile | None) -> AuthorView:
        """Combine *user* with *profile*; a missing profile yields defaults."""
        if profile is None:
            return cls(
                id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                profile_image_url=user.profile_image_url,
            )
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            profile_image_url=profile.profile_image_url or user.profile_image_url,
            username=profile.username,
            bio=profile.bio,
            skills=list(profile.skills or []),
            tools=list(profile.tools or []),
            is_admin=bool(profile.is_admin),
            is_staff=bool(profile.is_staff),
            is_news_bot=bool(profile.is_news_bot),
        )


@dataclass(slots=True)
class UserSummary:
    """The small "who" snippet attached to notifications and messages."""

    id: str
    username: str | None
    first_name: str | None
    last_name: str | None
    profile_image_url: str | None


@dataclass(slots=True)
class ProfileView:
    """A profile page: author fields, social links and graph counters."""

    author: AuthorView
    twitter_url: str | None
    github_url: str | None
    website_url: str | None
    linkedin_url: str | None
    follower_count: int = 0
    following_count: int = 0
    is_following: bool = False


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class MediaView:
    id: str
    media_type: str
    media_url: str
    preview_url: str | None
    aspect_ratio: str | None
    order_index: int


@dataclass(slots=True)
class PostView:
    id: str
    user_id: str
    content: str | None
    voice_note_url: str | None
    view_count: int
    created_at: datetime
    author: AuthorView | None
    media: list[MediaView] = field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0
    has_liked: bool = False
    type: Literal["post"] = "post"


@dataclass(slots=True)
class ProjectView:
    id: str
    user_id: str
    title: str
    description: str
    demo_url: str | None
    github_url: str | None
    image_url: str | None
    voice_note_url: str | None
    tags: list
    is_featured: bool
    view_count: int
    created_at: datetime
    author: AuthorView | None
    upvote_count: int = 0
    downvote_count: int = 0
    comment_count: int = 0
    has_upvoted: bool = False
    has_downvoted: bool = False
    has_bookmarked: bool = False
    type: Literal["project"] = "project"


FeedItem = PostView | ProjectView


@dataclass(slots=True)
class ResourceView:
    id: str
    user_id: str | None
    title: str
    description: str
    url: str
    category: str
    resource_type: str
    tags: list
    image_url: str | None
    is_approved: bool
    is_featured: bool
    created_at: datetime
    author: AuthorView | None
    upvote_count: int = 0
    downvote_count: int = 0
    comment_count: int = 0
    has_upvoted: bool = False
    has_downvoted: bool = False
    has_bookmarked: bool = False
    type: Literal["resource"] = "resource"


@dataclass(slots=True)
class GrantView:
    id: str
    user_id: str
    title: str
    description: str
    amount: str | None
    deadline: datetime | None
    requirements: str | None
    image_url: str | None
    status: str
    created_at: datetime
    author: AuthorView | None
    submission_count: int = 0
    application_count: int = 0
    has_submitted: bool = False
    has_applied: bool = False
    type: Literal["grant"] = "grant"


@dataclass(slots=True)
class CommentView:
    id: str
    target_type: str
    target_id: str
    user_id: str
    content: str
    created_at: datetime
    author: AuthorView | None
    type: Literal["comment"] = "comment"


# ---------------------------------------------------------------------------
# Notifications, messaging, stories
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class NotificationView:
    id: str
    type: str
    title: str
    message: str | None
    reference_id: str | None
    reference_type: str | None
    is_read: bool
    created_at: datetime
    from_user: UserSummary | None = None


@dataclass(slots=True)
class MessageView:
    id: str
    conversation_id: str
    sender_id: str
    content: str | None
    message_type: str
    voice_note_url: str | None
    image_url: str | None
    file_url: str | None
    file_name: str | None
    is_read: bool
    created_at: datetime
    sender: UserSummary | None = None


@dataclass(slots=True)
class ConversationView:
    id: str
    user1_id: str
    user2_id: str
    last_message_at: datetime
    created_at: datetime
    other_user: UserSummary | None
    unread_count: int = 0
    last_message: MessageView | None = None


@dataclass(slots=True)
class StoryView:
    id: str
    user_id: str
    media_type: str
    media_url: str
    preview_url: str | None
    created_at: datetime
    expires_at: datetime
    view_count: int = 0


@dataclass(slots=True)
class StoryGroup:
    """All live stories of one author; ``story_count`` drives the ring tier."""

    user: AuthorView | None
    stories: list[StoryView]
    story_count: int
