"""
Vibes — Storage Engine for a Community of Builders
===================================================
Turns relational rows (posts, projects, votes, follows, conversations,
notifications, stories) into viewer-specific payloads, and keeps the
cross-entity invariants of the social graph intact: one vote polarity per
user and entity, idempotent follows and likes, best-effort notification
fan-out, 24h stories and canonical conversation pairs.

Package layout::

    vibes/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Policy constants (story TTL, feed limits)
    ├── errors.py          # NotFound / Unauthorized / Duplicate / InvalidAction
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # News-bot account provisioning
    ├── engine/
    │   ├── views.py       # Typed view records (PostView, ProjectView, …)
    │   └── enrichment.py  # Batched counts + viewer flags
    ├── services/
    │   ├── identity_service.py      # Users, profiles, usernames, search
    │   ├── social_graph_service.py  # Follow / unfollow
    │   ├── interaction_service.py   # Votes, likes, bookmarks, emoji
    │   ├── content_service.py       # Posts, projects, resources, comments
    │   ├── feed_service.py          # Followee feed composition
    │   ├── notification_service.py  # Fan-out + read side
    │   ├── messaging_service.py     # Conversations + messages
    │   ├── story_service.py         # 24h stories
    │   └── grant_service.py         # Grants, submissions, applications
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine + viewer injection
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
