"""
vibes.errors — Typed Failures Raised by the Service Layer
==========================================================

Services raise these; the API layer maps them to HTTP status codes.
Idempotent duplicates (re-follow, re-like, re-upvote) are never errors.
"""

from __future__ import annotations


class VibesError(Exception):
    """Base class for all service-layer failures."""

    status_code = 500


class NotFoundError(VibesError):
    """A referenced entity or user does not exist."""

    status_code = 404


class UnauthorizedError(VibesError):
    """The actor is not the owner or participant the mutation requires."""

    status_code = 403


class DuplicateError(VibesError):
    """A second grant submission/application, or a username already taken."""

    status_code = 409


class InvalidActionError(VibesError):
    """The request is well-formed but not allowed (bad kind, self-conversation)."""

    status_code = 400
