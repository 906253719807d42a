"""
Core data models for the journeylog platform.

These models represent the fundamental entities: Users, Roles, Journeys,
Posts and Collaborator Grants. They carry the data the authorization
engine reads; none of them decide anything on their own.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from journeylog.core.permissions import Permission
from journeylog.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class Visibility(str, Enum):
    """Who can see a journey without being its owner or a collaborator."""

    PRIVATE = "private"                     # Owner and collaborators only
    PUBLIC_OPEN = "public_open"             # Anyone with the link
    PUBLIC_PROTECTED = "public_protected"   # Anyone with the link + passphrase


# =============================================================================
# Users & Roles
# =============================================================================


class User(BaseModel):
    """A registered user. Credentials live with the principal resolver."""

    id: str = Field(default_factory=lambda: generate_id("user"))
    username: str
    role_id: str
    created_at: datetime = Field(default_factory=utc_now)


class Role(BaseModel):
    """A named global permission set."""

    id: str = Field(default_factory=lambda: generate_id("role"))
    name: str
    permissions: frozenset[Permission] = Field(default_factory=frozenset)
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Journey
# =============================================================================


class Journey(BaseModel):
    """
    A travel journal - the top-level container.

    A journey belongs to exactly one owner. The owner is never stored as a
    collaborator; ownership is implicit.

    Invariants:
        passphrase_hash is set  <=>  visibility == PUBLIC_PROTECTED
        public_link_id is set   <=>  visibility != PRIVATE
    """

    id: str = Field(default_factory=lambda: generate_id("jrny"))

    name: str
    description: str = ""

    # Ownership
    owner_id: str

    # Public access
    visibility: Visibility = Visibility.PRIVATE
    public_link_id: str | None = None
    passphrase_hash: str | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_visibility(self) -> Journey:
        protected = self.visibility == Visibility.PUBLIC_PROTECTED
        if (self.passphrase_hash is not None) != protected:
            raise ValueError("passphrase_hash must be set iff the journey is protected")
        public = self.visibility != Visibility.PRIVATE
        if (self.public_link_id is not None) != public:
            raise ValueError("public_link_id must be set iff the journey is public")
        return self

    @property
    def is_public(self) -> bool:
        return self.visibility != Visibility.PRIVATE

    # Visibility transitions. Each keeps the invariants above intact.

    def publish(self, link_id: str) -> None:
        self.public_link_id = link_id
        self.visibility = Visibility.PUBLIC_OPEN
        self.touch()

    def unpublish(self) -> None:
        self.public_link_id = None
        self.passphrase_hash = None
        self.visibility = Visibility.PRIVATE
        self.touch()

    def protect(self, passphrase_hash: str) -> None:
        self.passphrase_hash = passphrase_hash
        self.visibility = Visibility.PUBLIC_PROTECTED
        self.touch()

    def unprotect(self) -> None:
        self.passphrase_hash = None
        self.visibility = Visibility.PUBLIC_OPEN
        self.touch()

    def update(self, **kwargs) -> None:
        """Update fields and set updated_at."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
        self.touch()

    def touch(self) -> None:
        self.updated_at = utc_now()


# =============================================================================
# Post
# =============================================================================


class Post(BaseModel):
    """A single journal entry inside a journey."""

    id: str = Field(default_factory=lambda: generate_id("post"))
    journey_id: str
    author_id: str

    title: str | None = None
    message: str = ""
    coordinates: dict[str, float] | None = None  # {"lat": ..., "lng": ...}
    media_items: list[dict[str, Any]] = Field(default_factory=list)

    # Drafts are never visible through a public link
    is_draft: bool = False

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def update(self, **kwargs) -> None:
        """Update fields and set updated_at."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
        self.updated_at = utc_now()


# =============================================================================
# Collaborator Grant
# =============================================================================


class CollaboratorGrant(BaseModel):
    """
    Per-journey, per-user permission set.

    Unique per (journey_id, user_id). The journey owner never has one.
    """

    journey_id: str
    user_id: str
    permissions: frozenset[Permission] = Field(default_factory=frozenset)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def key(self) -> tuple[str, str]:
        return (self.journey_id, self.user_id)

    def allows(self, permission: Permission) -> bool:
        return permission in self.permissions
