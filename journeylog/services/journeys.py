"""
Journey and post lifecycle.

Creates, edits and deletes journeys and posts. Each operation asks the
engine once, with the permission that operation needs, before touching
the store.
"""

from __future__ import annotations

import logging
from typing import Any

from journeylog.auth.decisions import Decision, DenyReason
from journeylog.auth.engine import AuthorizationEngine, JourneyRef, PostRef
from journeylog.auth.principal import Anonymous, Principal
from journeylog.core.models import Journey, Post
from journeylog.core.permissions import Permission
from journeylog.storage.base import MissingReference

logger = logging.getLogger(__name__)


# Fields a caller may change through update_journey / update_post
JOURNEY_EDITABLE_FIELDS = frozenset({"name", "description"})
POST_EDITABLE_FIELDS = frozenset({"title", "message", "coordinates", "media_items"})


class JourneyService:
    """
    Journeys and their posts.

    New journeys always start Private; visibility changes go through the
    PublicAccessGate.
    """

    def __init__(self, engine: AuthorizationEngine):
        self.engine = engine
        self.store = engine.store

    # =========================================================================
    # Journeys
    # =========================================================================

    def create_journey(
        self,
        actor: Principal | Anonymous,
        name: str,
        description: str = "",
    ) -> Decision:
        """Allow carries the new journey, owned by the actor."""
        decision = self.engine.decide(actor, None, Permission.CREATE_JOURNEY)
        if decision.denied:
            return decision

        if not name or not name.strip():
            return Decision.deny(DenyReason.VALIDATION_ERROR, "Journey name is required")

        journey = Journey(name=name.strip(), description=description, owner_id=actor.id)
        try:
            self.store.save_journey(journey)
        except MissingReference:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "User not found")

        logger.info(f"Journey {journey.id} created by {actor.id}")
        return Decision.allow(journey)

    def update_journey(
        self,
        journey_id: str,
        actor: Principal | Anonymous,
        **changes: Any,
    ) -> Decision:
        """Change name/description. Allow carries the journey."""
        unknown = set(changes) - JOURNEY_EDITABLE_FIELDS
        if unknown:
            return Decision.deny(DenyReason.VALIDATION_ERROR, f"Cannot update: {', '.join(sorted(unknown))}")

        with self.store.transaction():
            journey = self.store.get_journey(journey_id)
            if journey is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

            decision = self.engine.decide(actor, JourneyRef(journey_id), Permission.EDIT_JOURNEY)
            if decision.denied:
                return decision

            for field, value in changes.items():
                if not isinstance(value, str):
                    return Decision.deny(DenyReason.VALIDATION_ERROR, f"Journey {field} must be a string")
            if "name" in changes:
                changes["name"] = changes["name"].strip()
                if not changes["name"]:
                    return Decision.deny(DenyReason.VALIDATION_ERROR, "Journey name is required")

            journey.update(**changes)
            try:
                self.store.save_journey(journey)
            except MissingReference:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

        logger.info(f"Journey {journey_id} updated by {actor.id}")
        return Decision.allow(journey)

    def delete_journey(self, journey_id: str, actor: Principal | Anonymous) -> Decision:
        """Delete a journey together with its posts and grants."""
        with self.store.transaction():
            if self.store.get_journey(journey_id) is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

            decision = self.engine.decide(actor, JourneyRef(journey_id), Permission.DELETE_JOURNEY)
            if decision.denied:
                return decision

            if not self.store.delete_journey(journey_id):
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

        logger.info(f"Journey {journey_id} deleted by {actor.id}")
        return Decision.allow()

    # =========================================================================
    # Posts
    # =========================================================================

    def create_post(
        self,
        journey_id: str,
        actor: Principal | Anonymous,
        message: str,
        title: str | None = None,
        is_draft: bool = False,
        **extra: Any,
    ) -> Decision:
        """Allow carries the new post, authored by the actor."""
        unknown = set(extra) - POST_EDITABLE_FIELDS
        if unknown:
            return Decision.deny(DenyReason.VALIDATION_ERROR, f"Unknown fields: {', '.join(sorted(unknown))}")

        with self.store.transaction():
            decision = self.engine.decide(actor, JourneyRef(journey_id), Permission.CREATE_POST)
            if decision.denied:
                return decision

            if not message or not message.strip():
                return Decision.deny(DenyReason.VALIDATION_ERROR, "Post message is required")

            post = Post(
                journey_id=journey_id,
                author_id=actor.id,
                title=title,
                message=message,
                is_draft=is_draft,
                **extra,
            )
            try:
                self.store.save_post(post)
            except MissingReference:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

        logger.info(f"Post {post.id} created in journey {journey_id} by {actor.id}")
        return Decision.allow(post)

    def update_post(
        self,
        post_id: str,
        actor: Principal | Anonymous,
        **changes: Any,
    ) -> Decision:
        """Edit a post's content. Allow carries the post."""
        unknown = set(changes) - POST_EDITABLE_FIELDS
        if unknown:
            return Decision.deny(DenyReason.VALIDATION_ERROR, f"Cannot update: {', '.join(sorted(unknown))}")

        return self._mutate_post(post_id, actor, Permission.EDIT_POST, changes)

    def publish_post(self, post_id: str, actor: Principal | Anonymous) -> Decision:
        """Turn a draft into a published post. Allow carries the post."""
        return self._mutate_post(post_id, actor, Permission.PUBLISH_POST_ON_JOURNEY, {"is_draft": False})

    def delete_post(self, post_id: str, actor: Principal | Anonymous) -> Decision:
        with self.store.transaction():
            post = self.store.get_post(post_id)
            if post is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Post not found")

            decision = self.engine.decide(actor, PostRef.of(post), Permission.DELETE_POST)
            if decision.denied:
                return decision

            if not self.store.delete_post(post_id):
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Post not found")

        logger.info(f"Post {post_id} deleted by {actor.id}")
        return Decision.allow()

    def list_posts(
        self,
        journey_id: str,
        principal: Principal | Anonymous,
        passphrase: str | None = None,
    ) -> Decision:
        """
        Allow carries the readable posts, newest first.

        Anonymous readers only ever see published posts.
        """
        decision = self.engine.decide_read(principal, JourneyRef(journey_id), passphrase)
        if decision.denied:
            return decision

        posts = self.store.list_posts(journey_id)
        if principal.is_anonymous:
            posts = [p for p in posts if not p.is_draft]
        return Decision.allow(posts)

    # =========================================================================
    # Internal
    # =========================================================================

    def _mutate_post(
        self,
        post_id: str,
        actor: Principal | Anonymous,
        permission: Permission,
        changes: dict[str, Any],
    ) -> Decision:
        with self.store.transaction():
            post = self.store.get_post(post_id)
            if post is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Post not found")

            decision = self.engine.decide(actor, PostRef.of(post), permission)
            if decision.denied:
                return decision

            post.update(**changes)
            try:
                self.store.save_post(post)
            except MissingReference:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

        logger.info(f"Post {post_id} updated by {actor.id} ({permission.value})")
        return Decision.allow(post)
