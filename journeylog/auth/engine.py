"""
The authorization decision engine.

Every question of the form "may this principal do X to this journey or
post?" is answered here, and only here. Four permission sources are
combined in a strict precedence order, first match wins:

    1. Anonymous        -> mutations denied, reads go to the public gate
    2. Super-override   -> `manage_roles` allows everything
    3. Global admin     -> e.g. `edit_any_post` covers `edit_post`
    4. Ownership        -> the journey owner, transitively over its posts
    5. Collaborator     -> the (journey, user) grant holds the permission
    6. Create journey   -> any authenticated principal
    7. Authorship       -> authors may edit/delete their own posts
    8. Fallback         -> Deny(InsufficientPermission)

`decide` is pure: it reads a snapshot from the store and returns a
Decision. It never caches, never mutates, never raises for a denial.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Union

from journeylog.auth.decisions import ALLOW, Decision, DenyReason
from journeylog.auth.passphrase import compare_passphrase
from journeylog.auth.principal import Anonymous, Principal
from journeylog.core.models import Journey, Post, Visibility
from journeylog.core.permissions import (
    ANY_COUNTERPARTS,
    ANY_SCOPED_PERMISSIONS,
    AUTHOR_PERMISSIONS,
    GLOBAL_ONLY_PERMISSIONS,
    OWNER_PERMISSIONS,
    Permission,
)
from journeylog.storage.base import ResourceStore

logger = logging.getLogger(__name__)


PassphraseComparer = Callable[[str, str], bool]


# =============================================================================
# Resource references
# =============================================================================


@dataclass(frozen=True)
class JourneyRef:
    """A journey, by id."""

    journey_id: str


@dataclass(frozen=True)
class PostRef:
    """
    A post, by id.

    journey_id and author_id may be supplied by a caller that already
    loaded the post; otherwise the engine looks them up.
    """

    post_id: str
    journey_id: str | None = None
    author_id: str | None = None

    @classmethod
    def of(cls, post: Post) -> PostRef:
        return cls(post_id=post.id, journey_id=post.journey_id, author_id=post.author_id)


Resource = Union[JourneyRef, PostRef]


@dataclass(frozen=True)
class _Target:
    """A resource resolved against the store."""

    journey: Journey
    author_id: str | None = None


# =============================================================================
# Public access (stateless)
# =============================================================================


def check_public_access(
    journey: Journey | None,
    supplied_passphrase: str | None,
    compare: PassphraseComparer = compare_passphrase,
) -> Decision:
    """
    Decide an anonymous read of a journey from its visibility state.

    Private and missing journeys look identical from the outside.
    """
    if journey is None or journey.visibility == Visibility.PRIVATE:
        return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

    if journey.visibility == Visibility.PUBLIC_OPEN:
        return ALLOW

    if not supplied_passphrase:
        return Decision.deny(DenyReason.PASSPHRASE_REQUIRED, "Passphrase required")

    if not compare(supplied_passphrase, journey.passphrase_hash):
        return Decision.deny(DenyReason.PASSPHRASE_INCORRECT, "Invalid passphrase")

    return ALLOW


# =============================================================================
# Engine
# =============================================================================


class AuthorizationEngine:
    """
    Single source of truth for journey and post authorization.

    Usage:
        engine = AuthorizationEngine(storage.resources)
        decision = engine.decide(principal, JourneyRef(journey_id), Permission.EDIT_JOURNEY)
        if not decision:
            return decision  # Deny(reason) flows back to the caller
    """

    def __init__(
        self,
        store: ResourceStore,
        compare: PassphraseComparer = compare_passphrase,
    ):
        self.store = store
        self.compare = compare

    # -------------------------------------------------------------------------
    # Permission decisions
    # -------------------------------------------------------------------------

    def decide(
        self,
        principal: Principal | Anonymous,
        resource: Resource | None,
        permission: Permission | str,
        credential: str | None = None,
    ) -> Decision:
        """
        Decide whether `principal` holds `permission` on `resource`.

        `resource` is None for operations that are not resource-scoped
        (create_journey, role administration). `credential` is the
        plaintext passphrase of an anonymous visitor; no permission in
        the closed set is ever granted to an anonymous principal, so it
        only matters for `decide_read`.
        """
        try:
            permission = Permission(permission)
        except ValueError:
            return Decision.deny(DenyReason.VALIDATION_ERROR, f"Unknown permission: {permission}")

        decision = self._decide(principal, resource, permission)
        if decision.denied:
            logger.debug(
                f"Denied {permission.value} on {resource} for "
                f"{principal.id or 'anonymous'}: {decision.reason.value}"
            )
        return decision

    def _decide(
        self,
        principal: Principal | Anonymous,
        resource: Resource | None,
        permission: Permission,
    ) -> Decision:
        # 1. Anonymous principals never mutate anything
        if principal.is_anonymous:
            return Decision.deny(DenyReason.AUTHENTICATION_REQUIRED, "Authentication required")

        # 2. Super-override
        if principal.is_super_admin:
            return ALLOW

        # 3. Global admin-wide permission ("any" variants, manage_users)
        if self._has_global_permission(principal, permission):
            return ALLOW

        target = None
        if resource is not None:
            target = self._resolve(resource)
            if target is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Resource not found")

            # 4. Ownership, transitive from journey to its posts
            if principal.id == target.journey.owner_id and permission in OWNER_PERMISSIONS:
                return ALLOW

            # 5. Collaborator grant
            grant = self.store.get_grant(target.journey.id, principal.id)
            if grant is not None and grant.allows(permission):
                return ALLOW

        # 6. Anyone signed in may start a journey
        if permission == Permission.CREATE_JOURNEY:
            return ALLOW

        # 7. Authors keep control of their own posts
        if (
            isinstance(resource, PostRef)
            and permission in AUTHOR_PERMISSIONS
            and target.author_id == principal.id
        ):
            return ALLOW

        # 8. Fallback
        return Decision.deny(DenyReason.INSUFFICIENT_PERMISSION, "Insufficient permissions")

    @staticmethod
    def _has_global_permission(principal: Principal, permission: Permission) -> bool:
        if permission in GLOBAL_ONLY_PERMISSIONS:
            candidate = permission
        else:
            candidate = ANY_COUNTERPARTS.get(permission)
        return candidate is not None and principal.has_global(candidate)

    # -------------------------------------------------------------------------
    # Read decisions
    # -------------------------------------------------------------------------

    def decide_read(
        self,
        principal: Principal | Anonymous,
        resource: Resource,
        credential: str | None = None,
    ) -> Decision:
        """
        Decide read access to a journey or post.

        Anonymous visitors go through the public gate (drafts are never
        visible to them). Signed-in principals may read when they hold the
        super-override or an admin-wide "any" permission, own the journey,
        or hold any grant on it.
        """
        if principal.is_anonymous:
            decision = self._decide_public_read(resource, credential)
        else:
            decision = self._decide_member_read(principal, resource)

        if decision.denied:
            logger.debug(
                f"Denied read on {resource} for "
                f"{principal.id or 'anonymous'}: {decision.reason.value}"
            )
        return decision

    def _decide_public_read(self, resource: Resource, credential: str | None) -> Decision:
        post = None
        if isinstance(resource, PostRef):
            post = self.store.get_post(resource.post_id)
            if post is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Post not found")
            journey_id = post.journey_id
        else:
            journey_id = resource.journey_id

        decision = check_public_access(self.store.get_journey(journey_id), credential, self.compare)
        if decision and post is not None and post.is_draft:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Post not found")
        return decision

    def _decide_member_read(self, principal: Principal, resource: Resource) -> Decision:
        if principal.is_super_admin:
            return ALLOW

        target = self._resolve(resource)
        if target is None:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Resource not found")

        if principal.id == target.journey.owner_id:
            return ALLOW

        # Whoever may edit or delete everywhere may also read everywhere
        if principal.global_permissions & ANY_SCOPED_PERMISSIONS:
            return ALLOW

        if self.store.get_grant(target.journey.id, principal.id) is not None:
            return ALLOW

        return Decision.deny(DenyReason.INSUFFICIENT_PERMISSION, "Insufficient permissions")

    # -------------------------------------------------------------------------
    # Public access
    # -------------------------------------------------------------------------

    def check_public_access(self, journey: Journey | None, supplied_passphrase: str | None) -> Decision:
        """`check_public_access` bound to this engine's passphrase comparer."""
        return check_public_access(journey, supplied_passphrase, self.compare)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _resolve(self, resource: Resource) -> _Target | None:
        if isinstance(resource, JourneyRef):
            journey = self.store.get_journey(resource.journey_id)
            return _Target(journey=journey) if journey else None

        journey_id, author_id = resource.journey_id, resource.author_id
        if journey_id is None or author_id is None:
            post = self.store.get_post(resource.post_id)
            if post is None:
                return None
            journey_id, author_id = post.journey_id, post.author_id

        journey = self.store.get_journey(journey_id)
        if journey is None:
            return None
        return _Target(journey=journey, author_id=author_id)
