"""
Collaborator grant management.

Adds, updates and removes the per-journey permission sets the engine
reads in its collaborator step. Every operation first asks the engine
for `manage_journey_access` on the journey.
"""

from __future__ import annotations

import logging
from typing import Iterable

from journeylog.auth.decisions import Decision, DenyReason
from journeylog.auth.engine import AuthorizationEngine, JourneyRef
from journeylog.auth.principal import Anonymous, Principal
from journeylog.core.models import CollaboratorGrant, Journey
from journeylog.core.permissions import (
    DEFAULT_COLLABORATOR_FLAGS,
    CollaboratorFlags,
    InvalidPermissionError,
    Permission,
    parse_grant_permissions,
)
from journeylog.core.utils import utc_now
from journeylog.storage.base import MissingReference, UniqueViolation

logger = logging.getLogger(__name__)


PermissionsInput = Iterable[Permission | str] | CollaboratorFlags


class GrantManager:
    """
    Manage who collaborates on a journey and with which permissions.

    Mutations run inside one store transaction. The duplicate check here
    is advisory; the store's unique (journey, user) constraint decides
    when two requests race.
    """

    def __init__(self, engine: AuthorizationEngine):
        self.engine = engine
        self.store = engine.store

    def list_collaborators(self, journey_id: str, actor: Principal | Anonymous) -> Decision:
        """Allow carries the journey's grants."""
        journey, decision = self._authorize(journey_id, actor)
        if decision.denied:
            return decision
        return Decision.allow(self.store.list_grants(journey.id))

    def add_collaborator(
        self,
        journey_id: str,
        target_user_id: str,
        permissions: PermissionsInput | None,
        actor: Principal | Anonymous,
    ) -> Decision:
        """
        Grant `target_user_id` access to a journey.

        `permissions` may be permission names, a CollaboratorFlags shorthand,
        or None for the default collaborator flags. Allow carries the grant.
        """
        with self.store.transaction():
            journey = self.store.get_journey(journey_id)
            if journey is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

            # Rejected whoever asks
            if target_user_id == journey.owner_id:
                return Decision.deny(DenyReason.VALIDATION_ERROR, "Owner cannot be a collaborator")

            decision = self.engine.decide(actor, JourneyRef(journey_id), Permission.MANAGE_JOURNEY_ACCESS)
            if decision.denied:
                return decision

            if self.store.get_user(target_user_id) is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "User not found")

            parsed = self._parse(permissions)
            if isinstance(parsed, Decision):
                return parsed

            if self.store.get_grant(journey_id, target_user_id) is not None:
                return Decision.deny(DenyReason.DUPLICATE_GRANT, "User is already a collaborator")

            grant = CollaboratorGrant(
                journey_id=journey_id,
                user_id=target_user_id,
                permissions=parsed,
            )
            try:
                self.store.insert_grant(grant)
            except UniqueViolation:
                logger.warning(f"Concurrent grant for {target_user_id} on journey {journey_id}")
                return Decision.deny(DenyReason.DUPLICATE_GRANT, "User is already a collaborator")
            except MissingReference:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")

        logger.info(
            f"Collaborator {target_user_id} added to journey {journey_id} by {actor.id}: "
            f"{sorted(p.value for p in grant.permissions)}"
        )
        return Decision.allow(grant)

    def update_collaborator_permissions(
        self,
        journey_id: str,
        target_user_id: str,
        new_permissions: PermissionsInput,
        actor: Principal | Anonymous,
    ) -> Decision:
        """Replace (never merge) a collaborator's permission set. Allow carries the grant."""
        with self.store.transaction():
            journey, decision = self._authorize(journey_id, actor)
            if decision.denied:
                return decision

            if new_permissions is None:
                return Decision.deny(DenyReason.VALIDATION_ERROR, "Permissions are required")

            parsed = self._parse(new_permissions)
            if isinstance(parsed, Decision):
                return parsed

            grant = self.store.get_grant(journey_id, target_user_id)
            if grant is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Collaborator not found for this journey")

            grant.permissions = parsed
            grant.updated_at = utc_now()
            if not self.store.update_grant(grant):
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Collaborator not found for this journey")

        logger.info(
            f"Collaborator {target_user_id} on journey {journey_id} updated by {actor.id}: "
            f"{sorted(p.value for p in grant.permissions)}"
        )
        return Decision.allow(grant)

    def remove_collaborator(
        self,
        journey_id: str,
        target_user_id: str,
        actor: Principal | Anonymous,
    ) -> Decision:
        """Remove a collaborator. ResourceNotFound when there was no grant."""
        with self.store.transaction():
            journey, decision = self._authorize(journey_id, actor)
            if decision.denied:
                return decision

            if not self.store.delete_grant(journey_id, target_user_id):
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Collaborator not found for this journey")

        logger.info(f"Collaborator {target_user_id} removed from journey {journey_id} by {actor.id}")
        return Decision.allow()

    # =========================================================================
    # Internal
    # =========================================================================

    def _authorize(
        self,
        journey_id: str,
        actor: Principal | Anonymous,
    ) -> tuple[Journey | None, Decision]:
        journey = self.store.get_journey(journey_id)
        if journey is None:
            return None, Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")
        decision = self.engine.decide(actor, JourneyRef(journey_id), Permission.MANAGE_JOURNEY_ACCESS)
        return journey, decision

    @staticmethod
    def _parse(permissions: PermissionsInput | None) -> frozenset[Permission] | Decision:
        if permissions is None:
            return DEFAULT_COLLABORATOR_FLAGS.to_permissions()
        if isinstance(permissions, CollaboratorFlags):
            return permissions.to_permissions()
        if isinstance(permissions, str):
            permissions = [permissions]
        try:
            return parse_grant_permissions(permissions)
        except InvalidPermissionError as e:
            return Decision.deny(DenyReason.VALIDATION_ERROR, str(e))
