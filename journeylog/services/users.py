"""
User administration.

Listing, creating, renaming, re-roling and deleting users. Every
operation requires the global `manage_users` permission. Deleting a user
removes their journeys, posts and grants with them.
"""

from __future__ import annotations

import logging

from journeylog.auth.decisions import Decision, DenyReason
from journeylog.auth.engine import AuthorizationEngine
from journeylog.auth.principal import Anonymous, Principal
from journeylog.core.models import User
from journeylog.core.permissions import USER_ROLE, Permission
from journeylog.storage.base import RoleStore, StorageProvider, UniqueViolation

logger = logging.getLogger(__name__)


class UserService:
    """Manage the users of the platform."""

    def __init__(self, engine: AuthorizationEngine, storage: StorageProvider):
        self.engine = engine
        self.roles: RoleStore = storage.roles
        self.resources = storage.resources

    def list_users(self, actor: Principal | Anonymous) -> Decision:
        decision = self._authorize(actor)
        if decision.denied:
            return decision
        return Decision.allow(self.resources.list_users())

    def create_user(
        self,
        actor: Principal | Anonymous,
        username: str,
        role_id: str | None = None,
    ) -> Decision:
        """
        Register a user. Without `role_id` the user gets the `user` role.

        Allow carries the new user.
        """
        decision = self._authorize(actor)
        if decision.denied:
            return decision

        username = (username or "").strip()
        if not username:
            return Decision.deny(DenyReason.VALIDATION_ERROR, "Username is required")

        if role_id is None:
            role = self.roles.get_role_by_name(USER_ROLE)
        else:
            role = self.roles.get_role(role_id)
        if role is None:
            return Decision.deny(DenyReason.VALIDATION_ERROR, "Invalid role_id provided")

        user = User(username=username, role_id=role.id)
        try:
            self.resources.save_user(user)
        except UniqueViolation:
            return Decision.deny(DenyReason.CONFLICT, "Username already exists")

        logger.info(f"User {user.id} ({role.name}) created by {actor.id}")
        return Decision.allow(user)

    def update_user(
        self,
        actor: Principal | Anonymous,
        user_id: str,
        username: str | None = None,
        role_id: str | None = None,
    ) -> Decision:
        """Rename and/or move a user to another role. Allow carries the user."""
        decision = self._authorize(actor)
        if decision.denied:
            return decision

        if username is None and role_id is None:
            return Decision.deny(DenyReason.VALIDATION_ERROR, "No fields provided for update")

        if role_id is not None and self.roles.get_role(role_id) is None:
            return Decision.deny(DenyReason.VALIDATION_ERROR, "Invalid role_id provided")

        with self.resources.transaction():
            user = self.resources.get_user(user_id)
            if user is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "User not found")

            if username is not None:
                username = username.strip()
                if not username:
                    return Decision.deny(DenyReason.VALIDATION_ERROR, "Username is required")
                user.username = username
            if role_id is not None:
                user.role_id = role_id

            try:
                self.resources.save_user(user)
            except UniqueViolation:
                return Decision.deny(DenyReason.CONFLICT, "Username already exists")

        logger.info(f"User {user_id} updated by {actor.id}")
        return Decision.allow(user)

    def delete_user(self, actor: Principal | Anonymous, user_id: str) -> Decision:
        """Delete a user together with their journeys, posts and grants."""
        decision = self._authorize(actor)
        if decision.denied:
            return decision

        if user_id == actor.id:
            return Decision.deny(
                DenyReason.INSUFFICIENT_PERMISSION,
                "You cannot delete your own account",
            )

        if not self.resources.delete_user(user_id):
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "User not found")

        logger.info(f"User {user_id} deleted by {actor.id}")
        return Decision.allow()

    def _authorize(self, actor: Principal | Anonymous) -> Decision:
        return self.engine.decide(actor, None, Permission.MANAGE_USERS)
