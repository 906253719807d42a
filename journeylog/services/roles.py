"""
Role administration.

Roles are global permission sets. Only holders of `manage_roles` may see
or change them. The reserved `admin` and `user` roles always exist, and
`admin` always keeps `manage_roles`.
"""

from __future__ import annotations

import logging
from typing import Iterable

from journeylog.auth.decisions import Decision, DenyReason
from journeylog.auth.engine import AuthorizationEngine
from journeylog.auth.principal import Anonymous, Principal
from journeylog.core.models import Role
from journeylog.core.permissions import (
    ADMIN_ROLE,
    RESERVED_ROLES,
    SUPER_PERMISSION,
    InvalidPermissionError,
    Permission,
    parse_permissions,
)
from journeylog.storage.base import RoleStore, StorageProvider, UniqueViolation

logger = logging.getLogger(__name__)


class RoleService:
    """Create, change, delete and assign roles."""

    def __init__(self, engine: AuthorizationEngine, storage: StorageProvider):
        self.engine = engine
        self.roles: RoleStore = storage.roles
        self.resources = storage.resources

    def list_roles(self, actor: Principal | Anonymous) -> Decision:
        decision = self._authorize(actor)
        if decision.denied:
            return decision
        return Decision.allow(self.roles.list_roles())

    def create_role(
        self,
        actor: Principal | Anonymous,
        name: str,
        permissions: Iterable[Permission | str] = (),
    ) -> Decision:
        decision = self._authorize(actor)
        if decision.denied:
            return decision

        name = (name or "").strip()
        if not name:
            return Decision.deny(DenyReason.VALIDATION_ERROR, "Role name is required")

        try:
            parsed = parse_permissions(permissions)
        except InvalidPermissionError as e:
            return Decision.deny(DenyReason.VALIDATION_ERROR, str(e))

        role = Role(name=name, permissions=parsed)
        try:
            self.roles.save_role(role)
        except UniqueViolation:
            return Decision.deny(DenyReason.CONFLICT, "Role name already exists")

        logger.info(f"Role {role.name} created by {actor.id}")
        return Decision.allow(role)

    def update_role(
        self,
        actor: Principal | Anonymous,
        role_id: str,
        name: str | None = None,
        permissions: Iterable[Permission | str] | None = None,
    ) -> Decision:
        """Rename and/or replace the permission set of a role."""
        decision = self._authorize(actor)
        if decision.denied:
            return decision

        if name is None and permissions is None:
            return Decision.deny(DenyReason.VALIDATION_ERROR, "No fields provided for update")

        role = self.roles.get_role(role_id)
        if role is None:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Role not found")

        if name is not None:
            name = name.strip()
            if not name:
                return Decision.deny(DenyReason.VALIDATION_ERROR, "Role name is required")
            if role.name in RESERVED_ROLES and name != role.name:
                return Decision.deny(DenyReason.VALIDATION_ERROR, f"Cannot rename default role '{role.name}'")
            role.name = name

        if permissions is not None:
            try:
                parsed = parse_permissions(permissions)
            except InvalidPermissionError as e:
                return Decision.deny(DenyReason.VALIDATION_ERROR, str(e))
            if role.name == ADMIN_ROLE and SUPER_PERMISSION not in parsed:
                return Decision.deny(
                    DenyReason.VALIDATION_ERROR,
                    f"The '{ADMIN_ROLE}' role must keep '{SUPER_PERMISSION.value}'",
                )
            role.permissions = parsed

        try:
            self.roles.save_role(role)
        except UniqueViolation:
            return Decision.deny(DenyReason.CONFLICT, "Role name already exists")

        logger.info(f"Role {role.id} updated by {actor.id}")
        return Decision.allow(role)

    def delete_role(self, actor: Principal | Anonymous, role_id: str) -> Decision:
        decision = self._authorize(actor)
        if decision.denied:
            return decision

        role = self.roles.get_role(role_id)
        if role is None:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Role not found")

        if role.name in RESERVED_ROLES:
            return Decision.deny(
                DenyReason.INSUFFICIENT_PERMISSION,
                f"Cannot delete default role '{role.name}'",
            )

        if self.resources.count_users_with_role(role_id) > 0:
            return Decision.deny(
                DenyReason.CONFLICT,
                "Users are currently assigned to this role. Reassign them first.",
            )

        if not self.roles.delete_role(role_id):
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Role not found")

        logger.info(f"Role {role.name} deleted by {actor.id}")
        return Decision.allow()

    def assign_role(self, actor: Principal | Anonymous, user_id: str, role_id: str) -> Decision:
        """Move a user to another role. Allow carries the user."""
        decision = self._authorize(actor)
        if decision.denied:
            return decision

        if self.roles.get_role(role_id) is None:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Role not found")

        with self.resources.transaction():
            user = self.resources.get_user(user_id)
            if user is None:
                return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "User not found")
            user.role_id = role_id
            self.resources.save_user(user)

        logger.info(f"User {user_id} assigned role {role_id} by {actor.id}")
        return Decision.allow(user)

    def _authorize(self, actor: Principal | Anonymous) -> Decision:
        return self.engine.decide(actor, None, Permission.MANAGE_ROLES)
