"""
Permissions, grantable subsets and role defaults.

This defines WHAT principals can do, not HOW we check it.
The actual checking happens in journeylog.auth.engine.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel


class Permission(str, Enum):
    """
    The closed set of permissions.

    Non-"any" permissions are meaningful globally (create_journey) and per
    journey through collaborator grants. "Any"-suffixed permissions only
    mean something as global role permissions.
    """

    # Journey-scoped
    CREATE_POST = "create_post"
    EDIT_POST = "edit_post"
    DELETE_POST = "delete_post"
    CREATE_JOURNEY = "create_journey"
    EDIT_JOURNEY = "edit_journey"
    DELETE_JOURNEY = "delete_journey"
    MANAGE_JOURNEY_ACCESS = "manage_journey_access"
    PUBLISH_POST_ON_JOURNEY = "publish_post_on_journey"

    # Admin-wide
    EDIT_ANY_JOURNEY = "edit_any_journey"
    DELETE_ANY_JOURNEY = "delete_any_journey"
    EDIT_ANY_POST = "edit_any_post"
    DELETE_ANY_POST = "delete_any_post"
    MANAGE_USERS = "manage_users"
    MANAGE_ROLES = "manage_roles"

    @property
    def is_any_scoped(self) -> bool:
        """Does the name carry the "any" qualifier?"""
        return "_any_" in self.value


# The super-override. Holding it implies holding everything else.
SUPER_PERMISSION = Permission.MANAGE_ROLES


# Resource-scoped permission -> its admin-wide counterpart
ANY_COUNTERPARTS: dict[Permission, Permission] = {
    Permission.EDIT_POST: Permission.EDIT_ANY_POST,
    Permission.DELETE_POST: Permission.DELETE_ANY_POST,
    Permission.EDIT_JOURNEY: Permission.EDIT_ANY_JOURNEY,
    Permission.DELETE_JOURNEY: Permission.DELETE_ANY_JOURNEY,
}

ANY_SCOPED_PERMISSIONS: frozenset[Permission] = frozenset(ANY_COUNTERPARTS.values())


# Admin-wide permissions: only meaningful in a global role, never in a grant
GLOBAL_ONLY_PERMISSIONS: frozenset[Permission] = ANY_SCOPED_PERMISSIONS | {
    Permission.MANAGE_USERS,
    Permission.MANAGE_ROLES,
}


# What a journey owner implicitly holds on the journey and every post in it
OWNER_PERMISSIONS: frozenset[Permission] = frozenset({
    Permission.CREATE_POST,
    Permission.EDIT_JOURNEY,
    Permission.DELETE_JOURNEY,
    Permission.EDIT_POST,
    Permission.DELETE_POST,
    Permission.MANAGE_JOURNEY_ACCESS,
    Permission.PUBLISH_POST_ON_JOURNEY,
})


# What may appear in a CollaboratorGrant
GRANTABLE_PERMISSIONS: frozenset[Permission] = frozenset({
    Permission.CREATE_POST,
    Permission.EDIT_POST,
    Permission.DELETE_POST,
    Permission.EDIT_JOURNEY,
    Permission.DELETE_JOURNEY,
    Permission.MANAGE_JOURNEY_ACCESS,
    Permission.PUBLISH_POST_ON_JOURNEY,
})


# Only the author of a post gets these without a grant
AUTHOR_PERMISSIONS: frozenset[Permission] = frozenset({
    Permission.EDIT_POST,
    Permission.DELETE_POST,
})


# =============================================================================
# Reserved roles
# =============================================================================


ADMIN_ROLE = "admin"
USER_ROLE = "user"
RESERVED_ROLES = frozenset({ADMIN_ROLE, USER_ROLE})

DEFAULT_ROLE_PERMISSIONS: dict[str, frozenset[Permission]] = {
    ADMIN_ROLE: frozenset(Permission),
    USER_ROLE: frozenset({
        Permission.CREATE_JOURNEY,
        Permission.EDIT_JOURNEY,
        Permission.DELETE_JOURNEY,
        Permission.CREATE_POST,
        Permission.EDIT_POST,
        Permission.DELETE_POST,
    }),
}


# =============================================================================
# Validation at the store boundary
# =============================================================================


class InvalidPermissionError(ValueError):
    """A permission name is unknown or not allowed in this position."""

    def __init__(self, names: Iterable[str], message: str = "Invalid permissions"):
        self.names = sorted(names)
        super().__init__(f"{message}: {', '.join(self.names)}")


def parse_permissions(
    values: Iterable[Permission | str],
    allowed: frozenset[Permission] | None = None,
) -> frozenset[Permission]:
    """
    Turn free-form permission names into a validated set.

    Unknown names, and names outside `allowed` when given, raise
    InvalidPermissionError instead of being silently dropped.
    """
    parsed: set[Permission] = set()
    unknown: set[str] = set()

    for value in values:
        try:
            parsed.add(Permission(value))
        except ValueError:
            unknown.add(str(value))

    if unknown:
        raise InvalidPermissionError(unknown, "Unknown permissions")

    if allowed is not None:
        rejected = {p.value for p in parsed - allowed}
        if rejected:
            raise InvalidPermissionError(rejected, "Permissions not allowed here")

    return frozenset(parsed)


def parse_grant_permissions(values: Iterable[Permission | str]) -> frozenset[Permission]:
    """Validate permissions destined for a collaborator grant."""
    return parse_permissions(values, allowed=GRANTABLE_PERMISSIONS)


# =============================================================================
# Four-flag collaborator shorthand
# =============================================================================


class CollaboratorFlags(BaseModel):
    """
    Boolean shorthand over a grant's permission set.

    Read access is implied by holding any grant at all, so `can_read_posts`
    does not map to a permission of its own.
    """

    can_read_posts: bool = True
    can_publish_posts: bool = False
    can_modify_post: bool = False
    can_delete_posts: bool = False

    def to_permissions(self) -> frozenset[Permission]:
        perms: set[Permission] = set()
        if self.can_publish_posts:
            perms.update({Permission.CREATE_POST, Permission.PUBLISH_POST_ON_JOURNEY})
        if self.can_modify_post:
            perms.add(Permission.EDIT_POST)
        if self.can_delete_posts:
            perms.add(Permission.DELETE_POST)
        return frozenset(perms)

    @classmethod
    def from_permissions(cls, permissions: Iterable[Permission]) -> CollaboratorFlags:
        perms = set(permissions)
        return cls(
            can_read_posts=True,
            can_publish_posts={
                Permission.CREATE_POST,
                Permission.PUBLISH_POST_ON_JOURNEY,
            } <= perms,
            can_modify_post=Permission.EDIT_POST in perms,
            can_delete_posts=Permission.DELETE_POST in perms,
        )


DEFAULT_COLLABORATOR_FLAGS = CollaboratorFlags(
    can_read_posts=True,
    can_publish_posts=True,
    can_modify_post=True,
    can_delete_posts=False,
)
