"""
Principal - the "who" of every authorization decision.

Built once per request by the principal resolver and passed explicitly
into every engine and service call. Nothing is attached to the request.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from journeylog.core.permissions import SUPER_PERMISSION, Permission


@dataclass(frozen=True)
class Principal:
    """
    An authenticated identity with its resolved global permissions.

    Usage:
        principal = Principal(id="user_1", role_id="user",
                              global_permissions=frozenset({Permission.CREATE_JOURNEY}))
        engine.decide(principal, JourneyRef("jrny_1"), Permission.EDIT_JOURNEY)
    """

    id: str
    role_id: str
    global_permissions: frozenset[Permission] = field(default_factory=frozenset)

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False

    @property
    def is_super_admin(self) -> bool:
        """Holds the super-override. Role names are never consulted."""
        return SUPER_PERMISSION in self.global_permissions

    def has_global(self, permission: Permission) -> bool:
        return permission in self.global_permissions


class Anonymous:
    """Marker for unauthenticated public browsing."""

    id = None
    role_id = None
    global_permissions: frozenset[Permission] = frozenset()

    is_authenticated = False
    is_anonymous = True
    is_super_admin = False

    def __repr__(self) -> str:
        return "ANONYMOUS"


ANONYMOUS = Anonymous()
