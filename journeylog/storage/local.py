"""
Local storage implementations for development and tests.

In-memory stores that enforce the same constraints as the relational
schema: unique names, unique (journey, user) grants, foreign keys and
cascading deletes. Rows are copied on the way in and out so callers only
ever see committed snapshots.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from journeylog.core.models import CollaboratorGrant, Journey, Post, Role, User
from journeylog.core.permissions import DEFAULT_ROLE_PERMISSIONS, Permission
from journeylog.storage.base import (
    MissingReference,
    ResourceStore,
    RoleStore,
    StorageProvider,
    UniqueViolation,
)


# =============================================================================
# In-Memory Role Storage
# =============================================================================


class InMemoryRoleStore(RoleStore):
    """In-memory roles for development."""

    def __init__(self):
        self._roles: dict[str, Role] = {}

    def get_role_permissions(self, role_id: str) -> frozenset[Permission]:
        role = self._roles.get(role_id)
        return role.permissions if role else frozenset()

    def get_role(self, role_id: str) -> Role | None:
        role = self._roles.get(role_id)
        return role.model_copy() if role else None

    def get_role_by_name(self, name: str) -> Role | None:
        for role in self._roles.values():
            if role.name == name:
                return role.model_copy()
        return None

    def list_roles(self) -> list[Role]:
        roles = sorted(self._roles.values(), key=lambda r: r.created_at)
        return [r.model_copy() for r in roles]

    def save_role(self, role: Role) -> None:
        for existing in self._roles.values():
            if existing.name == role.name and existing.id != role.id:
                raise UniqueViolation(f"Role name already exists: {role.name}")
        self._roles[role.id] = role.model_copy()

    def delete_role(self, role_id: str) -> bool:
        return self._roles.pop(role_id, None) is not None


# =============================================================================
# In-Memory Resource Storage
# =============================================================================


class InMemoryResourceStore(ResourceStore):
    """In-memory users, journeys, posts and grants for development."""

    def __init__(self):
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._journeys: dict[str, Journey] = {}
        self._posts: dict[str, Post] = {}
        self._grants: dict[tuple[str, str], CollaboratorGrant] = {}

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    # -- Users ----------------------------------------------------------------

    def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    def list_users(self) -> list[User]:
        users = sorted(self._users.values(), key=lambda u: u.created_at)
        return [u.model_copy() for u in users]

    def save_user(self, user: User) -> None:
        with self._lock:
            for existing in self._users.values():
                if existing.username == user.username and existing.id != user.id:
                    raise UniqueViolation(f"Username already exists: {user.username}")
            self._users[user.id] = user.model_copy()

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            if self._users.pop(user_id, None) is None:
                return False
            owned = [j.id for j in self._journeys.values() if j.owner_id == user_id]
            for journey_id in owned:
                self.delete_journey(journey_id)
            for post_id in [p.id for p in self._posts.values() if p.author_id == user_id]:
                del self._posts[post_id]
            for key in [k for k in self._grants if k[1] == user_id]:
                del self._grants[key]
            return True

    def count_users_with_role(self, role_id: str) -> int:
        return sum(1 for u in self._users.values() if u.role_id == role_id)

    # -- Journeys -------------------------------------------------------------

    def get_journey(self, journey_id: str) -> Journey | None:
        journey = self._journeys.get(journey_id)
        return journey.model_copy() if journey else None

    def get_journey_by_link(self, public_link_id: str) -> Journey | None:
        for journey in self._journeys.values():
            if journey.public_link_id == public_link_id:
                return journey.model_copy()
        return None

    def save_journey(self, journey: Journey) -> None:
        with self._lock:
            if journey.owner_id not in self._users:
                raise MissingReference(f"Owner not found: {journey.owner_id}")
            if journey.public_link_id is not None:
                for existing in self._journeys.values():
                    if existing.public_link_id == journey.public_link_id and existing.id != journey.id:
                        raise UniqueViolation("Public link id already in use")
            self._journeys[journey.id] = journey.model_copy()

    def delete_journey(self, journey_id: str) -> bool:
        with self._lock:
            if self._journeys.pop(journey_id, None) is None:
                return False
            for post_id in [p.id for p in self._posts.values() if p.journey_id == journey_id]:
                del self._posts[post_id]
            for key in [k for k in self._grants if k[0] == journey_id]:
                del self._grants[key]
            return True

    # -- Posts ----------------------------------------------------------------

    def get_post(self, post_id: str) -> Post | None:
        post = self._posts.get(post_id)
        return post.model_copy(deep=True) if post else None

    def list_posts(self, journey_id: str) -> list[Post]:
        posts = [p for p in self._posts.values() if p.journey_id == journey_id]
        posts.sort(key=lambda p: p.created_at, reverse=True)
        return [p.model_copy(deep=True) for p in posts]

    def save_post(self, post: Post) -> None:
        with self._lock:
            if post.journey_id not in self._journeys:
                raise MissingReference(f"Journey not found: {post.journey_id}")
            if post.author_id not in self._users:
                raise MissingReference(f"Author not found: {post.author_id}")
            self._posts[post.id] = post.model_copy(deep=True)

    def delete_post(self, post_id: str) -> bool:
        with self._lock:
            return self._posts.pop(post_id, None) is not None

    # -- Collaborator grants --------------------------------------------------

    def get_grant(self, journey_id: str, user_id: str) -> CollaboratorGrant | None:
        grant = self._grants.get((journey_id, user_id))
        return grant.model_copy() if grant else None

    def list_grants(self, journey_id: str) -> list[CollaboratorGrant]:
        grants = [g for k, g in self._grants.items() if k[0] == journey_id]
        grants.sort(key=lambda g: g.created_at)
        return [g.model_copy() for g in grants]

    def insert_grant(self, grant: CollaboratorGrant) -> None:
        with self._lock:
            if grant.journey_id not in self._journeys:
                raise MissingReference(f"Journey not found: {grant.journey_id}")
            if grant.user_id not in self._users:
                raise MissingReference(f"User not found: {grant.user_id}")
            if grant.key in self._grants:
                raise UniqueViolation("Grant already exists for this journey and user")
            self._grants[grant.key] = grant.model_copy()

    def update_grant(self, grant: CollaboratorGrant) -> bool:
        with self._lock:
            if grant.key not in self._grants:
                return False
            self._grants[grant.key] = grant.model_copy()
            return True

    def delete_grant(self, journey_id: str, user_id: str) -> bool:
        with self._lock:
            return self._grants.pop((journey_id, user_id), None) is not None


# =============================================================================
# Factory
# =============================================================================


def seed_default_roles(roles: RoleStore) -> None:
    """Make sure the reserved `admin` and `user` roles exist."""
    for name, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        if roles.get_role_by_name(name) is None:
            roles.save_role(Role(id=name, name=name, permissions=permissions))


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with in-memory implementations."""
    roles = InMemoryRoleStore()
    seed_default_roles(roles)
    return StorageProvider(
        roles=roles,
        resources=InMemoryResourceStore(),
    )
