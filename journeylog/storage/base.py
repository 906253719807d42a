"""
Storage abstraction layer.

All persistence goes through these interfaces. The authorization engine
only ever reads through them; services mutate through them. This allows
swapping implementations (in-memory -> PostgreSQL) without changing
application code.

Integration Points:
- RoleStore     -> roles table (name unique)
- ResourceStore -> users, journeys, posts, journey_user_permissions
                   (UNIQUE (journey_id, user_id), ON DELETE CASCADE)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from pydantic import BaseModel

from journeylog.core.models import CollaboratorGrant, Journey, Post, Role, User
from journeylog.core.permissions import Permission


# =============================================================================
# Store faults
# =============================================================================


class StoreError(Exception):
    """The store could not serve a request (unreachable, corrupted data)."""
    pass


class IntegrityError(StoreError):
    """A write violated a store constraint."""
    pass


class UniqueViolation(IntegrityError):
    """A uniqueness constraint rejected the write."""
    pass


class MissingReference(IntegrityError):
    """A write referenced a row that does not exist (anymore)."""
    pass


# =============================================================================
# Storage Interfaces
# =============================================================================


class RoleStore(ABC):
    """
    Global roles and their permission sets.

    Implementation: roles table, or in-memory for development.
    """

    @abstractmethod
    def get_role_permissions(self, role_id: str) -> frozenset[Permission]:
        """Permission set of a role; empty for an unknown role."""
        pass

    @abstractmethod
    def get_role(self, role_id: str) -> Role | None:
        pass

    @abstractmethod
    def get_role_by_name(self, name: str) -> Role | None:
        pass

    @abstractmethod
    def list_roles(self) -> list[Role]:
        pass

    @abstractmethod
    def save_role(self, role: Role) -> None:
        """Insert or replace. Raises UniqueViolation on a taken name."""
        pass

    @abstractmethod
    def delete_role(self, role_id: str) -> bool:
        pass


class ResourceStore(ABC):
    """
    Users, journeys, posts and collaborator grants.

    Reads return None for missing rows. Writes enforce the same constraints
    a relational schema would: grants are unique per (journey, user), posts
    and grants must reference an existing journey, and deletes cascade.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """One atomic unit: nothing inside observes a torn state."""
        pass

    # -- Users ----------------------------------------------------------------

    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        pass

    @abstractmethod
    def list_users(self) -> list[User]:
        """All users, oldest first."""
        pass

    @abstractmethod
    def save_user(self, user: User) -> None:
        """Insert or replace. Raises UniqueViolation on a taken username."""
        pass

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Delete a user with their journeys, posts and grants."""
        pass

    @abstractmethod
    def count_users_with_role(self, role_id: str) -> int:
        pass

    # -- Journeys -------------------------------------------------------------

    @abstractmethod
    def get_journey(self, journey_id: str) -> Journey | None:
        pass

    @abstractmethod
    def get_journey_by_link(self, public_link_id: str) -> Journey | None:
        pass

    @abstractmethod
    def save_journey(self, journey: Journey) -> None:
        """Insert or replace. Raises MissingReference for an unknown owner."""
        pass

    @abstractmethod
    def delete_journey(self, journey_id: str) -> bool:
        """Delete a journey with all its posts and grants."""
        pass

    # -- Posts ----------------------------------------------------------------

    @abstractmethod
    def get_post(self, post_id: str) -> Post | None:
        pass

    @abstractmethod
    def list_posts(self, journey_id: str) -> list[Post]:
        """Posts of a journey, newest first."""
        pass

    @abstractmethod
    def save_post(self, post: Post) -> None:
        """Insert or replace. Raises MissingReference for an unknown journey."""
        pass

    @abstractmethod
    def delete_post(self, post_id: str) -> bool:
        pass

    # -- Collaborator grants --------------------------------------------------

    @abstractmethod
    def get_grant(self, journey_id: str, user_id: str) -> CollaboratorGrant | None:
        pass

    @abstractmethod
    def list_grants(self, journey_id: str) -> list[CollaboratorGrant]:
        pass

    @abstractmethod
    def insert_grant(self, grant: CollaboratorGrant) -> None:
        """
        Insert a new grant.

        Raises UniqueViolation if the (journey, user) pair already has one,
        MissingReference if the journey or user does not exist.
        """
        pass

    @abstractmethod
    def update_grant(self, grant: CollaboratorGrant) -> bool:
        """Replace an existing grant. False if there was none."""
        pass

    @abstractmethod
    def delete_grant(self, journey_id: str, user_id: str) -> bool:
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    roles: RoleStore
    resources: ResourceStore
