"""
Storage abstractions.

Integration Points:
- RoleStore     -> roles table
- ResourceStore -> users, journeys, posts, journey_user_permissions
"""

from journeylog.storage.base import (
    IntegrityError,
    MissingReference,
    ResourceStore,
    RoleStore,
    StorageProvider,
    StoreError,
    UniqueViolation,
)
from journeylog.storage.local import create_local_storage, seed_default_roles

__all__ = [
    "IntegrityError",
    "MissingReference",
    "ResourceStore",
    "RoleStore",
    "StorageProvider",
    "StoreError",
    "UniqueViolation",
    "create_local_storage",
    "seed_default_roles",
]
