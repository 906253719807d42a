"""
Core module - fundamental data models and vocabulary.

This module contains:
- models: Core data models (User, Role, Journey, Post, CollaboratorGrant)
- permissions: The closed Permission set, grantable subsets, role defaults
- utils: Shared utility functions
"""

from journeylog.core.models import (
    CollaboratorGrant,
    Journey,
    Post,
    Role,
    User,
    Visibility,
)
from journeylog.core.permissions import (
    CollaboratorFlags,
    InvalidPermissionError,
    Permission,
    parse_grant_permissions,
    parse_permissions,
)
from journeylog.core.utils import generate_id, generate_link_token, utc_now

__all__ = [
    # Models
    "CollaboratorGrant",
    "Journey",
    "Post",
    "Role",
    "User",
    "Visibility",
    # Permissions
    "CollaboratorFlags",
    "InvalidPermissionError",
    "Permission",
    "parse_grant_permissions",
    "parse_permissions",
    # Utils
    "generate_id",
    "generate_link_token",
    "utc_now",
]
