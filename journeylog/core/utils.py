"""
Shared utility functions for the journeylog platform.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone

from journeylog.config import get_settings


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.
    
    Args:
        prefix: Optional prefix (e.g., "jrny", "post", "user")
        
    Returns:
        A unique ID like "jrny_a1b2c3d4e5f6"
    """
    uid = str(uuid.uuid4())[:12]
    return f"{prefix}_{uid}" if prefix else uid


def generate_link_token() -> str:
    """Opaque, unguessable token used as a journey's public link id."""
    return secrets.token_urlsafe(get_settings().public_link_bytes)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)
