"""
Services - the operations route handlers call.

Each service holds the shared AuthorizationEngine and asks it before
acting; none of them contains a permission rule of its own.
"""

from __future__ import annotations

from dataclasses import dataclass

from journeylog.auth.engine import AuthorizationEngine
from journeylog.services.grants import GrantManager
from journeylog.services.journeys import JourneyService
from journeylog.services.public_access import PublicAccessGate
from journeylog.services.roles import RoleService
from journeylog.services.users import UserService
from journeylog.storage.base import StorageProvider


@dataclass
class Services:
    """Everything wired to one engine over one storage provider."""

    storage: StorageProvider
    engine: AuthorizationEngine
    public_access: PublicAccessGate
    grants: GrantManager
    journeys: JourneyService
    roles: RoleService
    users: UserService


def create_services(storage: StorageProvider) -> Services:
    engine = AuthorizationEngine(storage.resources)
    return Services(
        storage=storage,
        engine=engine,
        public_access=PublicAccessGate(engine),
        grants=GrantManager(engine),
        journeys=JourneyService(engine),
        roles=RoleService(engine, storage),
        users=UserService(engine, storage),
    )


__all__ = [
    "GrantManager",
    "JourneyService",
    "PublicAccessGate",
    "RoleService",
    "Services",
    "UserService",
    "create_services",
]
