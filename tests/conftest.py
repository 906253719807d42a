"""
Shared fixtures: in-memory storage, wired services and a cast of users.
"""

import pytest

from journeylog.auth import Principal
from journeylog.core.models import User
from journeylog.services import create_services
from journeylog.storage import MissingReference, create_local_storage


@pytest.fixture
def storage():
    """Fresh in-memory storage with the reserved roles seeded."""
    return create_local_storage()


@pytest.fixture
def services(storage):
    return create_services(storage)


@pytest.fixture
def engine(services):
    return services.engine


@pytest.fixture
def make_principal(storage):
    """Build the Principal the resolver would produce for a stored user."""

    def _make(user: User) -> Principal:
        return Principal(
            id=user.id,
            role_id=user.role_id,
            global_permissions=storage.roles.get_role_permissions(user.role_id),
        )

    return _make


@pytest.fixture
def users(storage):
    created = {}
    for name, role_id in [
        ("owner", "user"),
        ("collab", "user"),
        ("stranger", "user"),
        ("admin", "admin"),
    ]:
        user = User(id=f"u_{name}", username=name, role_id=role_id)
        storage.resources.save_user(user)
        created[name] = user
    return created


@pytest.fixture
def owner(users, make_principal):
    return make_principal(users["owner"])


@pytest.fixture
def collab(users, make_principal):
    return make_principal(users["collab"])


@pytest.fixture
def stranger(users, make_principal):
    return make_principal(users["stranger"])


@pytest.fixture
def admin(users, make_principal):
    return make_principal(users["admin"])


@pytest.fixture
def journey(services, owner):
    """A private journey owned by `owner`."""
    return services.journeys.create_journey(owner, "Iceland by van").value


@pytest.fixture
def journey_vanishes(storage, monkeypatch):
    """Make one store write fail as if its journey was deleted concurrently."""

    def _vanish(method_name: str) -> None:
        def _raise(*args, **kwargs):
            raise MissingReference("Journey not found")

        monkeypatch.setattr(storage.resources, method_name, _raise)

    return _vanish
