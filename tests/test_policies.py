"""
Tests for the FastAPI dependencies that put the engine in front of routes.
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from journeylog.auth import create_access_token
from journeylog.auth.policies import require, require_auth, require_read
from journeylog.core.permissions import Permission


@pytest.fixture
def app(storage, services):
    app = FastAPI()
    app.state.storage = storage
    app.state.engine = services.engine

    @app.get("/journeys/{journey_id}")
    async def read_journey(journey_id: str, principal=Depends(require_read())):
        return {"journey_id": journey_id, "principal": principal.id}

    @app.delete("/journeys/{journey_id}")
    async def delete_journey(journey_id: str, principal=Depends(require(Permission.DELETE_JOURNEY))):
        return {"deleted_by": principal.id}

    @app.patch("/posts/{post_id}")
    async def edit_post(post_id: str, principal=Depends(require("edit_post"))):
        return {"edited_by": principal.id}

    @app.get("/me")
    async def me(principal=Depends(require_auth())):
        return {"id": principal.id}

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def bearer(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


class TestAuthentication:
    def test_me(self, client, owner):
        response = client.get("/me", headers=bearer(owner.id))

        assert response.status_code == 200
        assert response.json() == {"id": owner.id}

    def test_anonymous(self, client):
        response = client.get("/me")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_bad_token_is_not_anonymous(self, client, services, journey, owner):
        services.public_access.publish(journey.id, owner)

        response = client.get(f"/journeys/{journey.id}", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestRequire:
    def test_owner_deletes(self, client, journey, owner):
        response = client.delete(f"/journeys/{journey.id}", headers=bearer(owner.id))

        assert response.status_code == 200
        assert response.json() == {"deleted_by": owner.id}

    def test_stranger_forbidden(self, client, journey, stranger):
        response = client.delete(f"/journeys/{journey.id}", headers=bearer(stranger.id))
        assert response.status_code == 403

    def test_anonymous_unauthorized(self, client, journey):
        assert client.delete(f"/journeys/{journey.id}").status_code == 401

    def test_missing_journey(self, client, owner):
        response = client.delete("/journeys/jrny_missing", headers=bearer(owner.id))
        assert response.status_code == 404

    def test_post_author(self, client, services, journey, owner, collab):
        services.grants.add_collaborator(journey.id, collab.id, ["create_post"], owner)
        post = services.journeys.create_post(journey.id, collab, "Geysir").value

        assert client.patch(f"/posts/{post.id}", headers=bearer(collab.id)).status_code == 200


class TestRequireRead:
    def test_private_is_hidden(self, client, journey):
        assert client.get(f"/journeys/{journey.id}").status_code == 404

    def test_open(self, client, services, journey, owner):
        services.public_access.publish(journey.id, owner)

        response = client.get(f"/journeys/{journey.id}")

        assert response.status_code == 200
        assert response.json()["principal"] is None

    def test_protected(self, client, services, journey, owner):
        services.public_access.publish(journey.id, owner)
        services.public_access.set_passphrase(journey.id, owner, "glacier")

        missing = client.get(f"/journeys/{journey.id}")
        assert missing.status_code == 404
        assert missing.json() == {"detail": "Not found"}

        wrong = client.get(f"/journeys/{journey.id}", headers={"X-Journey-Passphrase": "volcano"})
        assert wrong.status_code == 403

        right = client.get(f"/journeys/{journey.id}", headers={"X-Journey-Passphrase": "glacier"})
        assert right.status_code == 200

    def test_members_need_no_passphrase(self, client, services, journey, owner):
        services.public_access.publish(journey.id, owner)
        services.public_access.set_passphrase(journey.id, owner, "glacier")

        assert client.get(f"/journeys/{journey.id}", headers=bearer(owner.id)).status_code == 200
