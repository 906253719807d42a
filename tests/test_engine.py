"""
Tests for the authorization decision engine.

Core principle: one decision function, strict precedence, first match wins.
"""

import pytest

from journeylog.auth import (
    ANONYMOUS,
    AuthorizationEngine,
    DenyReason,
    JourneyRef,
    PostRef,
    Principal,
)
from journeylog.core.models import CollaboratorGrant
from journeylog.core.permissions import GRANTABLE_PERMISSIONS, Permission


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def grant_collab(storage, journey):
    """Give `collab` a grant on `journey` with the given permissions."""

    def _grant(*permissions: Permission) -> CollaboratorGrant:
        grant = CollaboratorGrant(
            journey_id=journey.id,
            user_id="u_collab",
            permissions=frozenset(permissions),
        )
        storage.resources.insert_grant(grant)
        return grant

    return _grant


@pytest.fixture
def owner_post(services, journey, owner):
    return services.journeys.create_post(journey.id, owner, "Landed in Keflavik").value


# =============================================================================
# 1. Anonymous
# =============================================================================


class TestAnonymous:
    @pytest.mark.parametrize("permission", list(Permission))
    def test_every_permission_requires_authentication(self, engine, journey, permission):
        decision = engine.decide(ANONYMOUS, JourneyRef(journey.id), permission)

        assert not decision
        assert decision.reason == DenyReason.AUTHENTICATION_REQUIRED
        assert decision.status_code == 401

    def test_public_journey_is_still_read_only(self, services, engine, journey, owner):
        services.public_access.publish(journey.id, owner)

        decision = engine.decide(ANONYMOUS, JourneyRef(journey.id), Permission.CREATE_POST)
        assert decision.reason == DenyReason.AUTHENTICATION_REQUIRED


# =============================================================================
# 2. Super-override
# =============================================================================


class TestSuperOverride:
    @pytest.mark.parametrize("permission", list(Permission))
    def test_admin_allowed_everything_on_journey(self, engine, journey, admin, permission):
        assert engine.decide(admin, JourneyRef(journey.id), permission)

    @pytest.mark.parametrize("permission", list(Permission))
    def test_admin_allowed_everything_on_post(self, engine, owner_post, admin, permission):
        assert engine.decide(admin, PostRef(owner_post.id), permission)

    def test_manage_roles_alone_is_enough(self, engine, journey):
        minimal = Principal(id="u_x", role_id="custom", global_permissions=frozenset({Permission.MANAGE_ROLES}))
        everything = Principal(id="u_x", role_id="custom", global_permissions=frozenset(Permission))

        for permission in Permission:
            resource = JourneyRef(journey.id)
            assert engine.decide(minimal, resource, permission) == engine.decide(everything, resource, permission)
            assert engine.decide(minimal, resource, permission).allowed

    def test_role_name_is_never_consulted(self, engine, journey):
        named_admin = Principal(id="u_x", role_id="admin", global_permissions=frozenset())

        decision = engine.decide(named_admin, JourneyRef(journey.id), Permission.EDIT_JOURNEY)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION


# =============================================================================
# 3. Global "any" permissions
# =============================================================================


class TestAnyPermissions:
    def test_any_counterpart_allows(self, engine, owner_post):
        moderator = Principal(id="u_mod", role_id="mod", global_permissions=frozenset({Permission.EDIT_ANY_POST}))

        assert engine.decide(moderator, PostRef(owner_post.id), Permission.EDIT_POST)
        denied = engine.decide(moderator, PostRef(owner_post.id), Permission.DELETE_POST)
        assert denied.reason == DenyReason.INSUFFICIENT_PERMISSION

    def test_edit_any_journey(self, engine, journey):
        editor = Principal(id="u_ed", role_id="ed", global_permissions=frozenset({Permission.EDIT_ANY_JOURNEY}))

        assert engine.decide(editor, JourneyRef(journey.id), Permission.EDIT_JOURNEY)
        assert not engine.decide(editor, JourneyRef(journey.id), Permission.DELETE_JOURNEY)

    def test_non_any_global_permission_is_not_resource_wide(self, engine, journey, stranger):
        # The default `user` role holds edit_journey globally
        assert Permission.EDIT_JOURNEY in stranger.global_permissions

        decision = engine.decide(stranger, JourneyRef(journey.id), Permission.EDIT_JOURNEY)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION


# =============================================================================
# 4. Ownership
# =============================================================================


class TestOwnership:
    @pytest.mark.parametrize("permission", [
        Permission.CREATE_POST,
        Permission.EDIT_JOURNEY,
        Permission.DELETE_JOURNEY,
        Permission.MANAGE_JOURNEY_ACCESS,
    ])
    def test_owner_supremacy(self, engine, journey, owner, grant_collab, permission):
        grant_collab(Permission.CREATE_POST)
        assert engine.decide(owner, JourneyRef(journey.id), permission)

    def test_ownership_is_transitive_to_posts(self, services, engine, journey, owner, collab, grant_collab):
        grant_collab(Permission.CREATE_POST)
        post = services.journeys.create_post(journey.id, collab, "Geysir").value

        assert engine.decide(owner, PostRef(post.id), Permission.EDIT_POST)
        assert engine.decide(owner, PostRef(post.id), Permission.DELETE_POST)

    def test_ownership_does_not_cover_admin_permissions(self, engine, journey, owner):
        decision = engine.decide(owner, JourneyRef(journey.id), Permission.MANAGE_USERS)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION


# =============================================================================
# 5. Collaborator grants
# =============================================================================


class TestCollaboratorGrant:
    def test_scenario_create_post_only(self, engine, journey, collab, grant_collab):
        grant_collab(Permission.CREATE_POST)

        assert engine.decide(collab, JourneyRef(journey.id), Permission.CREATE_POST)
        denied = engine.decide(collab, JourneyRef(journey.id), Permission.DELETE_JOURNEY)
        assert denied.reason == DenyReason.INSUFFICIENT_PERMISSION

    def test_grant_exactness(self, engine, journey, collab, grant_collab):
        grant_collab(Permission.CREATE_POST)

        for permission in GRANTABLE_PERMISSIONS - {Permission.CREATE_POST}:
            decision = engine.decide(collab, JourneyRef(journey.id), permission)
            assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION, permission

    def test_grant_applies_to_posts_in_journey(self, engine, owner_post, collab, grant_collab):
        grant_collab(Permission.EDIT_POST)

        assert engine.decide(collab, PostRef(owner_post.id), Permission.EDIT_POST)
        assert not engine.decide(collab, PostRef(owner_post.id), Permission.DELETE_POST)

    def test_grant_on_other_journey_does_not_leak(self, services, engine, owner, collab, grant_collab):
        grant_collab(Permission.EDIT_JOURNEY)
        other = services.journeys.create_journey(owner, "Faroe Islands").value

        assert not engine.decide(collab, JourneyRef(other.id), Permission.EDIT_JOURNEY)


# =============================================================================
# 6. Create journey
# =============================================================================


class TestCreateJourney:
    def test_any_authenticated_principal(self, engine, stranger):
        assert engine.decide(stranger, None, Permission.CREATE_JOURNEY)

    def test_even_without_global_permissions(self, engine):
        bare = Principal(id="u_bare", role_id="none")
        assert engine.decide(bare, None, Permission.CREATE_JOURNEY)

    def test_other_unscoped_permissions_denied(self, engine, stranger):
        decision = engine.decide(stranger, None, Permission.MANAGE_ROLES)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION


# =============================================================================
# 7. Authorship
# =============================================================================


class TestAuthorship:
    def test_author_may_delete_without_grant(self, services, engine, journey, collab, grant_collab):
        grant_collab(Permission.CREATE_POST)
        post = services.journeys.create_post(journey.id, collab, "Black sand beach").value

        assert engine.decide(collab, PostRef(post.id), Permission.DELETE_POST)
        assert engine.decide(collab, PostRef(post.id), Permission.EDIT_POST)

    def test_author_keeps_control_after_grant_removed(self, services, storage, engine, journey, collab, grant_collab):
        grant_collab(Permission.CREATE_POST)
        post = services.journeys.create_post(journey.id, collab, "Glacier hike").value
        storage.resources.delete_grant(journey.id, collab.id)

        assert engine.decide(collab, PostRef(post.id), Permission.EDIT_POST)

    def test_authorship_only_covers_edit_and_delete(self, services, engine, journey, collab, grant_collab):
        grant_collab(Permission.CREATE_POST)
        post = services.journeys.create_post(journey.id, collab, "Draft", is_draft=True).value

        decision = engine.decide(collab, PostRef(post.id), Permission.PUBLISH_POST_ON_JOURNEY)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION

    def test_prefilled_post_ref(self, engine, owner_post, stranger):
        decision = engine.decide(stranger, PostRef.of(owner_post), Permission.EDIT_POST)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION


# =============================================================================
# Fallback & edge cases
# =============================================================================


class TestFallback:
    def test_stranger_denied(self, engine, journey, stranger):
        decision = engine.decide(stranger, JourneyRef(journey.id), Permission.EDIT_JOURNEY)

        assert not decision
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION
        assert decision.status_code == 403

    def test_missing_journey(self, engine, stranger):
        decision = engine.decide(stranger, JourneyRef("jrny_missing"), Permission.EDIT_JOURNEY)
        assert decision.reason == DenyReason.RESOURCE_NOT_FOUND

    def test_missing_post(self, engine, stranger):
        decision = engine.decide(stranger, PostRef("post_missing"), Permission.EDIT_POST)
        assert decision.reason == DenyReason.RESOURCE_NOT_FOUND

    def test_permission_names_accepted(self, engine, journey, owner):
        assert engine.decide(owner, JourneyRef(journey.id), "edit_journey")

    def test_unknown_permission_name(self, engine, journey, owner):
        decision = engine.decide(owner, JourneyRef(journey.id), "can_fly")
        assert decision.reason == DenyReason.VALIDATION_ERROR

    def test_decide_does_not_mutate(self, storage, engine, journey, stranger):
        before = storage.resources.get_journey(journey.id)
        engine.decide(stranger, JourneyRef(journey.id), Permission.DELETE_JOURNEY)
        assert storage.resources.get_journey(journey.id) == before


# =============================================================================
# Read access
# =============================================================================


class TestDecideRead:
    def test_owner_and_admin(self, engine, journey, owner, admin):
        assert engine.decide_read(owner, JourneyRef(journey.id))
        assert engine.decide_read(admin, JourneyRef(journey.id))

    def test_collaborator_with_empty_grant(self, engine, journey, collab, grant_collab):
        grant_collab()
        assert engine.decide_read(collab, JourneyRef(journey.id))

    def test_stranger_denied_even_when_public(self, services, engine, journey, owner, stranger):
        services.public_access.publish(journey.id, owner)

        decision = engine.decide_read(stranger, JourneyRef(journey.id))
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION

    def test_anonymous_private_journey(self, engine, journey):
        decision = engine.decide_read(ANONYMOUS, JourneyRef(journey.id), "anything")
        assert decision.reason == DenyReason.RESOURCE_NOT_FOUND

    def test_anonymous_public_journey(self, services, engine, journey, owner):
        services.public_access.publish(journey.id, owner)
        assert engine.decide_read(ANONYMOUS, JourneyRef(journey.id))

    def test_anonymous_cannot_see_drafts(self, services, engine, journey, owner):
        services.public_access.publish(journey.id, owner)
        draft = services.journeys.create_post(journey.id, owner, "Not yet", is_draft=True).value
        published = services.journeys.create_post(journey.id, owner, "Hello").value

        assert engine.decide_read(ANONYMOUS, PostRef(published.id))
        decision = engine.decide_read(ANONYMOUS, PostRef(draft.id))
        assert decision.reason == DenyReason.RESOURCE_NOT_FOUND

    def test_anonymous_protected_journey(self, services, engine, journey, owner):
        services.public_access.publish(journey.id, owner)
        services.public_access.set_passphrase(journey.id, owner, "northern-lights")

        assert engine.decide_read(ANONYMOUS, JourneyRef(journey.id), "northern-lights")
        missing = engine.decide_read(ANONYMOUS, JourneyRef(journey.id))
        assert missing.reason == DenyReason.PASSPHRASE_REQUIRED


# =============================================================================
# Injected comparer
# =============================================================================


class TestPassphraseComparer:
    def test_engine_uses_injected_comparer(self, storage, services, journey, owner):
        services.public_access.publish(journey.id, owner)
        services.public_access.set_passphrase(journey.id, owner, "abcdef")

        calls = []

        def compare(plaintext, hashed):
            calls.append(plaintext)
            return True

        engine = AuthorizationEngine(storage.resources, compare=compare)
        assert engine.decide_read(ANONYMOUS, JourneyRef(journey.id), "whatever")
        assert calls == ["whatever"]


# =============================================================================
# Admin-wide permissions outside the "any" family
# =============================================================================


class TestGlobalAdminPermissions:
    @pytest.fixture
    def support(self):
        return Principal(id="u_support", role_id="support", global_permissions=frozenset({Permission.MANAGE_USERS}))

    def test_manage_users_is_usable_without_manage_roles(self, engine, support):
        assert engine.decide(support, None, Permission.MANAGE_USERS)

    def test_manage_users_does_not_imply_manage_roles(self, engine, support):
        decision = engine.decide(support, None, Permission.MANAGE_ROLES)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION

    def test_manage_users_does_not_reach_journeys(self, engine, journey, support):
        decision = engine.decide(support, JourneyRef(journey.id), Permission.EDIT_JOURNEY)
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION


class TestAnyHoldersRead:
    def test_edit_any_journey_reads_private_journey(self, engine, journey):
        editor = Principal(id="u_ed", role_id="ed", global_permissions=frozenset({Permission.EDIT_ANY_JOURNEY}))

        assert engine.decide(editor, JourneyRef(journey.id), Permission.EDIT_JOURNEY)
        assert engine.decide_read(editor, JourneyRef(journey.id))

    def test_moderator_reads_posts(self, engine, owner_post):
        moderator = Principal(id="u_mod", role_id="mod", global_permissions=frozenset({Permission.DELETE_ANY_POST}))
        assert engine.decide_read(moderator, PostRef(owner_post.id))

    def test_missing_resource_still_not_found(self, engine):
        editor = Principal(id="u_ed", role_id="ed", global_permissions=frozenset({Permission.EDIT_ANY_JOURNEY}))

        decision = engine.decide_read(editor, JourneyRef("jrny_missing"))
        assert decision.reason == DenyReason.RESOURCE_NOT_FOUND

    def test_manage_users_alone_does_not_read(self, engine, journey):
        support = Principal(id="u_support", role_id="support", global_permissions=frozenset({Permission.MANAGE_USERS}))

        decision = engine.decide_read(support, JourneyRef(journey.id))
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION
