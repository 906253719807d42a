"""
Public access gate.

Owns the journey visibility state machine:

    Private --publish--> PublicOpen <--set/clear passphrase--> PublicProtected
       ^                                                             |
       +----------------------------unpublish------------------------+

and answers anonymous access attempts against it. The gate is stateless:
an anonymous visitor re-sends the passphrase with every request.
"""

from __future__ import annotations

import logging

from journeylog.auth.decisions import Decision, DenyReason
from journeylog.auth.engine import AuthorizationEngine, JourneyRef
from journeylog.auth.passphrase import hash_passphrase
from journeylog.auth.principal import Anonymous, Principal
from journeylog.config import get_settings
from journeylog.core.models import Journey, Visibility
from journeylog.core.permissions import Permission
from journeylog.core.utils import generate_link_token
from journeylog.storage.base import MissingReference

logger = logging.getLogger(__name__)


class PublicAccessGate:
    """
    Publish, protect and verify anonymous access to journeys.

    Every mutation requires `edit_journey` on the journey and runs inside a
    single store transaction, so a concurrently deleted journey fails
    closed with ResourceNotFound.
    """

    def __init__(self, engine: AuthorizationEngine):
        self.engine = engine
        self.store = engine.store

    # =========================================================================
    # Visibility transitions
    # =========================================================================

    def publish(self, journey_id: str, actor: Principal | Anonymous) -> Decision:
        """
        Private -> PublicOpen with a fresh public link.

        Publishing an already public journey changes nothing.
        """
        with self.store.transaction():
            journey, decision = self._load_for_edit(journey_id, actor)
            if decision.denied:
                return decision

            if journey.is_public:
                return Decision.allow(journey)

            journey.publish(self._new_link_id())
            return self._save(journey, f"Journey {journey_id} published by {actor.id}")

    def unpublish(self, journey_id: str, actor: Principal | Anonymous) -> Decision:
        """Any public state -> Private. Clears the link and the passphrase together."""
        with self.store.transaction():
            journey, decision = self._load_for_edit(journey_id, actor)
            if decision.denied:
                return decision

            journey.unpublish()
            return self._save(journey, f"Journey {journey_id} unpublished by {actor.id}")

    def set_passphrase(
        self,
        journey_id: str,
        actor: Principal | Anonymous,
        plaintext: str,
    ) -> Decision:
        """Public journey -> PublicProtected. Only a salted hash is stored."""
        min_length = get_settings().passphrase_min_length

        with self.store.transaction():
            journey, decision = self._load_for_edit(journey_id, actor)
            if decision.denied:
                return decision

            if not journey.is_public:
                return Decision.deny(
                    DenyReason.VALIDATION_ERROR,
                    "Journey must be published before it can be protected",
                )
            if plaintext is None or len(plaintext) < min_length:
                return Decision.deny(
                    DenyReason.VALIDATION_ERROR,
                    f"Passphrase must be at least {min_length} characters",
                )

            journey.protect(hash_passphrase(plaintext))
            return self._save(journey, f"Passphrase set on journey {journey_id} by {actor.id}")

    def clear_passphrase(self, journey_id: str, actor: Principal | Anonymous) -> Decision:
        """PublicProtected -> PublicOpen. No-op on an open journey."""
        with self.store.transaction():
            journey, decision = self._load_for_edit(journey_id, actor)
            if decision.denied:
                return decision

            if not journey.is_public:
                return Decision.deny(DenyReason.VALIDATION_ERROR, "Journey is not published")
            if journey.visibility == Visibility.PUBLIC_OPEN:
                return Decision.allow(journey)

            journey.unprotect()
            return self._save(journey, f"Passphrase cleared on journey {journey_id} by {actor.id}")

    # =========================================================================
    # Anonymous access
    # =========================================================================

    def verify_anonymous_access(
        self,
        journey_id: str,
        supplied_passphrase: str | None = None,
    ) -> Decision:
        """Allow carries the journey; Private looks exactly like missing."""
        journey = self.store.get_journey(journey_id)
        decision = self.engine.check_public_access(journey, supplied_passphrase)
        if decision.denied:
            logger.debug(f"Anonymous access to journey {journey_id} denied: {decision.reason.value}")
            return decision
        return Decision.allow(journey)

    def resolve_public_link(
        self,
        public_link_id: str,
        supplied_passphrase: str | None = None,
    ) -> Decision:
        """Look a journey up by its public link, then verify access."""
        journey = self.store.get_journey_by_link(public_link_id)
        if journey is None:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")
        return self.verify_anonymous_access(journey.id, supplied_passphrase)

    def list_public_posts(
        self,
        journey_id: str,
        supplied_passphrase: str | None = None,
    ) -> Decision:
        """Allow carries the journey's published posts, newest first. Drafts never show."""
        decision = self.verify_anonymous_access(journey_id, supplied_passphrase)
        if decision.denied:
            return decision
        posts = [p for p in self.store.list_posts(journey_id) if not p.is_draft]
        return Decision.allow(posts)

    # =========================================================================
    # Internal
    # =========================================================================

    def _load_for_edit(
        self,
        journey_id: str,
        actor: Principal | Anonymous,
    ) -> tuple[Journey | None, Decision]:
        journey = self.store.get_journey(journey_id)
        if journey is None:
            return None, Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")
        decision = self.engine.decide(actor, JourneyRef(journey_id), Permission.EDIT_JOURNEY)
        return journey, decision

    def _new_link_id(self) -> str:
        # Unique across journeys
        link_id = generate_link_token()
        while self.store.get_journey_by_link(link_id) is not None:
            link_id = generate_link_token()
        return link_id

    def _save(self, journey: Journey, message: str) -> Decision:
        try:
            self.store.save_journey(journey)
        except MissingReference:
            return Decision.deny(DenyReason.RESOURCE_NOT_FOUND, "Journey not found")
        logger.info(message)
        return Decision.allow(journey)
