"""
Decisions - the tagged Allow / Deny result.

Authorization failure is an expected outcome, so the engine and the
services return a Decision instead of raising. Only store faults are
exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class DenyReason(str, Enum):
    """Internal reason codes. Finer-grained than the HTTP status they map to."""

    AUTHENTICATION_REQUIRED = "AuthenticationRequired"
    INSUFFICIENT_PERMISSION = "InsufficientPermission"
    RESOURCE_NOT_FOUND = "ResourceNotFound"
    PASSPHRASE_REQUIRED = "PassphraseRequired"
    PASSPHRASE_INCORRECT = "PassphraseIncorrect"
    DUPLICATE_GRANT = "DuplicateGrant"
    VALIDATION_ERROR = "ValidationError"
    CONFLICT = "Conflict"


# PassphraseRequired shares 404 with ResourceNotFound so a protected
# journey's existence does not leak.
HTTP_STATUS: dict[DenyReason, int] = {
    DenyReason.AUTHENTICATION_REQUIRED: 401,
    DenyReason.INSUFFICIENT_PERMISSION: 403,
    DenyReason.PASSPHRASE_INCORRECT: 403,
    DenyReason.RESOURCE_NOT_FOUND: 404,
    DenyReason.PASSPHRASE_REQUIRED: 404,
    DenyReason.VALIDATION_ERROR: 400,
    DenyReason.DUPLICATE_GRANT: 409,
    DenyReason.CONFLICT: 409,
}


@dataclass(frozen=True)
class Decision:
    """
    Allow (optionally carrying the operation's result) or Deny(reason).

    Truthy iff allowed:
        decision = gate.publish(journey_id, actor)
        if decision:
            link = decision.value.public_link_id
    """

    allowed: bool
    reason: DenyReason | None = None
    detail: str | None = None
    value: Any = None

    def __bool__(self) -> bool:
        return self.allowed

    @property
    def denied(self) -> bool:
        return not self.allowed

    @property
    def status_code(self) -> int:
        if self.allowed:
            return 200
        return HTTP_STATUS[self.reason]

    @classmethod
    def allow(cls, value: Any = None) -> Decision:
        return cls(allowed=True, value=value)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str | None = None) -> Decision:
        return cls(allowed=False, reason=reason, detail=detail)


ALLOW = Decision.allow()
