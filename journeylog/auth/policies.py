"""
Policies - the FastAPI face of the authorization engine.

Route handlers never re-implement permission checks. They declare one:

    @app.delete("/journeys/{journey_id}")
    async def delete_journey(
        journey_id: str,
        principal: Principal = Depends(require(Permission.DELETE_JOURNEY)),
    ):
        ...

Design:
- `get_principal` resolves the bearer token once per request
- `require()` builds a JourneyRef/PostRef from the path and calls `decide`
- Deny reasons map to status codes in one place (`raise_for_decision`)
- The app provides `app.state.storage` and `app.state.engine`
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from journeylog.auth.decisions import Decision, DenyReason
from journeylog.auth.engine import AuthorizationEngine, JourneyRef, PostRef, Resource
from journeylog.auth.principal import ANONYMOUS, Anonymous, Principal
from journeylog.auth.tokens import AuthenticationError, resolve_principal
from journeylog.config import get_settings
from journeylog.core.permissions import Permission
from journeylog.storage.base import StorageProvider


# Optional bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)


# =============================================================================
# App state accessors
# =============================================================================


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def get_engine(request: Request) -> AuthorizationEngine:
    return request.app.state.engine


# =============================================================================
# Principal
# =============================================================================


async def get_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> Principal | Anonymous:
    """
    Resolve the caller. No token means ANONYMOUS; a bad token is a 401,
    never a silent downgrade to anonymous.
    """
    if not credentials:
        return ANONYMOUS

    try:
        return resolve_principal(credentials.credentials, get_storage(request))
    except AuthenticationError:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_passphrase(request: Request) -> str | None:
    """The anonymous visitor's passphrase, re-sent on every request."""
    return request.headers.get(get_settings().passphrase_header)


# =============================================================================
# Decision -> HTTP
# =============================================================================


def raise_for_decision(decision: Decision) -> None:
    """
    Raise the HTTPException matching a Deny. No-op for Allow.

    PassphraseRequired is reported exactly like ResourceNotFound.
    """
    if decision.allowed:
        return

    if decision.reason in (DenyReason.RESOURCE_NOT_FOUND, DenyReason.PASSPHRASE_REQUIRED):
        detail = "Not found"
    else:
        detail = decision.detail or decision.reason.value

    headers = None
    if decision.reason == DenyReason.AUTHENTICATION_REQUIRED:
        headers = {"WWW-Authenticate": "Bearer"}

    raise HTTPException(status_code=decision.status_code, detail=detail, headers=headers)


def resource_from_path(request: Request) -> Resource | None:
    """Build the resource reference from `post_id` / `journey_id` path params."""
    params = request.path_params
    if "post_id" in params:
        return PostRef(post_id=params["post_id"])
    if "journey_id" in params:
        return JourneyRef(journey_id=params["journey_id"])
    return None


# =============================================================================
# Main Interface
# =============================================================================


def require(permission: Permission | str) -> Callable:
    """
    Require a permission on the journey/post named in the path.

    Returns:
        FastAPI Depends that resolves to the authenticated Principal
    """
    permission = Permission(permission)

    async def dependency(
        request: Request,
        principal: Principal | Anonymous = Depends(get_principal),
    ) -> Principal:
        decision = get_engine(request).decide(principal, resource_from_path(request), permission)
        raise_for_decision(decision)
        return principal

    return dependency


def require_read() -> Callable:
    """
    Require read access to the journey/post named in the path.

    Anonymous callers are checked against the journey's public visibility
    and the passphrase header.

    Returns:
        FastAPI Depends that resolves to the Principal (or ANONYMOUS)
    """

    async def dependency(
        request: Request,
        principal: Principal | Anonymous = Depends(get_principal),
    ) -> Principal | Anonymous:
        resource = resource_from_path(request)
        if resource is None:
            raise HTTPException(status_code=404, detail="Not found")
        decision = get_engine(request).decide_read(principal, resource, get_passphrase(request))
        raise_for_decision(decision)
        return principal

    return dependency


def require_auth() -> Callable:
    """Just require authentication, no specific permission."""

    async def dependency(
        principal: Principal | Anonymous = Depends(get_principal),
    ) -> Principal:
        if principal.is_anonymous:
            raise_for_decision(
                Decision.deny(DenyReason.AUTHENTICATION_REQUIRED, "Authentication required")
            )
        return principal

    return dependency
