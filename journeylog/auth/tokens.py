# =============================================================================
# Principal Resolver
# =============================================================================
#
# Turns a bearer credential into a Principal:
#   - Access token creation
#   - Token validation (signature, expiry, type)
#   - Principal resolution (user -> role -> global permissions)
#
# The engine never sees a token, only the Principal built here.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

from pydantic import BaseModel
import jwt

from journeylog.auth.principal import Principal
from journeylog.config import get_settings
from journeylog.core.utils import generate_id, utc_now
from journeylog.storage.base import StorageProvider

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # user_id
    exp: datetime
    iat: datetime
    type: str  # "access"
    jti: str  # unique token ID (for revocation)


# =============================================================================
# Errors
# =============================================================================

class AuthenticationError(Exception):
    """The credential does not identify a principal."""
    pass


class TokenExpiredError(AuthenticationError):
    """Token has expired."""
    pass


class TokenInvalidError(AuthenticationError):
    """Token is invalid or malformed."""
    pass


class UnknownPrincipalError(AuthenticationError):
    """Token is valid but its subject no longer exists."""
    pass


# =============================================================================
# Token Creation
# =============================================================================

def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    now = utc_now()
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))

    payload = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
        "type": "access",
        "jti": generate_id("tok"),
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


# =============================================================================
# Token Validation
# =============================================================================

def decode_token(token: str, expected_type: str = "access") -> TokenPayload:
    """
    Decode and validate a JWT token.

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    if payload.get("type") != expected_type:
        raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")

    try:
        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload["type"],
            jti=payload.get("jti", ""),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise TokenInvalidError(f"Invalid token payload: {e}")


# =============================================================================
# Principal Resolution
# =============================================================================

def resolve_principal(credential: str, storage: StorageProvider) -> Principal:
    """
    Resolve a bearer token into a Principal.

    Permissions are read from the user's current role on every call, so a
    role change takes effect without reissuing tokens.

    Raises:
        AuthenticationError: token invalid/expired or user gone
    """
    payload = decode_token(credential, expected_type="access")

    user = storage.resources.get_user(payload.sub)
    if user is None:
        logger.info(f"Token for unknown user {payload.sub}")
        raise UnknownPrincipalError("User not found")

    return Principal(
        id=user.id,
        role_id=user.role_id,
        global_permissions=storage.roles.get_role_permissions(user.role_id),
    )
