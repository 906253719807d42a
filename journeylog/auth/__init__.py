"""
Authorization system - one engine, no per-route re-implementations.

Design principles:
1. Every operation asks `AuthorizationEngine.decide` exactly once
2. Strict precedence: super-override, "any", ownership, grant, authorship
3. Denials are values (Decision), not exceptions
4. The Principal is explicit; nothing is attached to the request
"""

from journeylog.auth.decisions import ALLOW, Decision, DenyReason, HTTP_STATUS
from journeylog.auth.principal import ANONYMOUS, Anonymous, Principal
from journeylog.auth.passphrase import compare_passphrase, hash_passphrase
from journeylog.auth.engine import (
    AuthorizationEngine,
    JourneyRef,
    PostRef,
    check_public_access,
)
from journeylog.auth.tokens import (
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
    UnknownPrincipalError,
    create_access_token,
    decode_token,
    resolve_principal,
)

__all__ = [
    # Main interface
    "AuthorizationEngine",
    "JourneyRef",
    "PostRef",
    "check_public_access",
    # Types
    "ALLOW",
    "ANONYMOUS",
    "Anonymous",
    "Decision",
    "DenyReason",
    "HTTP_STATUS",
    "Principal",
    # Passphrases
    "compare_passphrase",
    "hash_passphrase",
    # Tokens
    "AuthenticationError",
    "TokenExpiredError",
    "TokenInvalidError",
    "UnknownPrincipalError",
    "create_access_token",
    "decode_token",
    "resolve_principal",
]
