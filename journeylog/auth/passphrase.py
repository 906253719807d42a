"""
Passphrase hashing for protected public journeys.

Only salted hashes are ever stored. Comparison is constant-time.
"""

from __future__ import annotations

import hashlib
import secrets

from journeylog.config import get_settings

_ALGORITHM = "pbkdf2_sha256"


def hash_passphrase(passphrase: str, iterations: int | None = None) -> str:
    """
    Hash a passphrase using PBKDF2-SHA256.

    Returns: "pbkdf2_sha256$iterations$salt$hash"
    """
    iterations = iterations or get_settings().passphrase_hash_iterations
    salt = secrets.token_hex(16)
    hash_bytes = hashlib.pbkdf2_hmac(
        'sha256',
        passphrase.encode('utf-8'),
        salt.encode('utf-8'),
        iterations=iterations,
    )
    return f"{_ALGORITHM}${iterations}${salt}${hash_bytes.hex()}"


def compare_passphrase(passphrase: str, passphrase_hash: str) -> bool:
    """Verify a passphrase against its stored hash."""
    try:
        algorithm, iterations, salt, stored_hash = passphrase_hash.split('$')
        if algorithm != _ALGORITHM:
            return False
        hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            passphrase.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=int(iterations),
        )
        return secrets.compare_digest(hash_bytes.hex(), stored_hash)
    except (ValueError, AttributeError):
        return False
