"""
Token generation and password hashing for public share links.

Responsibilities:
- Generate url-safe share tokens and reviewer session tokens
- Hash share-link passwords with Argon2id
- Verify passwords without raising on malformed hashes
"""
from __future__ import annotations

import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type

_argon2 = PasswordHasher(time_cost=2, memory_cost=102400, parallelism=8, hash_len=32, type=Type.ID)

SESSION_PREFIX = "cmrs_"


def generate_secret(length: int = 32) -> str:
    """Return a high-entropy url-safe secret string (~43 chars for 32 bytes)."""
    return secrets.token_urlsafe(length)


def generate_share_token() -> str:
    return generate_secret(24)


def generate_session_token() -> str:
    """Session token handed to an identified public reviewer."""
    return f"{SESSION_PREFIX}{generate_secret()}"


def hash_secret(secret: str) -> str:
    return _argon2.hash(secret)


def verify_secret(secret: str, encoded_hash: str) -> bool:
    if not secret or not encoded_hash:
        return False
    try:
        return _argon2.verify(encoded_hash, secret)
    except (VerificationError, InvalidHashError):
        return False
