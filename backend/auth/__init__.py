"""Password hashing, session tokens and the request auth gate."""

from auth.gate import AuthGate
from auth.passwords import hash_password, verify_password
from auth.tokens import SessionTokenEngine, TokenPayload

__all__ = [
    "AuthGate",
    "SessionTokenEngine",
    "TokenPayload",
    "hash_password",
    "verify_password",
]
