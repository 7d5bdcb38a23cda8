"""PKCE verifier and challenge helpers (RFC 7636)."""

import base64
import hashlib
import secrets

# RFC 7636 unreserved characters
VERIFIER_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
VERIFIER_LENGTH = 64


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    """High-entropy verifier; RFC 7636 allows 43 to 128 characters."""
    if not 43 <= length <= 128:
        raise ValueError("PKCE verifier length must be between 43 and 128")
    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(length))


def code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
