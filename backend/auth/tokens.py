"""Self-issued, stateless session tokens.

A token is three unpadded base64url segments joined by dots::

    header.payload.signature

The header is ``{"alg": "HS256", "typ": "JWT"}``, the payload carries the
subject and epoch-millisecond ``iat``/``exp`` claims, and the signature is
HMAC-SHA256 over ``header.payload`` keyed by the process secret.

There is no revocation list. A leaked token stays valid until it expires.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional

from core.errors import ExpiredToken, InvalidSignature, MalformedToken

ALGORITHM = "HS256"
TOKEN_TYPE = "JWT"
DEFAULT_LIFETIME = timedelta(days=7)


@dataclass(frozen=True)
class TokenHeader:
    """Tagged header identifying the token format."""

    alg: str = ALGORITHM
    typ: str = TOKEN_TYPE

    def to_dict(self) -> dict:
        return {"alg": self.alg, "typ": self.typ}


@dataclass(frozen=True)
class TokenPayload:
    """Decoded claims of a verified token."""

    subject: str
    issued_at: int  # epoch ms
    expires_at: int  # epoch ms

    def to_dict(self) -> dict:
        return {"sub": self.subject, "iat": self.issued_at, "exp": self.expires_at}


def b64url_encode(raw: bytes) -> str:
    """Base64url without padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Inverse of ``b64url_encode``; tolerates missing padding."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _encode_json(data: dict) -> str:
    canonical = json.dumps(data, separators=(",", ":"), sort_keys=True)
    return b64url_encode(canonical.encode("utf-8"))


def _decode_json(segment: str) -> dict[str, Any]:
    try:
        data = json.loads(b64url_decode(segment).decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError) as e:
        raise MalformedToken() from e
    if not isinstance(data, dict):
        raise MalformedToken()
    return data


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionTokenEngine:
    """Issues and verifies signed session tokens.

    Pure functions over an immutable secret and lifetime; safe to share
    across concurrent requests.
    """

    def __init__(
        self,
        secret: str,
        lifetime: timedelta = DEFAULT_LIFETIME,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize the engine.

        Args:
            secret: HMAC key shared by every token this process issues.
            lifetime: How long an issued token stays valid.
            clock: Returns the current time in epoch milliseconds.
        """
        if not secret:
            raise ValueError("Session token secret must not be empty")
        self._key = secret.encode("utf-8")
        self.lifetime_ms = int(lifetime.total_seconds() * 1000)
        self._clock = clock

    def _sign(self, signing_input: str) -> str:
        mac = hmac.new(self._key, signing_input.encode("utf-8"), hashlib.sha256)
        return b64url_encode(mac.digest())

    def issue(self, subject: str, now: Optional[int] = None) -> str:
        """Issue a token for ``subject``."""
        issued_at = self._clock() if now is None else now
        payload = TokenPayload(
            subject=str(subject),
            issued_at=issued_at,
            expires_at=issued_at + self.lifetime_ms,
        )
        signing_input = f"{_encode_json(TokenHeader().to_dict())}.{_encode_json(payload.to_dict())}"
        return f"{signing_input}.{self._sign(signing_input)}"

    def verify(self, token: str) -> TokenPayload:
        """Verify a token and return its claims.

        Raises:
            MalformedToken: Not three segments, or undecodable contents.
            InvalidSignature: Signature does not match.
            ExpiredToken: ``exp`` missing or not in the future.
        """
        parts = token.split(".")
        if len(parts) != 3:
            raise MalformedToken()

        header_segment, payload_segment, signature = parts
        expected = self._sign(f"{header_segment}.{payload_segment}")
        if not hmac.compare_digest(
            signature.encode("utf-8", "surrogateescape"), expected.encode("ascii")
        ):
            raise InvalidSignature()

        header = _decode_json(header_segment)
        if header.get("alg") != ALGORITHM:
            raise MalformedToken("Unsupported token algorithm")

        claims = _decode_json(payload_segment)
        expires_at = claims.get("exp")
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            raise ExpiredToken()
        if expires_at <= self._clock():
            raise ExpiredToken()

        subject = claims.get("sub")
        if subject is None or subject == "":
            raise MalformedToken("Token has no subject")

        issued_at = claims.get("iat")
        if not isinstance(issued_at, int):
            issued_at = 0

        return TokenPayload(
            subject=str(subject),
            issued_at=issued_at,
            expires_at=expires_at,
        )
