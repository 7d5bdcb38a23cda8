"""Bearer-token gate in front of every authenticated route."""

import logging
from typing import Optional

from auth.tokens import SessionTokenEngine
from core.errors import InvalidToken, MissingToken, TokenError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AuthGate:
    """Resolves a request's authorization header to an account id."""

    def __init__(self, engine: SessionTokenEngine) -> None:
        self.engine = engine

    def authenticate(self, authorization: Optional[str]) -> str:
        """Return the subject of a valid bearer token.

        Raises:
            MissingToken: No bearer token was presented.
            InvalidToken: The token failed verification for any reason.
        """
        token = extract_bearer_token(authorization)
        if token is None:
            raise MissingToken()

        try:
            payload = self.engine.verify(token)
        except TokenError as e:
            # Which check failed stays server-side
            logger.debug("Rejected session token: %s", type(e).__name__)
            raise InvalidToken() from None

        return payload.subject
