"""Error taxonomy surfaced to API callers.

Every error carries the HTTP status it maps to and a stable ``code`` the
client can switch on. Token-level failures are subclasses of ``TokenError``
and never leave the auth gate as-is; the gate reports ``InvalidToken``.
"""

from typing import Optional


class AppError(Exception):
    """Base class for all caller-visible errors."""

    status_code: int = 500
    code: str = "internal_error"
    default_detail: str = "Internal error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# =============================================================================
# SESSION TOKENS
# =============================================================================

class TokenError(AppError):
    status_code = 401
    code = "invalid_token"
    default_detail = "Invalid auth token"


class MalformedToken(TokenError):
    default_detail = "Token is not a well-formed session token"


class InvalidSignature(TokenError):
    default_detail = "Token signature does not verify"


class ExpiredToken(TokenError):
    default_detail = "Token expired"


class MissingToken(AppError):
    status_code = 401
    code = "missing_token"
    default_detail = "Missing auth token"


class InvalidToken(AppError):
    status_code = 401
    code = "invalid_token"
    default_detail = "Invalid auth token"


# =============================================================================
# ACCOUNTS
# =============================================================================

class InvalidUsername(AppError):
    status_code = 400
    code = "invalid_username"
    default_detail = "Username is too short"


class WeakPassword(AppError):
    status_code = 400
    code = "weak_password"
    default_detail = "Password is too short"


class UsernameTaken(AppError):
    status_code = 409
    code = "username_taken"
    default_detail = "Username already exists"


class InvalidCredentials(AppError):
    status_code = 401
    code = "invalid_credentials"
    default_detail = "Invalid username or password"


# =============================================================================
# SPOTIFY LINKING
# =============================================================================

class MissingVerifier(AppError):
    status_code = 400
    code = "missing_verifier"
    default_detail = "No pending Spotify link attempt. Start linking again."


class TokenExchangeFailed(AppError):
    status_code = 502
    code = "token_exchange_failed"
    default_detail = "Spotify token exchange failed"


class LinkFailed(AppError):
    status_code = 502
    code = "link_failed"
    default_detail = "Could not fetch Spotify profile"


class AlreadyLinked(AppError):
    status_code = 409
    code = "already_linked"
    default_detail = "This Spotify account is already linked"


class ReauthRequired(AppError):
    status_code = 401
    code = "reauth_required"
    default_detail = "Spotify authorization expired. Link Spotify again."


class SpotifyNotLinked(AppError):
    status_code = 400
    code = "spotify_not_linked"
    default_detail = "Link Spotify first"


class SpotifyNotConfigured(AppError):
    status_code = 500
    code = "spotify_not_configured"
    default_detail = "Spotify client ID not configured"


# =============================================================================
# LISTS AND RATINGS
# =============================================================================

class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_detail = "You do not have access to this list"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class InvalidListName(AppError):
    status_code = 400
    code = "invalid_list_name"
    default_detail = "List name must not be blank"


class InvalidReorder(AppError):
    status_code = 400
    code = "invalid_reorder"
    default_detail = "Item ids must not repeat"


class InvalidRating(AppError):
    status_code = 400
    code = "invalid_rating"
    default_detail = "rating must be between 1 and 10"


class WriteFailed(AppError):
    """A transactional write was rolled back; safe to retry."""

    status_code = 503
    code = "write_failed"
    default_detail = "Write failed, please retry"


# =============================================================================
# INFRASTRUCTURE
# =============================================================================

class DatabaseUnavailable(AppError):
    status_code = 503
    code = "database_unavailable"
    default_detail = "Database unavailable"
