"""Error taxonomy shared by services and API handlers.

Learn: Services raise these instead of HTTPException so they stay
usable outside FastAPI (tests, scripts). main.py maps every subclass
to the same JSON envelope:

    {"success": false, "status_kind": "<kind>", "message": "<text>"}

Messages must never contain passwords or raw token values.
"""

from typing import Optional


class VidTubeError(Exception):
    """Base for all expected failures."""

    status_code = 500
    kind = "internal_error"
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "status_kind": self.kind,
            "message": self.message,
        }


class ValidationError(VidTubeError):
    """Missing or malformed input."""

    status_code = 400
    kind = "validation_error"
    default_message = "Invalid request"


class InvalidCredentialsError(VidTubeError):
    """Wrong password, or unknown username/email at login."""

    status_code = 401
    kind = "invalid_credentials"
    default_message = "Invalid credentials"


class UnauthenticatedError(VidTubeError):
    """Missing, invalid or expired access token on a protected route."""

    status_code = 401
    kind = "unauthenticated"
    default_message = "Unauthorized request"


class MissingTokenError(VidTubeError):
    status_code = 401
    kind = "missing_token"
    default_message = "Refresh token is required"


class InvalidTokenError(VidTubeError):
    """Bad signature, malformed token, or wrong token type."""

    status_code = 401
    kind = "invalid_token"
    default_message = "Invalid token"


class ExpiredTokenError(VidTubeError):
    """Signature is fine but the token is past its expiry."""

    status_code = 401
    kind = "expired_token"
    default_message = "Token has expired"


class StaleTokenError(VidTubeError):
    """Refresh token no longer matches the one stored for the user."""

    status_code = 401
    kind = "stale_token"
    default_message = "Refresh token is expired or already used"


class AuthorizationError(VidTubeError):
    """Caller is authenticated but doesn't own the resource."""

    status_code = 403
    kind = "forbidden"
    default_message = "You are not allowed to perform this action"


class NotFoundError(VidTubeError):
    status_code = 404
    kind = "not_found"
    default_message = "Resource not found"


class ConflictError(VidTubeError):
    """Duplicate username or email."""

    status_code = 409
    kind = "conflict"
    default_message = "Resource already exists"


class InternalError(VidTubeError):
    """Persistence or signing failure."""


class MediaUploadError(InternalError):
    kind = "media_upload_failed"
    default_message = "Failed to upload media file"
