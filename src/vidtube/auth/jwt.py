"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15min), sent with every API call.
  Carries a snapshot of username/email so clients can show who's
  logged in without another request.
- Refresh token: long-lived (10 days), exchanged for a new pair.
  Only the value stored on the user row is accepted (see AuthService).

The two token kinds are signed with different secrets, and each
carries a "type" claim so one can never stand in for the other.
A random "jti" makes every issued token unique, even two issued
for the same user within the same second.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from vidtube.config import settings
from vidtube.db.models import User
from vidtube.errors import ExpiredTokenError, InvalidTokenError

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


def access_token_ttl() -> timedelta:
    return timedelta(minutes=settings.access_token_expire_minutes)


def refresh_token_ttl() -> timedelta:
    return timedelta(days=settings.refresh_token_expire_days)


def _encode(claims: dict, secret: str, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + ttl,
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for a user."""
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
        "type": ACCESS,
    }
    ttl = access_token_ttl() if expires_delta is None else expires_delta
    return _encode(claims, settings.access_token_secret, ttl)


def create_refresh_token(user_id, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT refresh token. Only the subject id is embedded."""
    claims = {"sub": str(user_id), "type": REFRESH}
    ttl = refresh_token_ttl() if expires_delta is None else expires_delta
    return _encode(claims, settings.refresh_token_secret, ttl)


def issue_token_pair(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user.id),
    )


def _decode(token: str, secret: str, expected_type: str) -> dict:
    """Verify signature + expiry and check the type claim.

    Raises ExpiredTokenError if the signature is valid but the token is
    past its expiry, InvalidTokenError for everything else.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError()
    except jwt.InvalidTokenError:
        raise InvalidTokenError()

    if payload.get("type") != expected_type:
        raise InvalidTokenError(f"Expected a {expected_type} token")
    return payload


def verify_access_token(token: str) -> dict:
    return _decode(token, settings.access_token_secret, ACCESS)


def verify_refresh_token(token: str) -> dict:
    return _decode(token, settings.refresh_token_secret, REFRESH)
