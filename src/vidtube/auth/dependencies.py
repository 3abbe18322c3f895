"""FastAPI auth dependencies.

Learn: get_current_user is the gate in front of every protected route.
It never refreshes or writes anything — it only answers "who is this?":

1. token from the access_token cookie, else the Bearer header
2. verify signature + expiry with the access-token secret
3. load the user (the account may have been deleted since)
4. attach it to request.state.user and return it

Invalid and expired tokens fail the same way here. Only the refresh
endpoint tells clients which of the two happened.
"""

import uuid
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.auth.cookies import ACCESS_COOKIE
from vidtube.auth.jwt import verify_access_token
from vidtube.db.engine import get_db
from vidtube.db.models import User
from vidtube.errors import ExpiredTokenError, InvalidTokenError, UnauthenticatedError

_BEARER = "bearer "


def extract_access_token(request: Request) -> Optional[str]:
    """Cookie first, then Authorization: Bearer <token>."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith(_BEARER):
        return authorization[len(_BEARER):].strip() or None
    return None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    token = extract_access_token(request)
    if not token:
        raise UnauthenticatedError()

    try:
        claims = verify_access_token(token)
        user_id = uuid.UUID(claims["sub"])
    except (InvalidTokenError, ExpiredTokenError, ValueError):
        raise UnauthenticatedError("Invalid or expired access token")

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthenticatedError("Invalid or expired access token")

    request.state.user = user
    return user
