"""Auth cookies — the browser transport for the token pair.

Learn: Both tokens go into httpOnly cookies so page scripts can't read
them, and Secure so they're only sent over HTTPS. Non-browser clients
get the same tokens in the JSON body and send the access token as a
Bearer header instead.
"""

from starlette.responses import Response

from vidtube.auth.jwt import TokenPair, access_token_ttl, refresh_token_ttl
from vidtube.config import settings

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=int(access_token_ttl().total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=int(refresh_token_ttl().total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def clear_auth_cookies(response: Response) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            httponly=True,
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
        )
