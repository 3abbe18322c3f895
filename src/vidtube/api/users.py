"""Users API — registration, sessions, profile.

Learn: Routes for the account lifecycle:
- POST /users/register → create an account
- POST /users/login → username or email + password → token pair (cookies + body)
- POST /users/refresh-token → rotate the token pair
- POST /users/logout → drop the stored refresh token, clear cookies
- POST /users/change-password → new password + new token pair
- GET  /users/me → current user
- PATCH /users/account, /users/avatar, /users/cover-image → profile edits
- GET  /users/channel/{username}, /users/watch-history

Routes translate HTTP to service calls; services raise VidTubeError
subclasses which main.py renders as the error envelope.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.auth.cookies import REFRESH_COOKIE, clear_auth_cookies, set_auth_cookies
from vidtube.auth.dependencies import get_current_user
from vidtube.db.engine import get_db
from vidtube.db.models import User
from vidtube.errors import ValidationError
from vidtube.schemas.common import ApiResponse
from vidtube.schemas.user import (
    AccountUpdate,
    ChangePasswordRequest,
    ChannelProfileRead,
    LoginRead,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPairRead,
    UserRead,
)
from vidtube.schemas.video import VideoRead
from vidtube.services.auth_service import AuthService
from vidtube.services.media import MediaUploader, get_media_uploader
from vidtube.services.user_service import UserService

router = APIRouter(prefix="/users")


def _auth_svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


def _user_svc(
    db: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> UserService:
    return UserService(db, uploader)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=ApiResponse[UserRead], status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_auth_svc)):
    user = await svc.register(
        username=body.username,
        email=body.email,
        fullname=body.fullname,
        password=body.password,
    )
    return ApiResponse(data=UserRead.model_validate(user), message="User registered successfully")


# ─── Sessions ────────────────────────────────────────────


@router.post("/login", response_model=ApiResponse[LoginRead])
async def login(
    body: LoginRequest,
    response: Response,
    svc: AuthService = Depends(_auth_svc),
):
    """Login with username OR email. Tokens go to cookies and the body."""
    identifier = body.username or body.email
    if not identifier:
        raise ValidationError("Username or email is required")

    result = await svc.login(identifier, body.password)
    set_auth_cookies(response, result.tokens)
    return ApiResponse(
        data=LoginRead(
            user=UserRead.model_validate(result.user),
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        ),
        message="User logged in successfully",
    )


@router.post("/refresh-token", response_model=ApiResponse[TokenPairRead])
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = Body(None),
    svc: AuthService = Depends(_auth_svc),
):
    """Rotate the session. Refresh token from cookie, else from the body."""
    presented = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    tokens = await svc.refresh_session(presented)
    set_auth_cookies(response, tokens)
    return ApiResponse(
        data=TokenPairRead.model_validate(tokens),
        message="Access token refreshed",
    )


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    await svc.logout(user.id)
    clear_auth_cookies(response)
    return ApiResponse(data={}, message="User logged out")


@router.post("/change-password", response_model=ApiResponse[TokenPairRead])
async def change_password(
    body: ChangePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    tokens = await svc.change_password(user.id, body.old_password, body.new_password)
    set_auth_cookies(response, tokens)
    return ApiResponse(
        data=TokenPairRead.model_validate(tokens),
        message="Password changed successfully",
    )


@router.get("/me", response_model=ApiResponse[UserRead])
async def get_me(
    user: User = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    current = await svc.get_current_identity(user.id)
    return ApiResponse(data=UserRead.model_validate(current), message="Current user fetched")


# ─── Profile ─────────────────────────────────────────────


@router.patch("/account", response_model=ApiResponse[UserRead])
async def update_account(
    body: AccountUpdate,
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    updated = await svc.update_account_details(
        user.id, fullname=body.fullname, email=body.email
    )
    return ApiResponse(data=UserRead.model_validate(updated), message="Account details updated")


@router.patch("/avatar", response_model=ApiResponse[UserRead])
async def update_avatar(
    avatar: UploadFile = File(...),
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    updated = await svc.update_avatar(user.id, avatar.file, avatar.filename or "")
    return ApiResponse(data=UserRead.model_validate(updated), message="Avatar updated")


@router.patch("/cover-image", response_model=ApiResponse[UserRead])
async def update_cover_image(
    cover_image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    updated = await svc.update_cover_image(
        user.id, cover_image.file, cover_image.filename or ""
    )
    return ApiResponse(data=UserRead.model_validate(updated), message="Cover image updated")


@router.get("/channel/{username}", response_model=ApiResponse[ChannelProfileRead])
async def get_channel_profile(
    username: str,
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    profile = await svc.get_channel_profile(username, viewer_id=user.id)
    return ApiResponse(
        data=ChannelProfileRead.model_validate(profile),
        message="Channel fetched",
    )


@router.get("/watch-history", response_model=ApiResponse[list[VideoRead]])
async def get_watch_history(
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    videos = await svc.get_watch_history(user.id)
    return ApiResponse(
        data=[VideoRead.model_validate(v) for v in videos],
        message="Watch history fetched",
    )
