"""User profile service — account details, images, channels, history.

Learn: Everything about a user that isn't the session lifecycle.
Session handling (login, refresh, password) lives in AuthService.
"""

import uuid
from dataclasses import dataclass
from typing import BinaryIO, Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vidtube.db.models import User, Video, WatchHistory
from vidtube.errors import ConflictError, NotFoundError, ValidationError
from vidtube.repositories.users import SqlAlchemyUserRepository
from vidtube.services.media import MediaUploader

logger = structlog.get_logger()


@dataclass
class ChannelProfile:
    id: uuid.UUID
    username: str
    fullname: str
    avatar: Optional[str]
    cover_image: Optional[str]
    videos_count: int
    total_views: int
    is_own_channel: bool


class UserService:
    """Business logic for user profiles."""

    def __init__(self, db: AsyncSession, uploader: Optional[MediaUploader] = None):
        self.db = db
        self.users = SqlAlchemyUserRepository(db)
        self.uploader = uploader

    async def _get(self, user_id: uuid.UUID) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # ─── Account details ────────────────────────────────

    async def update_account_details(
        self,
        user_id: uuid.UUID,
        fullname: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        patch = {}
        if fullname is not None and fullname.strip():
            patch["fullname"] = fullname.strip()
        if email is not None and email.strip():
            if await self.users.exists(email=email, exclude_id=user_id):
                raise ConflictError("Email already in use")
            patch["email"] = email
        if not patch:
            raise ValidationError("Provide fullname or email to update")

        user = await self._get(user_id)
        await self.users.update_fields(user.id, **patch)
        await self.db.commit()
        logger.info("user.account_updated", user_id=str(user_id), fields=sorted(patch))
        return user

    async def update_avatar(
        self, user_id: uuid.UUID, source: BinaryIO, filename: str
    ) -> User:
        return await self._replace_image(user_id, "avatar", source, filename)

    async def update_cover_image(
        self, user_id: uuid.UUID, source: BinaryIO, filename: str
    ) -> User:
        return await self._replace_image(user_id, "cover_image", source, filename)

    async def _replace_image(
        self, user_id: uuid.UUID, field: str, source: BinaryIO, filename: str
    ) -> User:
        user = await self._get(user_id)
        previous = getattr(user, field)

        uploaded = await self.uploader.upload(source, filename)
        await self.users.update_fields(user.id, **{field: uploaded.url})
        await self.db.commit()

        if previous:
            try:
                await self.uploader.delete(previous)
            except OSError as e:
                logger.warning("media.cleanup_failed", url=previous, error=str(e))

        logger.info("user.image_updated", user_id=str(user_id), field=field)
        return user

    # ─── Channel profile ────────────────────────────────

    async def get_channel_profile(
        self, username: str, viewer_id: Optional[uuid.UUID] = None
    ) -> ChannelProfile:
        """Public view of a channel.

        Learn: The owner sees counts across all their videos; everyone
        else only sees published ones.
        """
        if not username or not username.strip():
            raise ValidationError("Username is required")

        user = await self.users.get_by_username(username)
        if user is None:
            raise NotFoundError("Channel does not exist")

        is_own = viewer_id is not None and viewer_id == user.id
        q = select(
            func.count(Video.id), func.coalesce(func.sum(Video.views), 0)
        ).where(Video.owner_id == user.id)
        if not is_own:
            q = q.where(Video.is_published.is_(True))
        videos_count, total_views = (await self.db.execute(q)).one()

        return ChannelProfile(
            id=user.id,
            username=user.username,
            fullname=user.fullname,
            avatar=user.avatar,
            cover_image=user.cover_image,
            videos_count=int(videos_count),
            total_views=int(total_views),
            is_own_channel=is_own,
        )

    # ─── Watch history ──────────────────────────────────

    async def get_watch_history(self, user_id: uuid.UUID) -> list[Video]:
        """Videos the user has opened, most recent first."""
        q = (
            select(Video)
            .join(WatchHistory, WatchHistory.video_id == Video.id)
            .where(WatchHistory.user_id == user_id)
            .where(or_(Video.is_published.is_(True), Video.owner_id == user_id))
            .options(selectinload(Video.owner))
            .order_by(WatchHistory.watched_at.desc())
        )
        result = await self.db.execute(q)
        return list(result.scalars().all())
