"""Video service — publish, browse, update, delete.

Learn: Ownership rules live here, not in the routes:
- anyone signed in can list and open PUBLISHED videos,
- owners also see their own drafts,
- only the owner may update, delete, or toggle publishing.

Opening a video counts a view and records it in the viewer's
watch history (once per video).
"""

import math
import uuid
from dataclasses import dataclass
from typing import BinaryIO, Optional

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vidtube.config import settings
from vidtube.db.models import User, Video, WatchHistory, utcnow
from vidtube.errors import AuthorizationError, NotFoundError, ValidationError
from vidtube.services.media import MediaUploader

logger = structlog.get_logger()

SORTABLE_FIELDS = {
    "created_at": Video.created_at,
    "views": Video.views,
    "duration": Video.duration,
    "title": Video.title,
}


@dataclass
class VideoPage:
    docs: list[Video]
    total_docs: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


@dataclass
class MediaFile:
    source: BinaryIO
    filename: str


class VideoService:
    """Business logic for the video catalogue."""

    def __init__(self, db: AsyncSession, uploader: Optional[MediaUploader] = None):
        self.db = db
        self.uploader = uploader

    async def _get(self, video_id: uuid.UUID) -> Video:
        q = select(Video).where(Video.id == video_id).options(selectinload(Video.owner))
        result = await self.db.execute(q)
        video = result.scalars().first()
        if video is None:
            raise NotFoundError("Video not found")
        return video

    async def _get_owned(self, video_id: uuid.UUID, actor_id: uuid.UUID) -> Video:
        video = await self._get(video_id)
        if video.owner_id != actor_id:
            raise AuthorizationError("You are not the owner of this video")
        return video

    # ─── Browse ─────────────────────────────────────────

    async def list_videos(
        self,
        viewer_id: Optional[uuid.UUID],
        page: int = 1,
        limit: Optional[int] = None,
        query: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> VideoPage:
        """Paginated feed with optional owner filter and text search.

        Learn: Drafts are only included when the viewer asks for their
        own channel (user_id == viewer_id).
        """
        if limit is None:
            limit = settings.default_page_size
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit < 1 or limit > settings.max_page_size:
            raise ValidationError(f"limit must be between 1 and {settings.max_page_size}")

        sort_by = sort_by or "created_at"
        sort_type = (sort_type or "desc").lower()
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(
                f"sort_by must be one of: {', '.join(sorted(SORTABLE_FIELDS))}"
            )
        if sort_type not in ("asc", "desc"):
            raise ValidationError("sort_type must be 'asc' or 'desc'")

        conditions = []
        if user_id is not None:
            conditions.append(Video.owner_id == user_id)
        if query:
            pattern = f"%{query.strip()}%"
            conditions.append(
                or_(Video.title.ilike(pattern), Video.description.ilike(pattern))
            )
        if user_id is None or user_id != viewer_id:
            conditions.append(Video.is_published.is_(True))

        count_q = select(func.count(Video.id)).where(*conditions)
        total = (await self.db.execute(count_q)).scalar_one()

        column = SORTABLE_FIELDS[sort_by]
        order = column.desc() if sort_type == "desc" else column.asc()
        q = (
            select(Video)
            .where(*conditions)
            .options(selectinload(Video.owner))
            .order_by(order, Video.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        docs = list((await self.db.execute(q)).scalars().all())

        total_pages = math.ceil(total / limit) if total else 0
        return VideoPage(
            docs=docs,
            total_docs=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )

    async def get_video(
        self, video_id: uuid.UUID, viewer_id: Optional[uuid.UUID] = None
    ) -> Video:
        """Open a video: count the view and remember it in watch history."""
        video = await self._get(video_id)
        if not video.is_published and video.owner_id != viewer_id:
            raise NotFoundError("Video not found")

        # Atomic increment, so concurrent viewers don't lose counts.
        await self.db.execute(
            update(Video)
            .where(Video.id == video.id)
            .values(views=Video.views + 1)
            .execution_options(synchronize_session=False)
        )

        if viewer_id is not None:
            await self._record_watch(viewer_id, video.id)

        await self.db.commit()
        await self.db.refresh(video, attribute_names=["views"])
        return video

    async def _record_watch(self, user_id: uuid.UUID, video_id: uuid.UUID) -> None:
        """Add a history row unless one exists.

        Learn: A read-then-insert would let two simultaneous first views
        both insert and trip the primary key. ON CONFLICT DO NOTHING makes
        the second insert a no-op instead.
        """
        dialect = self.db.bind.dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(WatchHistory)
        elif dialect == "sqlite":
            stmt = sqlite_insert(WatchHistory)
        else:
            raise RuntimeError(f"Unsupported database dialect: {dialect}")
        await self.db.execute(
            stmt.values(user_id=user_id, video_id=video_id, watched_at=utcnow())
            .on_conflict_do_nothing(index_elements=["user_id", "video_id"])
        )

    # ─── Publish / edit ─────────────────────────────────

    async def publish_video(
        self,
        owner: User,
        title: str,
        description: str,
        video_file: Optional[MediaFile],
        thumbnail: Optional[MediaFile],
    ) -> Video:
        if not title or not title.strip() or not description or not description.strip():
            raise ValidationError("Title and description are required")
        if video_file is None:
            raise ValidationError("Video file is required")
        if thumbnail is None:
            raise ValidationError("Thumbnail file is required")

        uploaded: list[str] = []
        try:
            uploaded_video = await self.uploader.upload(video_file.source, video_file.filename)
            uploaded.append(uploaded_video.url)
            uploaded_thumb = await self.uploader.upload(thumbnail.source, thumbnail.filename)
            uploaded.append(uploaded_thumb.url)

            video = Video(
                owner=owner,
                title=title.strip(),
                description=description.strip(),
                video_file=uploaded_video.url,
                thumbnail=uploaded_thumb.url,
                duration=uploaded_video.duration,
            )
            self.db.add(video)
            await self.db.commit()
        except Exception:
            # Nothing references these files now.
            for url in uploaded:
                await self._discard_media(url)
            raise

        logger.info("video.published", video_id=str(video.id), owner_id=str(owner.id))
        return video

    async def update_video(
        self,
        video_id: uuid.UUID,
        actor_id: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[MediaFile] = None,
    ) -> Video:
        title = title.strip() if title else None
        description = description.strip() if description else None
        if not title and not description and thumbnail is None:
            raise ValidationError(
                "At least one of title, description or thumbnail must be provided"
            )

        video = await self._get_owned(video_id, actor_id)
        old_thumbnail = None
        if title:
            video.title = title
        if description:
            video.description = description
        if thumbnail is not None:
            uploaded = await self.uploader.upload(thumbnail.source, thumbnail.filename)
            old_thumbnail = video.thumbnail
            video.thumbnail = uploaded.url

        await self.db.commit()
        if old_thumbnail:
            await self._discard_media(old_thumbnail)

        logger.info("video.updated", video_id=str(video.id))
        return video

    async def toggle_publish(self, video_id: uuid.UUID, actor_id: uuid.UUID) -> bool:
        video = await self._get_owned(video_id, actor_id)
        video.is_published = not video.is_published
        await self.db.commit()
        logger.info(
            "video.publish_toggled",
            video_id=str(video.id),
            is_published=video.is_published,
        )
        return video.is_published

    async def delete_video(self, video_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        video = await self._get_owned(video_id, actor_id)
        media_urls = [video.video_file, video.thumbnail]

        await self.db.execute(
            delete(WatchHistory).where(WatchHistory.video_id == video.id)
        )
        await self.db.delete(video)
        await self.db.commit()

        for url in media_urls:
            await self._discard_media(url)
        logger.info("video.deleted", video_id=str(video_id))

    async def _discard_media(self, url: str) -> None:
        """Best-effort removal from the media host; the DB row is already gone."""
        try:
            await self.uploader.delete(url)
        except OSError as e:
            logger.warning("media.cleanup_failed", url=url, error=str(e))
