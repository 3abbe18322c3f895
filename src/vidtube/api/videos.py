"""Videos API — catalogue browsing and owner-only management.

Learn: Every route here sits behind get_current_user (applied at
include_router level in api/__init__.py) and reads the caller from
request.state.user. Ownership checks happen in VideoService, which
raises AuthorizationError (403) for non-owners.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.db.engine import get_db
from vidtube.schemas.common import ApiResponse
from vidtube.schemas.video import PublishState, VideoPageRead, VideoRead
from vidtube.services.media import MediaUploader, get_media_uploader
from vidtube.services.video_service import MediaFile, VideoService

router = APIRouter(prefix="/videos")


def _svc(
    db: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> VideoService:
    return VideoService(db, uploader)


def _media(upload: Optional[UploadFile]) -> Optional[MediaFile]:
    if upload is None:
        return None
    return MediaFile(source=upload.file, filename=upload.filename or "")


@router.get("", response_model=ApiResponse[VideoPageRead])
async def list_videos(
    request: Request,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    query: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None),
    sort_type: Optional[str] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    svc: VideoService = Depends(_svc),
):
    """Paginated feed. Drafts only show up on the caller's own channel."""
    result = await svc.list_videos(
        viewer_id=request.state.user.id,
        page=page,
        limit=limit,
        query=query,
        sort_by=sort_by,
        sort_type=sort_type,
        user_id=user_id,
    )
    message = "Videos fetched successfully" if result.docs else "No videos found"
    return ApiResponse(data=VideoPageRead.model_validate(result), message=message)


@router.post("", response_model=ApiResponse[VideoRead], status_code=201)
async def publish_video(
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    video_file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    svc: VideoService = Depends(_svc),
):
    video = await svc.publish_video(
        owner=request.state.user,
        title=title,
        description=description,
        video_file=_media(video_file),
        thumbnail=_media(thumbnail),
    )
    return ApiResponse(data=VideoRead.model_validate(video), message="Video published successfully")


@router.get("/{video_id}", response_model=ApiResponse[VideoRead])
async def get_video(
    video_id: uuid.UUID,
    request: Request,
    svc: VideoService = Depends(_svc),
):
    video = await svc.get_video(video_id, viewer_id=request.state.user.id)
    return ApiResponse(data=VideoRead.model_validate(video), message="Video fetched successfully")


@router.patch("/{video_id}", response_model=ApiResponse[VideoRead])
async def update_video(
    video_id: uuid.UUID,
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    svc: VideoService = Depends(_svc),
):
    video = await svc.update_video(
        video_id,
        actor_id=request.state.user.id,
        title=title,
        description=description,
        thumbnail=_media(thumbnail),
    )
    return ApiResponse(data=VideoRead.model_validate(video), message="Video details updated successfully")


@router.delete("/{video_id}", response_model=ApiResponse[dict])
async def delete_video(
    video_id: uuid.UUID,
    request: Request,
    svc: VideoService = Depends(_svc),
):
    await svc.delete_video(video_id, actor_id=request.state.user.id)
    return ApiResponse(data={}, message="Video deleted successfully")


@router.patch("/toggle/publish/{video_id}", response_model=ApiResponse[PublishState])
async def toggle_publish(
    video_id: uuid.UUID,
    request: Request,
    svc: VideoService = Depends(_svc),
):
    is_published = await svc.toggle_publish(video_id, actor_id=request.state.user.id)
    return ApiResponse(
        data=PublishState(is_published=is_published),
        message="Video publish status toggled successfully",
    )
