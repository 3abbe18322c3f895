"""Pydantic schemas for videos."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class OwnerSummary(BaseModel):
    id: uuid.UUID
    username: str
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}


class VideoRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    video_file: str
    thumbnail: str
    duration: Optional[float] = None
    views: int
    is_published: bool
    owner: OwnerSummary
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VideoPageRead(BaseModel):
    docs: list[VideoRead]
    total_docs: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    model_config = {"from_attributes": True}


class PublishState(BaseModel):
    is_published: bool
