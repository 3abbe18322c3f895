"""Media host client — where video files, thumbnails and avatars go.

Learn: Services only see the MediaUploader protocol:
    upload(source, filename) -> UploadResult(url, duration)
so the hosted provider can be swapped without touching business logic.
LocalMediaUploader writes to a directory that a CDN or reverse proxy
serves under media_base_url. Tests override get_media_uploader with
an in-memory fake.
"""

import asyncio
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Protocol

import structlog

from vidtube.config import settings
from vidtube.errors import MediaUploadError

logger = structlog.get_logger()


@dataclass(frozen=True)
class UploadResult:
    url: str
    # Seconds, when the host can tell (videos only).
    duration: Optional[float] = None


class MediaUploader(Protocol):
    async def upload(self, source: BinaryIO, filename: str) -> UploadResult: ...

    async def delete(self, url: str) -> None: ...


class LocalMediaUploader:
    """Stores uploads under a local directory with random file names."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def upload(self, source: BinaryIO, filename: str) -> UploadResult:
        suffix = Path(filename or "").suffix.lower()
        name = f"{uuid.uuid4().hex}{suffix}"
        target = self.root / name
        try:
            await asyncio.to_thread(self._write, source, target)
        except OSError as e:
            logger.error("media.upload_failed", filename=filename, error=str(e))
            raise MediaUploadError() from e

        logger.info("media.uploaded", name=name)
        return UploadResult(url=f"{self.base_url}/{name}")

    async def delete(self, url: str) -> None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return
        target = self.root / url[len(prefix):]
        await asyncio.to_thread(target.unlink, True)

    def _write(self, source: BinaryIO, target: Path) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        with target.open("wb") as out:
            shutil.copyfileobj(source, out)


def get_media_uploader() -> MediaUploader:
    """FastAPI dependency — the configured media host."""
    return LocalMediaUploader(settings.media_root, settings.media_base_url)
