"""
Local object storage for uploaded post images.

Files land under ``<root>/<bucket>/`` and are served by the static mount
at ``url_prefix``.
"""
import asyncio
import logging
import pathlib
import uuid

from .config import settings
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


class ImageStorage:
    def __init__(
        self,
        root: str | pathlib.Path,
        bucket: str,
        url_prefix: str = "/uploads",
        max_bytes: int = settings.MAX_UPLOAD_BYTES,
    ):
        self.root = pathlib.Path(root)
        self.bucket = bucket
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    @property
    def directory(self) -> pathlib.Path:
        return self.root / self.bucket

    def _validate(self, data: bytes, content_type: str | None) -> str:
        ext = IMAGE_EXTENSIONS.get((content_type or "").lower())
        if ext is None:
            raise ValidationError("Only JPEG, PNG, GIF or WebP images are allowed")
        if not data:
            raise ValidationError("Empty upload")
        if len(data) > self.max_bytes:
            raise ValidationError(f"Image larger than {self.max_bytes} bytes")
        return ext

    async def save(self, data: bytes, content_type: str | None) -> str:
        """Store image bytes and return their public URL."""
        ext = self._validate(data, content_type)
        name = f"{uuid.uuid4().hex}.{ext}"
        path = self.directory / name
        self.directory.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        logger.info("stored upload %s (%d bytes)", path, len(data))
        return f"{self.url_prefix}/{self.bucket}/{name}"


def default_storage() -> ImageStorage:
    return ImageStorage(
        settings.UPLOAD_DIR,
        settings.STORAGE_BUCKET,
        settings.UPLOAD_URL_PREFIX,
        settings.MAX_UPLOAD_BYTES,
    )
