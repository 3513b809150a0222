"""Media validation and storage for post uploads."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Final, Protocol

from snapfeed.core.errors import InternalError, InvalidInputError
from snapfeed.core.settings import settings
from snapfeed.models.post import MEDIA_TYPE_IMAGE, MEDIA_TYPE_VIDEO

logger = logging.getLogger(__name__)

ALLOWED_MEDIA_TYPES: Final[dict[str, str]] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
}


class MediaStorage(Protocol):
    """Contract for persisting uploaded media bytes."""

    def store(self, data: bytes, content_type: str) -> str: ...

    def delete(self, reference: str) -> None: ...

    def open(self, reference: str) -> bytes | None: ...


def validate_media(data: bytes, content_type: str | None, max_bytes: int | None = None) -> str:
    """Check size and MIME type, returning `image` or `video`.

    Raises:
        InvalidInputError: If the upload is empty, too large, or not an
            allowed image/video type.
    """
    limit = settings.media_max_bytes if max_bytes is None else max_bytes
    if not data:
        raise InvalidInputError("Media is required")
    if len(data) > limit:
        raise InvalidInputError(f"Media exceeds the {limit // (1024 * 1024)} MiB limit")
    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    if normalized not in ALLOWED_MEDIA_TYPES:
        raise InvalidInputError(
            "Only images (jpeg, png, gif) and videos (mp4, webm, mov) are allowed"
        )
    return MEDIA_TYPE_VIDEO if normalized.startswith("video/") else MEDIA_TYPE_IMAGE


class LocalMediaStorage:
    """Stores media as files under a root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def _path(self, reference: str) -> Path:
        path = (self.root / reference).resolve()
        if not path.is_relative_to(self.root):
            raise InvalidInputError("Invalid media reference")
        return path

    def store(self, data: bytes, content_type: str) -> str:
        extension = ALLOWED_MEDIA_TYPES[content_type.split(";", 1)[0].strip().lower()]
        reference = f"posts/{uuid.uuid4().hex}{extension}"
        path = self._path(reference)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise InternalError("Failed to store media") from exc
        logger.debug("Stored media %s (%d bytes)", reference, len(data))
        return reference

    def delete(self, reference: str) -> None:
        path = self._path(reference)
        if not path.exists():
            logger.warning("Media %s already missing from storage", reference)
            return
        try:
            path.unlink()
        except OSError as exc:
            raise InternalError(f"Failed to delete media {reference}") from exc

    def open(self, reference: str) -> bytes | None:
        path = self._path(reference)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None


def get_media_storage() -> MediaStorage:
    """Return the media storage configured for this process."""
    return LocalMediaStorage(settings.media_root)
