"""Local storage for inspection photos and selfies."""

import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from app.config import settings
from app.exceptions import UploadError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/heic": ".heic",
}


def _upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


async def read_image(upload: UploadFile, field: str) -> bytes:
    """Read an uploaded image, enforcing content type and size limits."""
    content_type = (upload.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise UploadError(field, f"{field} must be an image")

    data = await upload.read()
    if not data:
        raise UploadError(field, f"{field} is empty")
    if len(data) > settings.max_upload_bytes:
        raise UploadError(field, f"{field} exceeds {settings.MAX_UPLOAD_MB} MB")
    return data


def save_image(data: bytes, content_type: Optional[str], folder: str) -> str:
    """Write ``data`` under UPLOAD_DIR/folder and return its relative path."""
    extension = _EXTENSIONS.get((content_type or "").lower(), ".jpg")
    relative = Path(folder) / f"{uuid.uuid4().hex}{extension}"
    target = _upload_root() / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    logger.debug(f"Stored upload {relative} ({len(data)} bytes)")
    return relative.as_posix()


def delete_image(relative_path: Optional[str]) -> bool:
    """Remove a stored upload. Missing files are ignored."""
    if not relative_path:
        return False
    target = _upload_root() / relative_path
    try:
        target.unlink()
    except FileNotFoundError:
        return False
    return True
