"""
Local-disk image storage.

Files live under ``settings.UPLOAD_DIR``; the database keeps paths
relative to it so the upload root can move without a migration.  The
same tree is served read-only at ``/uploads`` by ``main.py``.
"""
import logging
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from market_api.config import settings

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class InvalidImageError(ValueError):
    """Raised for uploads that are missing, too large, or not an image."""


@dataclass(frozen=True)
class StoredFile:
    name: str
    path: str  # relative to UPLOAD_DIR, POSIX separators
    size: int


def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def absolute_path(relative: str) -> Path:
    return upload_root() / PurePosixPath(relative)


def public_url(relative: str) -> str:
    return f"/uploads/{relative}"


def safe_segment(value: str) -> str:
    """Validate a user-supplied directory segment such as the upload type."""
    if not _SEGMENT_RE.match(value):
        raise InvalidImageError(f"Invalid upload type: {value!r}")
    return value


def _check_image(upload: UploadFile) -> str:
    """Return the lower-cased extension of an acceptable image upload."""
    if upload is None or not upload.filename:
        raise InvalidImageError("No image file was uploaded")
    ext = Path(upload.filename).suffix.lower().lstrip(".")
    allowed = settings.ALLOWED_IMAGE_EXTENSIONS
    mime_subtype = (upload.content_type or "").partition("/")[2].lower()
    if ext not in allowed or not (upload.content_type or "").startswith("image/") or mime_subtype not in allowed:
        raise InvalidImageError(
            "Only image files (" + ", ".join(sorted(allowed)) + ") can be uploaded"
        )
    return ext


async def save_image(upload: UploadFile, directory: str, stem: str) -> StoredFile:
    """
    Stream *upload* to ``UPLOAD_DIR/<directory>/<stem>-<ms>-<rand>.<ext>``.

    Raises InvalidImageError for non-image uploads and for files over
    ``settings.MAX_UPLOAD_SIZE``; a partially written file is removed.
    """
    ext = _check_image(upload)
    name = f"{stem}-{int(time.time() * 1000)}-{secrets.token_hex(3)}.{ext}"
    relative = str(PurePosixPath(directory) / name)
    target = absolute_path(relative)
    await aiofiles.os.makedirs(target.parent, exist_ok=True)

    size = 0
    async with aiofiles.open(target, "wb") as out:
        while chunk := await upload.read(_CHUNK_SIZE):
            size += len(chunk)
            if size > settings.MAX_UPLOAD_SIZE:
                break
            await out.write(chunk)

    if size > settings.MAX_UPLOAD_SIZE:
        await remove_file(relative)
        limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        raise InvalidImageError(f"Image exceeds the {limit_mb} MB upload limit")

    logger.info("Stored upload %s (%d bytes)", relative, size)
    return StoredFile(name=name, path=relative, size=size)


async def remove_file(relative: str) -> None:
    """Delete a stored file; a file that is already gone is not an error."""
    try:
        await aiofiles.os.remove(absolute_path(relative))
    except FileNotFoundError:
        logger.warning("Stored file already missing: %s", relative)
