"""
DevCamper Backend — File Storage Service
==========================================

What:  Validates and stores bootcamp photos.
How:   Content-type and size checks, then an async write with aiofiles under
       settings.file_upload_path. The stored filename is derived from the
       bootcamp id, so a new upload replaces the previous photo.
Who:   Called by BootcampService.upload_photo.

Validation order:
    1. A file was sent at all
    2. Declared content type is image/*
    3. Size is within settings.max_file_upload
    4. Write photo_<bootcamp id><ext>
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from devcamper.config import settings
from devcamper.exceptions import StoreFailure, ValidationError

logger = logging.getLogger(__name__)

# Extension used when the client filename carries none
DEFAULT_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class FileService:
    """
    Manages the photo upload directory.

    Directory Structure:
        public/uploads/
        ├── photo_5d725a1b-....jpg
        └── photo_5d713995-....png
    """

    def __init__(self, upload_root: Optional[str] = None):
        """
        Args:
            upload_root: Override the upload directory (used in tests).
                         If None, uses settings.file_upload_path.
        """
        self._upload_root = upload_root

    @property
    def upload_root(self) -> Path:
        return Path(self._upload_root or settings.file_upload_path).resolve()

    def validate_content_type(self, content_type: Optional[str]) -> str:
        if not content_type or not content_type.startswith("image"):
            raise ValidationError(
                message="Please upload an image file",
                field="file",
                context={"content_type": content_type},
            )
        return content_type

    def validate_size(self, size: int) -> None:
        if size > settings.max_file_upload:
            raise ValidationError(
                message=f"Please upload an image less than {settings.max_file_upload} bytes",
                field="file",
                context={"size": size, "max_size": settings.max_file_upload},
            )

    @staticmethod
    def photo_filename(bootcamp_id: uuid.UUID, filename: Optional[str], content_type: str) -> str:
        """photo_<id><ext>; the extension comes from the client filename or the content type."""
        ext = Path(filename or "").suffix.lower()
        if not ext:
            ext = DEFAULT_EXTENSIONS.get(content_type, "")
        return f"photo_{bootcamp_id}{ext}"

    async def store_photo(
        self,
        bootcamp_id: uuid.UUID,
        filename: Optional[str],
        content_type: Optional[str],
        content: Optional[bytes],
    ) -> str:
        """
        Validate an uploaded photo and write it to disk.

        Returns:
            The stored filename (saved on the bootcamp's `photo` column)

        Raises:
            ValidationError: no file, not an image, or too large
            StoreFailure: the file could not be written
        """
        if not content:
            raise ValidationError(message="Please upload a file", field="file")
        content_type = self.validate_content_type(content_type)
        self.validate_size(len(content))

        name = self.photo_filename(bootcamp_id, filename, content_type)
        target = self.upload_root / name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store photo at %s: %s", target, str(e))
            raise StoreFailure(
                message="Problem with file upload",
                context={"path": str(target), "os_error": str(e)},
            ) from e

        logger.info("Photo stored: %s (%d bytes)", name, len(content))
        return name


file_service = FileService()
