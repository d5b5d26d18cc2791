"""
Roomly Backend - File Storage Service
======================================

What:  Validates, stores, resolves and cleans up uploaded listing photos and
       avatars.
How:   Validates extension, size and sniffed MIME type, then writes to
       date-organized directories under a UUID filename with async I/O.
Who:   Upload routes (single image) and ImageService (gallery uploads).

Security Model:
    1. Extension check:   fast rejection before reading content
    2. Size check:        Content-Length header, then actual byte count
    3. MIME type check:   libmagic inspects the header bytes, so a renamed
                          file is rejected
    4. UUID filename:     no user input ever reaches the file system path
    5. Served paths are resolved and must stay inside the storage root
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from roomly.config import settings
from roomly.exceptions import BadRequestError, FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

PUBLIC_PREFIX = "/v1/files"


class FileService:
    """
    Manages the upload lifecycle.

    Directory Structure:
        storage/
        └── 2025/
            └── 07/
                └── 01/
                    ├── a1b2c3d4-5678.jpg
                    └── e5f6g7h8-9012.webp
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the configured storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────
    def validate_extension(self, filename: str) -> str:
        """Returns the normalized (lowercase) extension or raises ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                errors={
                    "file": (
                        f"file type '{ext or filename}' is not supported, "
                        f"allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                    )
                }
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Content-Length is checked first so oversized uploads are rejected
        even when the header lies about a smaller body.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(errors={"file": "must not be empty"})

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                errors={"file": f"must not be larger than {max_mb:.0f}MB"}
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                errors={"file": f"must not be larger than {max_mb:.0f}MB"}
            )

    def _sniff_mime(self, file_content: bytes) -> str:
        # libmagic is a system library; import lazily so importing this module
        # never requires it
        import magic

        return magic.from_buffer(file_content[:2048], mime=True)

    def validate_mime_type(self, file_content: bytes) -> str:
        """
        Inspect magic bytes to determine the real file type.

        Raises:
            ValidationError: content is not an allowed image type
            FileStorageError: libmagic itself failed
        """
        try:
            mime_type = self._sniff_mime(file_content)
        except Exception as e:
            logger.error("MIME type detection failed: %s", e)
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            ) from e

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                errors={"file": f"content type '{mime_type}' is not a supported image"}
            )
        return mime_type

    # ── Storage ───────────────────────────────────────────────────────────
    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for YYYY/MM/DD/<uuid><ext>."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, e)
            await self.cleanup_file(str(absolute_path))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"os_error": str(e)},
            ) from e

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return str(absolute_path), relative_path

    async def cleanup_file(self, file_path: str) -> None:
        """Best-effort removal of a stored file; failures are logged only."""
        path = Path(file_path)
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, e)

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Full pipeline, cheapest check first: extension, size, MIME, write.

        Returns:
            (absolute_path, relative_path)
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content)
        return await self.store_file(content, ext)

    # ── Serving ───────────────────────────────────────────────────────────
    def public_url(self, relative_path: str) -> str:
        return f"{PUBLIC_PREFIX}/{relative_path}"

    def resolve_stored_path(self, relative_path: str) -> Path:
        """
        Map a requested path onto the storage root.

        Raises:
            BadRequestError: the path escapes the storage root
            NotFoundError: no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise BadRequestError(message="invalid file path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path


file_service = FileService()
