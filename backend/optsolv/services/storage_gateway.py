"""
OptSolv Backend — Storage Gateway
===================================

What:  Validates an uploaded image, stores it as a blob and records the
       Document row that owns it.
How:   Blobs live on the local filesystem under settings.storage_root and are
       served back by GET /api/files/{key}. The Document row is created in
       its own transaction after the blob write; if that insert fails the
       blob is deleted again, so a failed upload leaves nothing behind.
Who:   The pipeline orchestrator (uploading stage) and POST /api/upload.
       The OCR gateway reads local blobs through `read_blob`.

Validation order (cheapest first, nothing is written before all pass):
    1. Declared content type ∈ {image/jpeg, image/png, image/webp}
    2. Size: non-empty and ≤ settings.max_file_size (10 MiB)
    3. Pillow decodes the header and the format is JPEG, PNG or WEBP

Key layout:
    <user_id>/<uuid4 hex>.<ext>
    e.g. 5b0c...e1/9f1c2a7d4b6e4f0a8c3d2e1f0a9b8c7d.png
    The user prefix namespaces blobs per owner; the random part makes
    collisions negligible. No part of the client's filename is used.
"""

import io
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
from PIL import Image, UnidentifiedImageError
from sqlalchemy.ext.asyncio import async_sessionmaker

from optsolv.config import settings
from optsolv.database import session_scope
from optsolv.exceptions import (
    NotFoundError,
    PersistenceError,
    StorageError,
    ValidationError,
)
from optsolv.repositories import DocumentRepository

logger = logging.getLogger(__name__)

# Declared MIME type → stored extension
ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

# Pillow format name → (extension, MIME type)
PILLOW_FORMATS = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "WEBP": ("webp", "image/webp"),
}

MEDIA_TYPES = {ext: mime for ext, mime in PILLOW_FORMATS.values()}

KEY_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}/[0-9a-f]{32}\.(jpg|png|webp)$"
)

FILES_ROUTE = "/api/files/"


@dataclass(frozen=True)
class UploadResult:
    document_id: uuid.UUID
    image_url: str
    key: str


class StorageGateway:
    def __init__(
        self,
        storage_root: Optional[str] = None,
        public_base_url: Optional[str] = None,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        """
        Args:
            storage_root:    Override settings.storage_root (tests use a tmp dir)
            public_base_url: Override settings.public_base_url
            session_factory: Session factory for the Document insert
                             (defaults to the application's factory)
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        self.session_factory = session_factory
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("StorageGateway initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_content_type(self, content_type: Optional[str]) -> None:
        declared = (content_type or "").split(";")[0].strip().lower()
        if declared not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message="Invalid file type. Only JPEG, PNG, and WEBP are allowed.",
                field="file",
                context={"content_type": declared, "allowed": list(ALLOWED_CONTENT_TYPES)},
            )

    def validate_declared_size(self, declared_size: Optional[int]) -> None:
        """
        Reject an upload by its reported size, before its bytes are read.

        The reported size may be missing or wrong; validate_size on the real
        bytes still runs afterwards.
        """
        if declared_size and declared_size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": declared_size},
            )

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="File is empty.", field="file")
        if size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def detect_format(self, content: bytes) -> str:
        """
        Decode the image header with Pillow and return the stored extension.

        Raises:
            ValidationError: Bytes are not an image, or not one of the allowed formats.
        """
        try:
            with Image.open(io.BytesIO(content)) as image:
                image_format = image.format
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ValidationError(
                message="File content is not a valid image.",
                field="file",
                context={"reason": type(e).__name__},
            )

        if image_format not in PILLOW_FORMATS:
            raise ValidationError(
                message="Invalid file type. Only JPEG, PNG, and WEBP are allowed.",
                field="file",
                context={"detected_format": image_format},
            )
        return PILLOW_FORMATS[image_format][0]

    # ── Keys, paths and URLs ──────────────────────────────────────────────

    def generate_key(self, user_id: uuid.UUID, extension: str) -> str:
        return f"{user_id}/{uuid.uuid4().hex}.{extension}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}{FILES_ROUTE}{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        """Return the blob key when `url` points at this gateway's files route, else None."""
        prefix = f"{self.public_base_url}{FILES_ROUTE}"
        if not url.startswith(prefix):
            return None
        key = url[len(prefix):]
        return key if KEY_PATTERN.match(key) else None

    def resolve_path(self, key: str) -> Path:
        """
        Map a key to its file, refusing anything that is not a well-formed key.

        Raises:
            NotFoundError: Malformed key, key escaping the storage root, or no such blob.
        """
        if not KEY_PATTERN.match(key):
            raise NotFoundError("File")
        path = (self.storage_root / key).resolve()
        if self.storage_root not in path.parents or not path.is_file():
            raise NotFoundError("File")
        return path

    @staticmethod
    def media_type_for(key: str) -> str:
        return MEDIA_TYPES.get(key.rsplit(".", 1)[-1], "application/octet-stream")

    # ── Blob I/O ──────────────────────────────────────────────────────────

    async def write_blob(self, key: str, content: bytes) -> None:
        path = self.storage_root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store blob %s: %s", key, str(e))
            raise StorageError(context={"key": key, "os_error": str(e)})
        logger.info("Blob stored: %s (%d bytes)", key, len(content))

    async def read_blob(self, key: str) -> bytes:
        path = self.resolve_path(key)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error("Failed to read blob %s: %s", key, str(e))
            raise StorageError(message="Failed to read file", context={"key": key})

    async def delete_blob(self, key: str) -> None:
        """Best-effort removal used as the compensating action of a failed upload."""
        path = self.storage_root / key
        try:
            path.unlink(missing_ok=True)
            logger.info("Deleted blob: %s", key)
        except OSError as e:
            logger.warning("Failed to delete blob %s: %s", key, str(e))

    # ── Upload ────────────────────────────────────────────────────────────

    async def upload(
        self,
        user_id: uuid.UUID,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
    ) -> UploadResult:
        """
        Validate, store and register an image.

        Returns:
            UploadResult with the new document id and its public URL.

        Raises:
            ValidationError:  Type, size or content check failed (nothing stored)
            StorageError:     Blob write failed (nothing stored)
            PersistenceError: Document insert failed (blob removed again)
        """
        self.validate_content_type(content_type)
        self.validate_size(len(content))
        extension = self.detect_format(content)

        key = self.generate_key(user_id, extension)
        await self.write_blob(key, content)
        image_url = self.public_url(key)

        try:
            async with session_scope(self.session_factory) as session:
                document = await DocumentRepository(session).create(user_id, image_url)
                document_id = document.id
        except Exception as e:
            logger.error(
                "Document insert failed for blob %s (original name %r): %s",
                key,
                filename,
                str(e),
            )
            await self.delete_blob(key)
            raise PersistenceError(
                message="Failed to create document record",
                context={"error_type": type(e).__name__},
            )

        logger.info("Upload complete: document=%s key=%s", document_id, key)
        return UploadResult(document_id=document_id, image_url=image_url, key=key)


# ── Singleton Instance ────────────────────────────────────────────────────
storage_gateway = StorageGateway()
