"""Blob storage for uploaded videos, thumbnails, captions and avatars."""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, NamedTuple
from uuid import uuid4

from deaftube.config import settings
from deaftube.domain.enums import BlobCategory
from deaftube.logging import get_logger
from deaftube.services.errors import StorageFailureError, ValidationError

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredBlob:
    """Metadata for a stored upload."""

    filename: str
    category: BlobCategory
    file_path: Path
    file_size_bytes: int
    checksum: str
    created_at: datetime


class StorageService:
    """Local filesystem store keyed by generated filenames.

    Files land in ``<base_path>/<category>s/<uuid><ext>``; the generated
    filename is what the database records.
    """

    def __init__(
        self,
        base_path: Path | None = None,
        max_video_bytes: int | None = None,
        create_dirs: bool = True,
    ) -> None:
        """Initialize storage service.

        Args:
            base_path: Root upload directory. Defaults to settings.upload_dir
            max_video_bytes: Size cap for video uploads. Defaults to settings.max_video_bytes
            create_dirs: Whether to create directories if they don't exist
        """
        self.base_path = base_path or settings.upload_dir
        self.max_video_bytes = max_video_bytes or settings.max_video_bytes

        if create_dirs:
            self._ensure_dirs()

    def _ensure_dirs(self) -> None:
        """Create one directory per blob category."""
        for category in BlobCategory:
            (self.base_path / category.directory).mkdir(parents=True, exist_ok=True)

    def _size_limit(self, category: BlobCategory) -> int | None:
        return self.max_video_bytes if category is BlobCategory.VIDEO else None

    def path_for(self, filename: str, category: BlobCategory) -> Path:
        """Absolute location of a stored blob."""
        return self.base_path / category.directory / Path(filename).name

    def store(
        self,
        fileobj: BinaryIO,
        original_filename: str | None,
        category: BlobCategory,
    ) -> StoredBlob:
        """Copy an uploaded file into the store.

        Args:
            fileobj: Readable binary stream positioned at the start of the upload
            original_filename: Client-supplied name; only its extension is kept
            category: Which kind of upload this is

        Returns:
            StoredBlob describing the written file

        Raises:
            ValidationError: If a video exceeds the configured size limit
            StorageFailureError: If the file cannot be written
        """
        ext = Path(original_filename or "").suffix.lower()
        filename = f"{uuid4()}{ext}"
        file_path = self.path_for(filename, category)
        limit = self._size_limit(category)

        digest = hashlib.sha256()
        size = 0
        try:
            with file_path.open("wb") as out:
                while chunk := fileobj.read(CHUNK_SIZE):
                    size += len(chunk)
                    if limit is not None and size > limit:
                        raise ValidationError("File too large")
                    digest.update(chunk)
                    out.write(chunk)
        except ValidationError:
            file_path.unlink(missing_ok=True)
            logger.warning(
                "storage_upload_rejected",
                category=category.value,
                limit_bytes=limit,
            )
            raise
        except OSError as e:
            file_path.unlink(missing_ok=True)
            logger.error("storage_write_failed", category=category.value, error=str(e))
            raise StorageFailureError("Upload failed") from e

        logger.info(
            "storage_upload_stored",
            category=category.value,
            filename=filename,
            file_size=size,
        )

        return StoredBlob(
            filename=filename,
            category=category,
            file_path=file_path,
            file_size_bytes=size,
            checksum=digest.hexdigest(),
            created_at=datetime.now(timezone.utc),
        )

    def delete(self, filename: str | None, category: BlobCategory) -> bool:
        """Remove a stored blob. Returns False when there was nothing to remove."""
        if not filename:
            return False

        file_path = self.path_for(filename, category)
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("storage_delete_failed", filename=filename, error=str(e))
            return False

        logger.info("storage_blob_deleted", category=category.value, filename=filename)
        return True


class Upload(NamedTuple):
    """An incoming file: its stream and the client-supplied name."""

    fileobj: BinaryIO
    filename: str | None
