"""
Blob storage for employee documents.

Only the binary lives here; the reference returned by upload() is persisted
separately as an employee_documents row.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from peopledesk.core.config import settings
from peopledesk.core.exceptions import StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    bucket: str
    path: str
    size: int
    content_type: Optional[str] = None


class BlobStorage(ABC):

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> StoredBlob:
        """Store data at path inside the bucket. Raises StoreError."""

    @abstractmethod
    async def download(self, path: str) -> bytes:
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        ...


class LocalBlobStorage(BlobStorage):
    """Bucket backed by a directory under STORAGE_PATH."""

    def __init__(
        self,
        root: Optional[str] = None,
        bucket: Optional[str] = None,
        max_bytes: Optional[int] = None,
    ):
        self.bucket = bucket or settings.DOCUMENTS_BUCKET
        self.root = Path(root or settings.STORAGE_PATH) / self.bucket
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_document_bytes

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or not relative.parts or ".." in relative.parts:
            raise StoreError(f"Invalid blob path: {path!r}", reason="invalid_path")
        return self.root.joinpath(*relative.parts)

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> StoredBlob:
        if len(data) > self.max_bytes:
            raise StoreError(
                f"File too large. Maximum size: {self.max_bytes // (1024 * 1024)}MB",
                reason="too_large",
            )
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StoreError(f"Failed to store {path}: {exc}", reason="storage_error") from exc
        logger.info(f"Stored {len(data)} bytes at {self.bucket}/{path}")
        return StoredBlob(bucket=self.bucket, path=path, size=len(data), content_type=content_type)

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StoreError(f"{self.bucket}/{path} not found", reason="not_found")
        return target.read_bytes()

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError(f"Failed to delete {path}: {exc}", reason="storage_error") from exc
