"""
Utilities for the study material object store (a local directory tree).
"""
import os
import time
import secrets
from pathlib import Path
from typing import Optional
from core.config import settings
from core.exceptions import StorageException, ValidationException
from core.logging import get_logger

logger = get_logger("storage")


def build_storage_path(user_id: str, class_id: int, filename: str) -> str:
    """
    Build the object key for a new upload.

    Layout is ``{user_id}/{class_id}/{ms-timestamp}_{random}.{ext}``.
    """
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower() or "bin"
    stamp = int(time.time() * 1000)
    return f"{user_id}/{class_id}/{stamp}_{secrets.token_hex(4)}.{ext}"


class LocalObjectStorage:
    """Object store rooted at a directory; keys are relative POSIX paths."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.storage_directory).resolve()

    def _resolve(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise StorageException(f"Invalid storage key: {key}")
        return path

    async def save(self, key: str, content: bytes) -> str:
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error("Failed to store object", key=key, error=str(e))
            raise StorageException(f"Failed to store file: {e}")
        logger.info("Stored object", key=key, size=len(content))
        return key

    async def read(self, key: str) -> bytes:
        path = self._resolve(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.error("Failed to read object", key=key, error=str(e))
            raise StorageException(f"Failed to download file: {e}")

    async def delete(self, key: str) -> bool:
        """
        Delete an object.

        Returns:
            bool: True if something was removed, False if it did not exist
        """
        path = self._resolve(key)
        try:
            if path.exists():
                path.unlink()
                return True
            return False
        except OSError as e:
            # a leftover file must not block deleting the row
            logger.warning("Failed to delete object", key=key, error=str(e))
            return False


def validate_mime_type(mime_type: Optional[str]) -> str:
    if not mime_type or mime_type not in settings.allowed_mime_types:
        raise ValidationException(f"Unsupported file type: {mime_type}")
    return mime_type


def validate_file_size(file_size: int) -> int:
    """
    Validate that the file size is within allowed limits.

    Raises:
        ValidationException: If the file is empty or too large
    """
    max_size_bytes = settings.max_file_size_mb * 1024 * 1024
    if file_size <= 0:
        raise ValidationException("Uploaded file is empty")
    if file_size > max_size_bytes:
        raise ValidationException(f"File exceeds the {settings.max_file_size_mb} MB limit")
    return file_size


def get_storage() -> LocalObjectStorage:
    """FastAPI dependency returning the configured store."""
    return LocalObjectStorage()
