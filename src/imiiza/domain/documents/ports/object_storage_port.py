"""Object Storage Port - domain interface for S3-compatible storage.

Adapters implement this interface to provide S3, MinIO, or in-memory
storage for applicant documents and offer letters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO


class StorageError(Exception):
    """Raised when the object store cannot complete an operation."""
    pass


@dataclass
class StoredFile:
    """Metadata for a file stored in object storage.

    Attributes:
        storage_key: Key in object storage ({prefix}/{uuid}{ext})
        url: Address the file can be fetched from
        sha256: SHA256 hash of file content (hex format)
        size_bytes: File size in bytes
        mime_type: MIME type of the file (e.g., 'application/pdf')
    """
    storage_key: str
    url: str
    sha256: str
    size_bytes: int
    mime_type: str


class ObjectStoragePort(ABC):
    """Port interface for S3-compatible object storage operations.

    Example Usage:
        storage = S3StorageAdapter(...)

        with open('passport.pdf', 'rb') as f:
            stored = await storage.store_file(
                file=f,
                prefix='imiiza_documents/passport',
                filename='passport.pdf',
                mime_type='application/pdf',
            )
    """

    @abstractmethod
    async def store_file(
        self,
        file: BinaryIO,
        prefix: str,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        """Store a file under ``prefix`` with a fresh unique name.

        The original filename only contributes its extension to the key.

        Raises:
            StorageError: If upload fails or storage is unavailable
            ValueError: If file is empty
        """
        pass

    @abstractmethod
    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        """Retrieve a file by its storage key.

        Raises:
            FileNotFoundError: If file doesn't exist in storage
            StorageError: If retrieval fails
        """
        pass

    @abstractmethod
    async def delete_file(self, storage_key: str) -> bool:
        """Delete a file. Returns False if it didn't exist."""
        pass

    @abstractmethod
    async def file_exists(self, storage_key: str) -> bool:
        pass

    @abstractmethod
    async def generate_presigned_url(
        self,
        storage_key: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        """Generate a time-limited download URL.

        Raises:
            FileNotFoundError: If file doesn't exist
            StorageError: If URL generation fails
        """
        pass
