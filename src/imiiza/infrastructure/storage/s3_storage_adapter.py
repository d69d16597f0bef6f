"""S3 Storage Adapter - ObjectStoragePort implementation using boto3.

Works against AWS S3 and MinIO. Objects are written under a caller-chosen
prefix with a random UUID name, so two uploads never overwrite each other.
"""

import hashlib
import logging
import uuid
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ...domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Example:
        storage = S3StorageAdapter.from_config(load_storage_config())

        with open('passport.pdf', 'rb') as f:
            stored = await storage.store_file(
                file=f,
                prefix='imiiza_documents/passport',
                filename='passport.pdf',
                mime_type='application/pdf',
            )
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
    ):
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Failed to initialize S3 client: {e}") from e

        self.endpoint_url = endpoint_url
        self.bucket_name = bucket_name
        self.region = region

        logger.info(
            f"Initialized S3 storage adapter: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    @classmethod
    def from_config(cls, config: StorageConfig) -> "S3StorageAdapter":
        return cls(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )

    async def store_file(
        self,
        file: BinaryIO,
        prefix: str,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        """Upload a file to {prefix}/{uuid}{ext}.

        Reads the stream in 8KB chunks while hashing it.

        Raises:
            StorageError: If upload fails
            ValueError: If file is empty
        """
        sha256_hash = hashlib.sha256()
        chunks = []
        size_bytes = 0

        while True:
            chunk = file.read(8192)
            if not chunk:
                break
            sha256_hash.update(chunk)
            chunks.append(chunk)
            size_bytes += len(chunk)

        if size_bytes == 0:
            raise ValueError("Cannot store empty file")

        sha256_hex = sha256_hash.hexdigest()
        storage_key = self._generate_storage_key(prefix, filename)

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=BytesIO(b"".join(chunks)),
                ContentType=mime_type,
                Metadata={
                    "sha256": sha256_hex,
                    "original_filename": filename,
                },
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"S3 upload failed: storage_key={storage_key}, "
                f"error={error_code}, message={e}"
            )
            raise StorageError(f"Failed to upload file: {error_code}") from e
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: storage_key={storage_key}, message={e}")
            raise StorageError(f"Failed to upload file: {e}") from e

        logger.info(
            f"Uploaded file: storage_key={storage_key}, "
            f"sha256={sha256_hex}, size={size_bytes}, mime_type={mime_type}"
        )

        return StoredFile(
            storage_key=storage_key,
            url=self.object_url(storage_key),
            sha256=sha256_hex,
            size_bytes=size_bytes,
            mime_type=mime_type,
        )

    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        try:
            response = self.s3_client.get_object(
                Bucket=self.bucket_name,
                Key=storage_key,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("NoSuchKey", "404"):
                raise FileNotFoundError(f"File not found: {storage_key}") from e
            logger.error(
                f"S3 retrieval failed: storage_key={storage_key}, error={error_code}"
            )
            raise StorageError(f"Failed to retrieve file: {error_code}") from e

        return response["Body"]

    async def delete_file(self, storage_key: str) -> bool:
        if not await self.file_exists(storage_key):
            logger.info(f"File not found for deletion: storage_key={storage_key}")
            return False

        try:
            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=storage_key,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"S3 deletion failed: storage_key={storage_key}, error={error_code}"
            )
            raise StorageError(f"Failed to delete file: {error_code}") from e

        logger.info(f"Deleted file: storage_key={storage_key}")
        return True

    async def file_exists(self, storage_key: str) -> bool:
        """HEAD the object. Missing objects return False; other errors raise."""
        try:
            self.s3_client.head_object(
                Bucket=self.bucket_name,
                Key=storage_key,
            )
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check file: {error_code}") from e

    async def generate_presigned_url(
        self,
        storage_key: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        if not await self.file_exists(storage_key):
            raise FileNotFoundError(f"File not found: {storage_key}")

        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": storage_key,
                },
                ExpiresIn=expires_in_seconds,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise StorageError(f"Failed to generate presigned URL: {error_code}") from e

    def object_url(self, storage_key: str) -> str:
        """Path-style URL for an object (MinIO) or the regional S3 URL."""
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{storage_key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{storage_key}"

    def _generate_storage_key(self, prefix: str, filename: str) -> str:
        """Generate storage key in format: {prefix}/{uuid}{ext}

        Example:
            >>> adapter._generate_storage_key('imiiza_documents/passport', 'scan.PDF')
            'imiiza_documents/passport/3f0c...e1.pdf'
        """
        ext = Path(filename).suffix.lower()
        return f"{prefix.strip('/')}/{uuid.uuid4()}{ext}"

    async def verify_bucket_exists(self) -> bool:
        """Fail fast on startup if the bucket is missing.

        Raises:
            StorageError: If bucket check fails or bucket doesn't exist
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchBucket"):
                raise StorageError(
                    f"Bucket '{self.bucket_name}' does not exist. "
                    f"Create it first or update MINIO_BUCKET environment variable."
                ) from e
            raise StorageError(f"Failed to verify bucket: {error_code}") from e

        logger.info(f"Verified bucket exists: {self.bucket_name}")
        return True
