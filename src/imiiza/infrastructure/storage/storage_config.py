"""Storage configuration for S3-compatible object storage.

Supports both MinIO (development) and AWS S3 (production) with the same
interface. Values come from the application Settings.
"""

from dataclasses import dataclass
from typing import Optional

from ...config import Settings, get_settings


@dataclass
class StorageConfig:
    """Configuration for S3-compatible object storage.

    Attributes:
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: Bucket for applicant documents and offer letters
        region: AWS region (default: 'us-east-1')
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"


def load_storage_config(settings: Optional[Settings] = None) -> StorageConfig:
    """Build a StorageConfig from Settings.

    An empty MINIO_ENDPOINT selects AWS S3; otherwise the endpoint is turned
    into a URL using MINIO_USE_SSL.

    Raises:
        ValueError: If credentials or bucket are missing
    """
    settings = settings or get_settings()

    endpoint_url = None
    if settings.MINIO_ENDPOINT:
        protocol = "https" if settings.MINIO_USE_SSL else "http"
        endpoint_url = f"{protocol}://{settings.MINIO_ENDPOINT}"

    if not settings.MINIO_ROOT_USER or not settings.MINIO_ROOT_PASSWORD:
        raise ValueError(
            "Missing required storage credentials. "
            "Set MINIO_ROOT_USER and MINIO_ROOT_PASSWORD environment variables."
        )

    if not settings.MINIO_BUCKET:
        raise ValueError("MINIO_BUCKET is required")

    return StorageConfig(
        endpoint_url=endpoint_url,
        access_key=settings.MINIO_ROOT_USER,
        secret_key=settings.MINIO_ROOT_PASSWORD,
        bucket_name=settings.MINIO_BUCKET,
        region=settings.AWS_REGION,
    )
