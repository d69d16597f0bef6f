"""Shared FastAPI dependencies.

Tests override get_storage with an in-memory ObjectStoragePort.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from .applications.service import ApplicationService
from .config import Settings, get_settings
from .database import get_db
from .domain.documents.ports.object_storage_port import ObjectStoragePort
from .infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from .infrastructure.storage.storage_config import load_storage_config


def get_storage(settings: Settings = Depends(get_settings)) -> ObjectStoragePort:
    """S3/MinIO adapter built from settings."""
    return S3StorageAdapter.from_config(load_storage_config(settings))


def get_application_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApplicationService:
    return ApplicationService(db, settings)
