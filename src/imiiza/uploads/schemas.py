"""Upload API response schemas"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class UploadedDocumentResponse(BaseModel):
    """Document record as stored on the application."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    url: str
    original_name: str = Field(..., alias="originalName")
    mime_type: str = Field(..., alias="mimeType")
    size: int
    upload_date: str = Field(..., alias="uploadDate")
    storage_path: str = Field(..., alias="storagePath")
    sha256: str


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    documents: List[UploadedDocumentResponse]
    current_status: str = Field(..., alias="currentStatus")
    promoted: bool
    application: Dict[str, Any]
