"""Multi-document upload endpoint.

Applicants answer an 'Additional Documents Needed' request by uploading one
file per requested document type. Files go to object storage under
``imiiza_documents/{type_slug}/``; the records are then added to the
application, which is promoted to 'Additional Documents Submitted' once the
latest request is complete.
"""

import json
import logging
from io import BytesIO
from typing import Annotated, List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from ..applications.service import ApplicationService
from ..auth.dependencies import CurrentUser
from ..auth.roles import is_staff
from ..config import Settings, get_settings
from ..dependencies import get_application_service, get_storage
from ..domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError
from ..domain.documents.validation import (
    document_prefix,
    is_supported_mime_type,
    sanitize_filename,
    validate_file_size,
    validate_filename,
)
from .schemas import UploadedDocumentResponse, UploadResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Uploads"])


def _parse_document_types(raw: str) -> List[str]:
    try:
        document_types = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="documentTypes must be a JSON array of strings",
        )
    if not isinstance(document_types, list) or not all(isinstance(t, str) and t.strip() for t in document_types):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="documentTypes must be a JSON array of strings",
        )
    return document_types


@router.post("/upload-multiple-documents", response_model=UploadResponse, response_model_by_alias=True)
async def upload_multiple_documents(
    user: CurrentUser,
    application_id: Annotated[str, Form(alias="applicationId")],
    document_types_raw: Annotated[str, Form(alias="documentTypes")],
    files: Annotated[List[UploadFile], File()],
    service: Annotated[ApplicationService, Depends(get_application_service)],
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Upload requested documents for an application.

    Validation happens for the whole batch before anything is stored:
    - the application must be in 'Additional Documents Needed'
    - one document type per file
    - filename, MIME type and size (MAX_UPLOAD_SIZE_BYTES) of every file

    Example:
        curl -X POST https://api.imiiza.com/api/upload-multiple-documents \\
             -H "Authorization: Bearer $TOKEN" \\
             -F "applicationId=$APP_ID" \\
             -F 'documentTypes=["Passport", "Photo"]' \\
             -F "files=@passport.pdf" \\
             -F "files=@photo.jpg"
    """
    owner_scope = None if is_staff(user.role) else user.id
    application = service.get_application(application_id, user_id=owner_scope)
    service.ensure_accepting_documents(application)

    document_types = _parse_document_types(document_types_raw)
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")
    if len(files) > settings.MAX_BATCH_UPLOAD_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. Maximum {settings.MAX_BATCH_UPLOAD_FILES} files per batch.",
        )
    if len(document_types) != len(files):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Document types must match the number of files",
        )

    prepared = []
    for document_type, file in zip(document_types, files):
        is_valid, error_msg = validate_filename(file.filename)
        if not is_valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)

        if not is_supported_mime_type(file.content_type):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported file type for {document_type}: {file.content_type}",
            )

        content = await file.read()
        is_valid, error_msg = validate_file_size(len(content), settings.MAX_UPLOAD_SIZE_BYTES)
        if not is_valid:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"{document_type}: {error_msg}",
            )

        prepared.append((document_type.strip(), sanitize_filename(file.filename), file.content_type, content))

    stored_keys = []
    records = []
    try:
        for document_type, filename, mime_type, content in prepared:
            stored = await storage.store_file(
                file=BytesIO(content),
                prefix=document_prefix(document_type),
                filename=filename,
                mime_type=mime_type,
            )
            stored_keys.append(stored.storage_key)
            records.append({
                "type": document_type,
                "url": stored.url,
                "originalName": filename,
                "mimeType": mime_type,
                "size": stored.size_bytes,
                "sha256": stored.sha256,
                "storagePath": stored.storage_key,
            })

        result = service.record_document_uploads(application.id, records, actor=user)
    except Exception:
        for key in stored_keys:
            await _discard_stored(storage, key)
        raise

    logger.info(
        "Documents uploaded",
        extra={
            "application_id": str(application.id),
            "user_id": str(user.id),
            "status": result.application.current_status,
        },
    )

    return UploadResponse(
        message="Documents uploaded successfully",
        documents=[_document_response(doc) for doc in result.documents],
        current_status=result.application.current_status,
        promoted=bool(result.promotions),
        application=result.application.to_dict(),
    )


def _document_response(doc: dict) -> UploadedDocumentResponse:
    return UploadedDocumentResponse(
        type=doc["type"],
        url=doc["url"],
        original_name=doc["originalName"],
        mime_type=doc["mimeType"],
        size=doc["size"],
        upload_date=doc["uploadDate"],
        storage_path=doc["storagePath"],
        sha256=doc["sha256"],
    )


async def _discard_stored(storage: ObjectStoragePort, storage_key: str) -> None:
    try:
        await storage.delete_file(storage_key)
    except StorageError:
        logger.exception("Failed to remove orphaned object %s", storage_key)
