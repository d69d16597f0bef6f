"""Applications API Router.

Submission, listing, detail, staff status updates and deletion. Every
response is a ``{"success": ..., "message": ...}`` envelope; domain errors
are rendered by the handlers registered in main.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..auth.dependencies import CurrentUser, require_roles
from ..auth.roles import STATUS_UPDATE_ROLES, UserRole, is_staff
from ..config import Settings, get_settings
from ..dependencies import get_application_service, get_storage
from ..domain.applications.status_catalog import status_catalog
from ..domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError
from ..models.user import User
from .offer_letter import decode_offer_letter, offer_letter_record, store_offer_letter
from .schemas import (
    ApplicationEnvelope,
    ApplicationListEnvelope,
    ApplicationSubmitRequest,
    StatusUpdateRequest,
)
from .service import ApplicationService, StatusUpdateResult


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/applications", tags=["Applications"])
statuses_router = APIRouter(prefix="/api/statuses", tags=["Statuses"])

Service = Annotated[ApplicationService, Depends(get_application_service)]


def _owner_scope(user: User) -> Optional[UUID]:
    """Applicants only see their own applications; staff see all."""
    return None if is_staff(user.role) else user.id


async def _apply_status_update(
    application_id: UUID,
    body: StatusUpdateRequest,
    user: User,
    service: ApplicationService,
    storage: Optional[ObjectStoragePort],
    settings: Settings,
) -> StatusUpdateResult:
    """Run a status update, storing an attached offer letter first."""
    offer_letter = None
    stored = None
    if body.offer_letter is not None:
        service.get_application(application_id)
        service.ensure_offer_letter_allowed(body.status)
        letter = decode_offer_letter(
            body.offer_letter.filename,
            body.offer_letter.data,
            settings.MAX_UPLOAD_SIZE_BYTES,
        )
        stored = await store_offer_letter(storage, letter)
        offer_letter = offer_letter_record(stored, letter.filename, datetime.now(timezone.utc))

    try:
        return service.update_application_status(
            application_id,
            body.status,
            note=body.note,
            tentative_date=body.tentative_date,
            required_documents=body.required_documents,
            actor=user,
            offer_letter=offer_letter,
        )
    except Exception:
        if stored is not None:
            await _discard_stored(storage, stored.storage_key)
        raise


async def _discard_stored(storage: ObjectStoragePort, storage_key: str) -> None:
    try:
        await storage.delete_file(storage_key)
    except StorageError:
        logger.exception("Failed to remove orphaned object %s", storage_key)


def _status_envelope(result: StatusUpdateResult, body: StatusUpdateRequest) -> dict:
    if result.changed:
        message = "Status updated successfully"
    elif body.offer_letter is not None:
        message = "Offer letter uploaded successfully"
    else:
        message = "No changes to apply"
    return {
        "success": True,
        "message": message,
        "changed": result.changed,
        "application": result.application.to_dict(),
    }


@router.post("/submit", response_model=ApplicationEnvelope, status_code=status.HTTP_201_CREATED)
def submit_application(body: ApplicationSubmitRequest, user: CurrentUser, service: Service):
    """Submit a visa application for the authenticated user."""
    application = service.create_application(
        user_id=user.id,
        name=body.name,
        email=body.email,
        destination_id=body.destination_id,
        destination_name=body.destination_name,
        visa_type=body.visa_type,
        documents=[doc.model_dump() for doc in body.documents],
    )
    return ApplicationEnvelope(
        message="Application submitted successfully",
        application=application.to_dict(),
    )


@router.get("", response_model=ApplicationListEnvelope)
def list_applications(
    user: CurrentUser,
    service: Service,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
):
    """List applications visible to the caller, newest first."""
    applications = service.list_applications(user_id=_owner_scope(user), status=status_filter)
    return ApplicationListEnvelope(
        message="Applications retrieved successfully",
        applications=[a.to_dict() for a in applications],
        count=len(applications),
    )


@router.get("/{application_id}", response_model=ApplicationEnvelope)
def get_application(application_id: UUID, user: CurrentUser, service: Service):
    application = service.get_application(application_id, user_id=_owner_scope(user))
    return ApplicationEnvelope(
        message="Application retrieved successfully",
        application=application.to_dict(),
    )


@router.get("/{application_id}/documents/{index}")
async def view_document(
    application_id: UUID,
    index: int,
    user: CurrentUser,
    service: Service,
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Time-limited URL for one of an application's documents.

    Documents kept in object storage get a presigned URL. Documents that
    were submitted as plain URLs are returned as they are.

    Raises:
        404: Application not visible to the caller, no document at ``index``,
            or the stored object is gone
    """
    application = service.get_application(application_id, user_id=_owner_scope(user))
    documents = application.documents or []
    if not 0 <= index < len(documents):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    document = documents[index]
    storage_path = document.get("storagePath")
    if not storage_path:
        return {
            "success": True,
            "message": "Document URL retrieved successfully",
            "type": document.get("type"),
            "url": document.get("url"),
            "expiresIn": None,
        }

    expires_in = settings.DOCUMENT_URL_EXPIRY_SECONDS
    try:
        url = await storage.generate_presigned_url(storage_path, expires_in_seconds=expires_in)
    except FileNotFoundError:
        logger.warning(
            "Stored document missing",
            extra={"application_id": str(application.id), "document_type": document.get("type")},
        )
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document file not found")

    return {
        "success": True,
        "message": "Document URL retrieved successfully",
        "type": document.get("type"),
        "url": url,
        "expiresIn": expires_in,
    }


@router.put("/{application_id}")
async def update_application(
    application_id: UUID,
    body: StatusUpdateRequest,
    user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    service: Service,
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Admin status update (same rules as update-status)."""
    result = await _apply_status_update(application_id, body, user, service, storage, settings)
    return _status_envelope(result, body)


@router.post("/{application_id}/update-status")
async def update_status(
    application_id: UUID,
    body: StatusUpdateRequest,
    user: Annotated[User, Depends(require_roles(*STATUS_UPDATE_ROLES))],
    service: Service,
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Staff status update, optionally attaching an offer letter.

    Example:
        POST /api/applications/{id}/update-status
        {"status": "Additional Documents Needed",
         "note": "Please upload",
         "requiredDocuments": ["Passport", "Photo"]}
    """
    result = await _apply_status_update(application_id, body, user, service, storage, settings)
    return _status_envelope(result, body)


@router.delete("/{application_id}")
def delete_application(
    application_id: UUID,
    user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    service: Service,
):
    service.delete_application(application_id, actor=user)
    return {"success": True, "message": "Application deleted successfully"}


@statuses_router.get("")
def list_statuses():
    """Status catalog with display colors, messages and main-flow steps."""
    return {
        "success": True,
        "message": "Statuses retrieved successfully",
        "statuses": status_catalog(),
    }
