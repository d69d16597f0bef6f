"""Document-upload completion tracking.

Works out which requested documents are still missing and whether an upload
should promote the application to 'Additional Documents Submitted'.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Set

from .history import StatusEvent, format_timestamp, latest_document_request
from .status_catalog import ApplicationStatus, has_reached_submitted_stage


REQUEST_SATISFIED_NOTE = "All required documents have been uploaded"
LEGACY_PROMOTION_NOTE = "Status updated based on document uploads"


def normalize_document_type(value) -> str:
    """Comparison key for document types: trimmed and case-folded."""
    if value is None:
        return ""
    return str(value).strip().casefold()


def uploaded_types(documents: Optional[Iterable[dict]]) -> Set[str]:
    """Normalized types of every uploaded document."""
    types = set()
    for document in documents or []:
        key = normalize_document_type(document.get("type"))
        if key:
            types.add(key)
    return types


def missing_documents(required: Iterable[str], documents: Optional[Iterable[dict]]) -> List[str]:
    """Required document types not yet uploaded, in the order they were requested."""
    have = uploaded_types(documents)
    return [doc for doc in required if normalize_document_type(doc) not in have]


def is_request_satisfied(request: StatusEvent, documents: Optional[Iterable[dict]]) -> bool:
    if not request.required_documents:
        return False
    return not missing_documents(request.required_documents, documents)


def plan_upload_promotion(
    current_status: str,
    history: Optional[List[dict]],
    documents: Optional[List[dict]],
    now: datetime,
) -> Optional[StatusEvent]:
    """Decide whether the latest upload promotes the application.

    Returns the single event to append, or None when the status stays put.
    Applications already at or past the submitted stage are never promoted.
    When no document request exists (older applications), any upload
    promotes.
    The service only accepts uploads in "Additional Documents Needed", so
    the stage guard matters for direct callers and legacy rows.
    """
    if has_reached_submitted_stage(current_status):
        return None

    request = latest_document_request(history)
    if request is None:
        note = LEGACY_PROMOTION_NOTE
    elif is_request_satisfied(request, documents):
        note = REQUEST_SATISFIED_NOTE
    else:
        return None

    return StatusEvent(
        status=ApplicationStatus.ADDITIONAL_DOCUMENTS_SUBMITTED.value,
        date=format_timestamp(now),
        note=note,
    )
