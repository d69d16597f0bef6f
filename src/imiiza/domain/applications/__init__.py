"""Application status workflow: catalog, history, upload tracker and engine."""

from .document_tracker import (
    missing_documents,
    normalize_document_type,
    plan_upload_promotion,
)
from .engine import (
    ApplicationState,
    TransitionResult,
    apply_document_upload,
    apply_status_update,
)
from .errors import (
    ApplicationAlreadyAssignedError,
    ApplicationError,
    ApplicationNotFoundError,
    ApplicationValidationError,
    ConcurrentUpdateError,
    UnknownStatusError,
)
from .history import StatusEvent, clean_required_documents, latest_document_request
from .status_catalog import (
    ApplicationStatus,
    get_status_color,
    get_status_message,
    get_status_step,
    normalize_status,
    parse_status,
    status_catalog,
)

__all__ = [
    "ApplicationAlreadyAssignedError",
    "ApplicationError",
    "ApplicationNotFoundError",
    "ApplicationState",
    "ApplicationStatus",
    "ApplicationValidationError",
    "ConcurrentUpdateError",
    "StatusEvent",
    "TransitionResult",
    "UnknownStatusError",
    "apply_document_upload",
    "apply_status_update",
    "clean_required_documents",
    "get_status_color",
    "get_status_message",
    "get_status_step",
    "latest_document_request",
    "missing_documents",
    "normalize_document_type",
    "normalize_status",
    "parse_status",
    "plan_upload_promotion",
    "status_catalog",
]
