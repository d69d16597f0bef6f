"""Status transition engine.

Pure functions that take the workflow-relevant part of an application,
apply one status update or one document upload, and return the new state.
Persistence and locking live in ``imiiza.applications.service``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .document_tracker import plan_upload_promotion
from .errors import ApplicationValidationError
from .history import (
    StatusEvent,
    append_event,
    clean_required_documents,
    format_timestamp,
)
from .status_catalog import ApplicationStatus, parse_status


@dataclass(frozen=True)
class ApplicationState:
    """Workflow view of an application."""
    current_status: str
    status_history: List[dict] = field(default_factory=list)
    documents: List[dict] = field(default_factory=list)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of an engine call.

    Attributes:
        state: State after the call (the input state when nothing changed)
        changed: Whether a history event was appended
        event: The appended event, if any
    """
    state: ApplicationState
    changed: bool
    event: Optional[StatusEvent] = None


def default_note(status: str) -> str:
    return f"Status updated to {status}"


def apply_status_update(
    state: ApplicationState,
    new_status,
    note: Optional[str] = None,
    tentative_date: Optional[str] = None,
    required_documents: Optional[List[str]] = None,
    *,
    require_note: bool = True,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Apply a staff-initiated status change.

    Re-submitting the current status with no note and no requested documents
    is a no-op. Otherwise exactly one event is appended and the current
    status follows it.

    Raises:
        UnknownStatusError: If new_status is not a catalog status
        ApplicationValidationError: If the note is missing while required, or
            documents are requested without naming any
    """
    status = parse_status(new_status)
    required = clean_required_documents(required_documents)
    note = (note or "").strip()

    if status.value == state.current_status and not note and not required:
        return TransitionResult(state=state, changed=False)

    if not note and require_note:
        raise ApplicationValidationError("A note is required for status updates", field="note")

    needs_documents = status == ApplicationStatus.ADDITIONAL_DOCUMENTS_NEEDED
    if needs_documents and not required:
        raise ApplicationValidationError(
            "At least one required document must be specified",
            field="requiredDocuments",
        )

    event = StatusEvent(
        status=status.value,
        date=format_timestamp(now or datetime.now(timezone.utc)),
        note=note or default_note(status.value),
        tentative_date=tentative_date or None,
        required_documents=tuple(required) if needs_documents else None,
    )
    new_state = ApplicationState(
        current_status=status.value,
        status_history=append_event(state.status_history, event),
        documents=list(state.documents),
    )
    return TransitionResult(state=new_state, changed=True, event=event)


def apply_document_upload(
    state: ApplicationState,
    document: dict,
    *,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Record one uploaded document and promote the status when complete.

    ``document`` must carry ``type`` and ``url``; any other keys are stored
    as metadata. ``changed`` reports whether a promotion event was appended;
    the document itself is always added.
    """
    now = now or datetime.now(timezone.utc)
    if not str(document.get("type") or "").strip():
        raise ApplicationValidationError("Document type is required", field="type")
    if not document.get("url"):
        raise ApplicationValidationError("Document url is required", field="url")

    record = dict(document)
    record["type"] = str(record["type"]).strip()
    record.setdefault("uploadDate", format_timestamp(now))
    documents = list(state.documents) + [record]

    event = plan_upload_promotion(state.current_status, state.status_history, documents, now)
    if event is None:
        return TransitionResult(
            state=ApplicationState(
                current_status=state.current_status,
                status_history=list(state.status_history),
                documents=documents,
            ),
            changed=False,
        )

    return TransitionResult(
        state=ApplicationState(
            current_status=event.status,
            status_history=append_event(state.status_history, event),
            documents=documents,
        ),
        changed=True,
        event=event,
    )
