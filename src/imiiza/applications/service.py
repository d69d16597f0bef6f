"""Application service - load, run the workflow engine, persist.

Every write goes through ``_unit_of_work``: the engine computes the new
state, the row is updated with ``WHERE version = :read_version`` and a stale
writer surfaces as ConcurrentUpdateError. Nothing is retried here.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..audit.service import log_audit_event
from ..auth.roles import UserRole
from ..config import Settings, get_settings
from ..domain.applications.engine import (
    ApplicationState,
    apply_document_upload,
    apply_status_update,
)
from ..domain.applications.errors import (
    ApplicationAlreadyAssignedError,
    ApplicationNotFoundError,
    ApplicationValidationError,
    ConcurrentUpdateError,
)
from ..domain.applications.history import StatusEvent, format_timestamp, initial_event
from ..domain.applications.status_catalog import ApplicationStatus, parse_status
from ..models.application import Application
from ..models.user import User
from ..observability.metrics import (
    concurrent_update_conflicts_total,
    document_uploads_total,
    status_transitions_total,
    status_updates_skipped_total,
)


logger = logging.getLogger(__name__)


@dataclass
class StatusUpdateResult:
    """Outcome of update_application_status.

    Attributes:
        application: The application after the call
        changed: False when the no-op guard skipped the update
        event: History entry appended, if any
    """
    application: Application
    changed: bool
    event: Optional[StatusEvent] = None


@dataclass
class UploadResult:
    """Outcome of recording a batch of uploaded documents."""
    application: Application
    documents: List[dict] = field(default_factory=list)
    promotions: List[StatusEvent] = field(default_factory=list)


def _coerce_id(application_id) -> UUID:
    if isinstance(application_id, UUID):
        return application_id
    try:
        return UUID(str(application_id))
    except ValueError:
        raise ApplicationNotFoundError(application_id) from None


def _state_of(application: Application) -> ApplicationState:
    return ApplicationState(
        current_status=application.current_status,
        status_history=list(application.status_history or []),
        documents=list(application.documents or []),
    )


class ApplicationService:
    """Service for visa application operations."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    @contextmanager
    def _unit_of_work(self, application_id):
        """Commit on success; map optimistic-lock failures to ConcurrentUpdateError."""
        try:
            yield
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            concurrent_update_conflicts_total.inc()
            logger.warning(
                "Concurrent update rejected",
                extra={"application_id": str(application_id)},
            )
            raise ConcurrentUpdateError(application_id) from e
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Database error while writing application",
                extra={"application_id": str(application_id)},
            )
            raise

    def _load(self, application_id) -> Application:
        application = self.db.get(Application, _coerce_id(application_id))
        if application is None:
            raise ApplicationNotFoundError(application_id)
        return application

    # Reads

    def get_application(self, application_id, user_id: Optional[UUID] = None) -> Application:
        """Get an application by ID.

        When ``user_id`` is given, applications owned by someone else read as
        not found.

        Raises:
            ApplicationNotFoundError: If absent or not owned by user_id
        """
        application = self._load(application_id)
        if user_id is not None and application.user_id != user_id:
            raise ApplicationNotFoundError(application_id)
        return application

    def list_applications(
        self,
        user_id: Optional[UUID] = None,
        status: Optional[str] = None,
        agent_id: Optional[UUID] = None,
    ) -> List[Application]:
        """List applications, newest submission first.

        Args:
            user_id: Only this applicant's applications (None for all)
            status: Filter by current status
            agent_id: Only applications accepted by this agent
        """
        query = self.db.query(Application)

        if user_id is not None:
            query = query.filter(Application.user_id == user_id)
        if status:
            query = query.filter(Application.current_status == parse_status(status).value)
        if agent_id is not None:
            query = query.filter(Application.agent_id == agent_id)

        return query.order_by(desc(Application.submitted_at)).all()

    # Writes

    def create_application(
        self,
        user_id: UUID,
        name: str,
        email: str,
        destination_id: str,
        destination_name: str,
        visa_type: str,
        documents: Iterable[Dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> Application:
        """Submit a new application.

        The application starts in 'Document Submitted' with one history
        entry. Each submitted document must carry a type and a url.

        Raises:
            ApplicationValidationError: If a required field is blank or no
                documents are supplied
        """
        now = now or datetime.now(timezone.utc)

        if not (name or "").strip() or not (email or "").strip():
            raise ApplicationValidationError("Name and email are required")
        if not (destination_id or "").strip() or not (destination_name or "").strip() or not (visa_type or "").strip():
            raise ApplicationValidationError("Destination and visa type information are required")

        stored_documents = []
        for document in documents or []:
            doc_type = str(document.get("type") or "").strip()
            if not doc_type or not document.get("url"):
                raise ApplicationValidationError("Each document needs a type and a url", field="documents")
            record = dict(document)
            record["type"] = doc_type
            record.setdefault("uploadDate", format_timestamp(now))
            stored_documents.append(record)

        if not stored_documents:
            raise ApplicationValidationError("At least one document is required", field="documents")

        application = Application(
            user_id=user_id,
            name=name.strip(),
            email=email.strip(),
            destination={"id": destination_id.strip(), "name": destination_name.strip()},
            visa_type=visa_type.strip(),
            documents=stored_documents,
            current_status=ApplicationStatus.DOCUMENT_SUBMITTED.value,
            status_history=[initial_event(now).to_dict()],
            submitted_at=now,
        )

        with self._unit_of_work("new"):
            self.db.add(application)
            self.db.flush()
            log_audit_event(
                db=self.db,
                action="APPLICATION_SUBMITTED",
                actor_id=user_id,
                entity_type="application",
                entity_id=application.id,
                metadata={"visaType": application.visa_type, "destination": application.destination},
            )

        logger.info(
            "Application submitted",
            extra={"application_id": str(application.id), "user_id": str(user_id)},
        )
        return application

    def update_application_status(
        self,
        application_id,
        new_status,
        note: Optional[str] = None,
        tentative_date: Optional[str] = None,
        required_documents: Optional[List[str]] = None,
        actor: Optional[User] = None,
        offer_letter: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> StatusUpdateResult:
        """Apply a staff status update.

        A repeat of the current status with no note and no requested
        documents changes nothing and writes nothing. Otherwise exactly one
        history entry is appended and the row is written once.

        Args:
            offer_letter: Stored offer-letter record to attach; only allowed
                together with 'Offer Letter Sent'

        Raises:
            ApplicationNotFoundError: If the application does not exist
            UnknownStatusError: If new_status is not a catalog status
            ApplicationValidationError: If the engine rejects the update
            ConcurrentUpdateError: If the application changed since it was read
        """
        application = self._load(application_id)
        if offer_letter is not None:
            self.ensure_offer_letter_allowed(new_status)

        previous_status = application.current_status
        result = apply_status_update(
            _state_of(application),
            new_status,
            note=note,
            tentative_date=tentative_date,
            required_documents=required_documents,
            require_note=self.settings.REQUIRE_STATUS_NOTE,
            now=now,
        )

        if not result.changed and offer_letter is None:
            status_updates_skipped_total.inc()
            logger.info(
                "Status update skipped: no change",
                extra={"application_id": str(application.id), "status": previous_status},
            )
            return StatusUpdateResult(application=application, changed=False)

        with self._unit_of_work(application.id):
            if result.changed:
                application.current_status = result.state.current_status
                application.status_history = result.state.status_history
            if offer_letter is not None:
                application.offer_letter = dict(offer_letter)
            application.updated_at = datetime.now(timezone.utc)
            self.db.flush()

            log_audit_event(
                db=self.db,
                action="APPLICATION_STATUS_CHANGED" if result.changed else "OFFER_LETTER_UPLOADED",
                actor_id=actor.id if actor else None,
                entity_type="application",
                entity_id=application.id,
                metadata={
                    "from": previous_status,
                    "to": application.current_status,
                    "offerLetter": offer_letter is not None,
                },
            )

        if result.changed:
            status_transitions_total.labels(status=result.event.status, source="staff").inc()
            logger.info(
                "Application status updated",
                extra={
                    "application_id": str(application.id),
                    "previous_status": previous_status,
                    "status": result.event.status,
                    "user_id": str(actor.id) if actor else None,
                },
            )

        return StatusUpdateResult(application=application, changed=result.changed, event=result.event)

    def ensure_offer_letter_allowed(self, new_status) -> None:
        """Offer letters are only attached with an 'Offer Letter Sent' update."""
        if parse_status(new_status) != ApplicationStatus.OFFER_LETTER_SENT:
            raise ApplicationValidationError(
                "Offer letters can only be attached when the status is 'Offer Letter Sent'",
                field="offerLetter",
            )

    @staticmethod
    def ensure_accepting_documents(application: Application) -> None:
        """Uploads are only accepted while documents are being requested.

        Raises:
            ApplicationValidationError: If the application is not in
                'Additional Documents Needed'
        """
        if application.current_status != ApplicationStatus.ADDITIONAL_DOCUMENTS_NEEDED.value:
            raise ApplicationValidationError("This application does not require additional documents")

    def record_document_uploads(
        self,
        application_id,
        documents: List[Dict[str, Any]],
        actor: Optional[User] = None,
        now: Optional[datetime] = None,
    ) -> UploadResult:
        """Add uploaded documents in order, promoting the status when complete.

        Each document is run through the engine in turn, so a promotion
        happens at the upload that completes the latest document request and
        later uploads in the batch do not append again. The whole batch is
        one write.

        Raises:
            ApplicationNotFoundError: If the application does not exist
            ApplicationValidationError: If a document lacks a type or url
            ConcurrentUpdateError: If the application changed since it was read
        """
        application = self._load(application_id)
        now = now or datetime.now(timezone.utc)

        state = _state_of(application)
        recorded = []
        promotions = []
        for document in documents:
            result = apply_document_upload(state, document, now=now)
            state = result.state
            recorded.append(state.documents[-1])
            if result.changed:
                promotions.append(result.event)

        with self._unit_of_work(application.id):
            application.documents = state.documents
            if promotions:
                application.current_status = state.current_status
                application.status_history = state.status_history
            application.updated_at = datetime.now(timezone.utc)
            self.db.flush()

            log_audit_event(
                db=self.db,
                action="DOCUMENT_UPLOADED",
                actor_id=actor.id if actor else None,
                entity_type="application",
                entity_id=application.id,
                metadata={
                    "types": [doc["type"] for doc in recorded],
                    "promoted": bool(promotions),
                },
            )

        document_uploads_total.labels(result="recorded").inc(len(recorded))
        for event in promotions:
            document_uploads_total.labels(result="promoted").inc()
            status_transitions_total.labels(status=event.status, source="upload").inc()
            logger.info(
                "Application promoted after document upload",
                extra={"application_id": str(application.id), "status": event.status},
            )

        return UploadResult(application=application, documents=recorded, promotions=promotions)

    def record_document_upload(
        self,
        application_id,
        document_type: str,
        url: str,
        metadata: Optional[Dict[str, Any]] = None,
        actor: Optional[User] = None,
        now: Optional[datetime] = None,
    ) -> UploadResult:
        """Record a single uploaded document. See record_document_uploads."""
        document = dict(metadata or {})
        document["type"] = document_type
        document["url"] = url
        return self.record_document_uploads(application_id, [document], actor=actor, now=now)

    def accept_application(self, application_id, agent: User, now: Optional[datetime] = None) -> Application:
        """Assign an application to the accepting agent.

        The first agent to accept wins. No status history entry is written.

        Raises:
            ApplicationNotFoundError: If the application does not exist
            ApplicationValidationError: If ``agent`` is not an agent
            ApplicationAlreadyAssignedError: If another agent already accepted
            ConcurrentUpdateError: If a concurrent accept won the race
        """
        if agent.role != UserRole.AGENT.value:
            raise ApplicationValidationError("Only agents can accept applications")

        application = self._load(application_id)
        if application.agent_id is not None:
            raise ApplicationAlreadyAssignedError("Application is already assigned to an agent")

        with self._unit_of_work(application.id):
            application.agent_id = agent.id
            application.agent_name = agent.username
            application.agent_email = agent.email
            application.accepted_at = now or datetime.now(timezone.utc)
            agent.project_count = (agent.project_count or 0) + 1
            self.db.flush()

            log_audit_event(
                db=self.db,
                action="APPLICATION_ACCEPTED",
                actor_id=agent.id,
                entity_type="application",
                entity_id=application.id,
                metadata={"projectCount": agent.project_count},
            )

        logger.info(
            "Application accepted by agent",
            extra={"application_id": str(application.id), "user_id": str(agent.id)},
        )
        return application

    def delete_application(self, application_id, actor: Optional[User] = None) -> None:
        """Delete an application.

        Raises:
            ApplicationNotFoundError: If the application does not exist
        """
        application = self._load(application_id)

        with self._unit_of_work(application.id):
            log_audit_event(
                db=self.db,
                action="APPLICATION_DELETED",
                actor_id=actor.id if actor else None,
                entity_type="application",
                entity_id=application.id,
                metadata={"status": application.current_status},
            )
            self.db.delete(application)

        logger.info("Application deleted", extra={"application_id": str(application_id)})
