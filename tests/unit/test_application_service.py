"""Unit tests for ApplicationService against a SQLite database."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from imiiza.applications.service import ApplicationService
from imiiza.config import Settings
from imiiza.domain.applications.errors import (
    ApplicationAlreadyAssignedError,
    ApplicationNotFoundError,
    ApplicationValidationError,
    ConcurrentUpdateError,
    UnknownStatusError,
)
from imiiza.models.application import Application
from imiiza.models.audit_log import AuditLog


class TestCreateApplication:

    def test_initial_state(self, submitted_application):
        app = submitted_application
        assert app.current_status == "Document Submitted"
        assert len(app.status_history) == 1
        assert app.status_history[0]["note"] == "Application submitted successfully"
        assert app.status_history[0]["date"] == "2024-01-01T09:00:00.000Z"
        assert app.destination == {"id": "ca", "name": "Canada"}
        assert app.documents[0]["uploadDate"] == "2024-01-01T09:00:00.000Z"
        assert app.version == 1

    def test_audit_entry_written(self, db_session, submitted_application):
        entry = db_session.query(AuditLog).filter(AuditLog.entity_id == submitted_application.id).one()
        assert entry.action == "APPLICATION_SUBMITTED"

    def test_requires_documents(self, service, applicant):
        with pytest.raises(ApplicationValidationError):
            service.create_application(
                user_id=applicant.id,
                name="A",
                email="a@example.com",
                destination_id="ca",
                destination_name="Canada",
                visa_type="Student Visa",
                documents=[],
            )

    def test_requires_name(self, service, applicant):
        with pytest.raises(ApplicationValidationError):
            service.create_application(
                user_id=applicant.id,
                name="  ",
                email="a@example.com",
                destination_id="ca",
                destination_name="Canada",
                visa_type="Student Visa",
                documents=[{"type": "Passport", "url": "memory://p"}],
            )


class TestUpdateStatus:

    def test_appends_one_event_and_bumps_version(self, service, submitted_application, admin_user):
        result = service.update_application_status(
            submitted_application.id, "Documents Verified", note="Looks good", actor=admin_user
        )
        assert result.changed is True
        app = service.get_application(submitted_application.id)
        assert app.current_status == "Documents Verified"
        assert len(app.status_history) == 2
        assert app.version == 2

    def test_noop_writes_nothing(self, db_session, service, submitted_application):
        result = service.update_application_status(submitted_application.id, "Document Submitted")
        assert result.changed is False
        assert service.get_application(submitted_application.id).version == 1
        actions = [a.action for a in db_session.query(AuditLog).all()]
        assert "APPLICATION_STATUS_CHANGED" not in actions

    def test_not_found(self, service):
        with pytest.raises(ApplicationNotFoundError):
            service.update_application_status(uuid4(), "Visa Approved", note="x")

    def test_invalid_id_reads_as_not_found(self, service):
        with pytest.raises(ApplicationNotFoundError):
            service.get_application("not-a-uuid")

    def test_unknown_status_leaves_application_untouched(self, service, submitted_application):
        with pytest.raises(UnknownStatusError):
            service.update_application_status(submitted_application.id, "Approved!!", note="x")
        app = service.get_application(submitted_application.id)
        assert app.current_status == "Document Submitted"
        assert len(app.status_history) == 1

    def test_note_optional_when_configured(self, db_session, submitted_application):
        service = ApplicationService(db_session, Settings(REQUIRE_STATUS_NOTE=False))
        result = service.update_application_status(submitted_application.id, "Visa Approved")
        assert result.event.note == "Status updated to Visa Approved"

    def test_offer_letter_requires_offer_status(self, service, submitted_application):
        with pytest.raises(ApplicationValidationError):
            service.update_application_status(
                submitted_application.id,
                "Visa Approved",
                note="x",
                offer_letter={"url": "memory://o", "storagePath": "offer_letters/o.pdf"},
            )


class TestOptimisticLocking:
    """A writer holding a stale version must not overwrite a concurrent append."""

    def test_stale_write_raises_conflict(self, db_session, service, submitted_application):
        app = service.get_application(submitted_application.id)
        assert app.version == 1

        # Another writer commits in between our read and our write
        db_session.execute(
            text("UPDATE applications SET version = version + 1 WHERE id = :id"),
            {"id": app.id.hex},
        )

        with pytest.raises(ConcurrentUpdateError):
            service.update_application_status(app.id, "Visa Approved", note="Approved")

        db_session.expire_all()
        fresh = db_session.get(Application, submitted_application.id)
        assert fresh.current_status == "Document Submitted"
        assert len(fresh.status_history) == 1


class TestPersistenceErrors:
    """A failed write propagates unchanged and leaves the stored row as it was."""

    def test_commit_failure_rolls_back(self, monkeypatch, db_session, service, submitted_application, admin_user):
        def failing_commit():
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(SQLAlchemyError, match="connection lost"):
            service.update_application_status(
                submitted_application.id, "Documents Verified", note="Looks good", actor=admin_user
            )

        db_session.expire_all()
        fresh = db_session.get(Application, submitted_application.id)
        assert fresh.current_status == "Document Submitted"
        assert len(fresh.status_history) == 1
        assert fresh.version == 1
        actions = [a.action for a in db_session.query(AuditLog).all()]
        assert "APPLICATION_STATUS_CHANGED" not in actions

    def test_flush_failure_propagates(self, monkeypatch, db_session, service, submitted_application):
        def failing_flush(*args, **kwargs):
            raise SQLAlchemyError("constraint violated")

        monkeypatch.setattr(db_session, "flush", failing_flush)

        with pytest.raises(SQLAlchemyError, match="constraint violated"):
            service.update_application_status(submitted_application.id, "Visa Approved", note="Approved")

        monkeypatch.undo()
        db_session.expire_all()
        assert db_session.get(Application, submitted_application.id).version == 1


class TestDocumentUploads:

    def _request_documents(self, service, application_id):
        service.update_application_status(
            application_id,
            "Additional Documents Needed",
            note="Please upload",
            required_documents=["Passport", "Photo"],
        )

    def test_ensure_accepting_documents(self, service, submitted_application):
        with pytest.raises(ApplicationValidationError):
            service.ensure_accepting_documents(submitted_application)

        self._request_documents(service, submitted_application.id)
        service.ensure_accepting_documents(service.get_application(submitted_application.id))

    def test_single_uploads_promote_on_completion(self, service, submitted_application):
        self._request_documents(service, submitted_application.id)

        first = service.record_document_upload(submitted_application.id, "Passport", "memory://p")
        assert first.promotions == []
        assert first.application.current_status == "Additional Documents Needed"

        second = service.record_document_upload(submitted_application.id, "photo", "memory://ph")
        assert len(second.promotions) == 1
        app = second.application
        assert app.current_status == "Additional Documents Submitted"
        assert len(app.status_history) == 3
        assert len(app.documents) == 3

    def test_batch_promotes_once(self, service, submitted_application):
        self._request_documents(service, submitted_application.id)

        result = service.record_document_uploads(
            submitted_application.id,
            [
                {"type": "Passport", "url": "memory://p"},
                {"type": "Photo", "url": "memory://ph"},
                {"type": "Photo", "url": "memory://ph2"},
            ],
        )

        assert len(result.promotions) == 1
        statuses = [e["status"] for e in result.application.status_history]
        assert statuses.count("Additional Documents Submitted") == 1


class TestAcceptApplication:

    def test_first_agent_wins(self, service, submitted_application, agent_user, second_agent):
        app = service.accept_application(
            submitted_application.id, agent_user, now=datetime(2024, 1, 2, tzinfo=timezone.utc)
        )
        assert app.agent_id == agent_user.id
        assert app.agent_name == "Agent One"
        assert app.agent_email == "agent@example.com"
        assert app.is_accepted
        assert agent_user.project_count == 1
        assert len(app.status_history) == 1

        with pytest.raises(ApplicationAlreadyAssignedError):
            service.accept_application(submitted_application.id, second_agent)
        assert second_agent.project_count == 0

    def test_non_agent_rejected(self, service, submitted_application, sales_user):
        with pytest.raises(ApplicationValidationError):
            service.accept_application(submitted_application.id, sales_user)


class TestListAndDelete:

    def test_owner_scoping(self, service, submitted_application, applicant, other_applicant):
        assert len(service.list_applications(user_id=applicant.id)) == 1
        assert service.list_applications(user_id=other_applicant.id) == []
        assert len(service.list_applications()) == 1
        with pytest.raises(ApplicationNotFoundError):
            service.get_application(submitted_application.id, user_id=other_applicant.id)

    def test_status_filter(self, service, submitted_application):
        assert len(service.list_applications(status="Document Submitted")) == 1
        assert service.list_applications(status="Visa Approved") == []
        with pytest.raises(UnknownStatusError):
            service.list_applications(status="Bogus")

    def test_delete(self, service, submitted_application, admin_user):
        service.delete_application(submitted_application.id, actor=admin_user)
        with pytest.raises(ApplicationNotFoundError):
            service.get_application(submitted_application.id)
