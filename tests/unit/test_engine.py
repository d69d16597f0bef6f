"""Unit tests for the status transition engine."""

from datetime import datetime, timedelta, timezone

import pytest

from imiiza.domain.applications.engine import (
    ApplicationState,
    apply_document_upload,
    apply_status_update,
)
from imiiza.domain.applications.errors import ApplicationValidationError, UnknownStatusError
from imiiza.domain.applications.history import initial_event
from imiiza.domain.applications.status_catalog import get_status_step, normalize_status


T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def _submitted_state():
    return ApplicationState(
        current_status="Document Submitted",
        status_history=[initial_event(T0).to_dict()],
        documents=[],
    )


def _update(state, status, note=None, required=None, minutes=1, **kwargs):
    kwargs.setdefault("require_note", True)
    return apply_status_update(
        state,
        status,
        note=note,
        required_documents=required,
        now=T0 + timedelta(minutes=minutes),
        **kwargs,
    )


def _upload(state, doc_type, minutes=10):
    return apply_document_upload(
        state,
        {"type": doc_type, "url": f"memory://{doc_type}"},
        now=T0 + timedelta(minutes=minutes),
    )


class TestIdempotentNoOp:
    """Same status, blank note, no documents: nothing changes."""

    @pytest.mark.parametrize("note", [None, "", "   "])
    def test_noop(self, note):
        state = _submitted_state()
        result = _update(state, "Document Submitted", note=note)
        assert result.changed is False
        assert result.event is None
        assert result.state is state

    def test_noop_applies_before_note_requirement(self):
        result = _update(_submitted_state(), "Document Submitted", note="", require_note=True)
        assert result.changed is False

    def test_same_status_with_note_appends(self):
        result = _update(_submitted_state(), "Document Submitted", note="Re-checked form")
        assert result.changed is True
        assert len(result.state.status_history) == 2


class TestAppendOnly:

    def test_history_prefix_preserved(self):
        state = _submitted_state()
        before = [dict(e) for e in state.status_history]

        result = _update(state, "Visa Approved", note="Approved")

        assert result.state.status_history[:len(before)] == before
        assert len(result.state.status_history) == len(before) + 1
        assert state.status_history == before

    def test_current_status_matches_last_event(self):
        state = _submitted_state()
        for i, status in enumerate(["Documents Verified", "Visa Application Submitted", "Visa Approved"]):
            state = _update(state, status, note=f"step {i}", minutes=i + 1).state
            assert state.current_status == state.status_history[-1]["status"]


class TestRequiredDocuments:

    def test_attached_cleaned_in_order(self):
        result = _update(
            _submitted_state(),
            "Additional Documents Needed",
            note="Please upload",
            required=["  Passport ", "", "Photo", "   "],
        )
        assert result.event.required_documents == ("Passport", "Photo")
        assert result.state.status_history[-1]["requiredDocuments"] == ["Passport", "Photo"]

    def test_not_attached_to_other_statuses(self):
        result = _update(_submitted_state(), "Visa Approved", note="ok", required=["Passport"])
        assert "requiredDocuments" not in result.state.status_history[-1]

    def test_documents_needed_without_documents_rejected(self):
        with pytest.raises(ApplicationValidationError) as exc_info:
            _update(_submitted_state(), "Additional Documents Needed", note="Please upload", required=["", " "])
        assert exc_info.value.field == "requiredDocuments"


class TestValidation:

    def test_unknown_status(self):
        with pytest.raises(UnknownStatusError):
            _update(_submitted_state(), "Approved-ish", note="x")

    def test_blank_note_rejected_when_required(self):
        with pytest.raises(ApplicationValidationError) as exc_info:
            _update(_submitted_state(), "Visa Approved", note="  ")
        assert exc_info.value.field == "note"

    def test_default_note_when_not_required(self):
        result = _update(_submitted_state(), "Visa Approved", note=None, require_note=False)
        assert result.event.note == "Status updated to Visa Approved"

    def test_tentative_date_recorded(self):
        result = _update(_submitted_state(), "Visa Application Submitted", note="Filed", tentative_date="2024-02-01")
        assert result.state.status_history[-1]["tentativeDate"] == "2024-02-01"

    def test_legacy_and_extended_statuses_accepted(self):
        state = _submitted_state()
        for status in ["Additional Documents Submitted", "Ticket Closed", "Offer Letter Sent"]:
            state = _update(state, status, note="x").state
        assert state.current_status == "Offer Letter Sent"


class TestUploadPromotion:

    def _needing_documents(self):
        return _update(
            _submitted_state(),
            "Additional Documents Needed",
            note="Please upload",
            required=["Passport", "Photo"],
        ).state

    def test_promotes_on_last_required_upload(self):
        state = self._needing_documents()
        history_len = len(state.status_history)

        first = _upload(state, "Passport", minutes=10)
        assert first.changed is False
        assert first.state.current_status == "Additional Documents Needed"
        assert len(first.state.documents) == 1

        second = _upload(first.state, "Photo", minutes=11)
        assert second.changed is True
        assert second.state.current_status == "Additional Documents Submitted"
        assert len(second.state.status_history) == history_len + 1
        assert second.state.status_history[-1]["note"] == "All required documents have been uploaded"

    def test_extra_upload_after_promotion_appends_nothing(self):
        state = self._needing_documents()
        state = _upload(state, "Passport").state
        state = _upload(state, "Photo").state
        history_len = len(state.status_history)

        result = _upload(state, "Photo", minutes=20)

        assert result.changed is False
        assert len(result.state.status_history) == history_len
        assert len(result.state.documents) == 3

    def test_legacy_upload_promotes_once(self):
        """Applications without a request are promoted by the first upload only."""
        state = _submitted_state()

        first = _upload(state, "Passport", minutes=10)
        second = _upload(first.state, "Photo", minutes=11)

        assert first.changed is True
        assert first.state.status_history[-1]["note"] == "Status updated based on document uploads"
        assert second.changed is False
        promotions = [e for e in second.state.status_history if e["status"] == "Additional Documents Submitted"]
        assert len(promotions) == 1

    def test_upload_date_set(self):
        result = _upload(_submitted_state(), "Passport", minutes=10)
        assert result.state.documents[-1]["uploadDate"] == "2024-01-01T09:10:00.000Z"

    def test_document_requires_type_and_url(self):
        with pytest.raises(ApplicationValidationError):
            apply_document_upload(_submitted_state(), {"type": " ", "url": "x"})
        with pytest.raises(ApplicationValidationError):
            apply_document_upload(_submitted_state(), {"type": "Passport"})

    def test_promoted_status_displays_as_step_three(self):
        state = _upload(_submitted_state(), "Passport").state
        assert normalize_status(state.current_status) == "Additional Document Submitted"
        assert get_status_step(state.current_status) == 3
