"""Unit tests for document-upload completion tracking."""

from datetime import datetime, timezone

import pytest

from imiiza.domain.applications.document_tracker import (
    LEGACY_PROMOTION_NOTE,
    REQUEST_SATISFIED_NOTE,
    missing_documents,
    normalize_document_type,
    plan_upload_promotion,
    uploaded_types,
)


NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)

REQUEST = {
    "status": "Additional Documents Needed",
    "date": "2024-01-05T00:00:00.000Z",
    "note": "Please upload",
    "tentativeDate": None,
    "requiredDocuments": ["Passport", "Photo"],
}


def _doc(doc_type):
    return {"type": doc_type, "url": f"memory://{doc_type}"}


class TestMatching:

    def test_normalize_is_trimmed_and_case_insensitive(self):
        assert normalize_document_type("  PassPort ") == normalize_document_type("passport")

    def test_uploaded_types_skips_blank(self):
        assert uploaded_types([_doc("Photo"), {"type": "  "}]) == {"photo"}

    def test_missing_documents_keeps_request_order(self):
        assert missing_documents(["Passport", "Photo", "Visa Form"], [_doc("photo")]) == ["Passport", "Visa Form"]


class TestPlanUploadPromotion:

    def test_no_promotion_while_documents_missing(self):
        event = plan_upload_promotion(
            "Additional Documents Needed", [REQUEST], [_doc("Passport")], NOW
        )
        assert event is None

    def test_promotes_when_request_complete(self):
        event = plan_upload_promotion(
            "Additional Documents Needed", [REQUEST], [_doc("Passport"), _doc("PHOTO ")], NOW
        )
        assert event.status == "Additional Documents Submitted"
        assert event.note == REQUEST_SATISFIED_NOTE
        assert event.date == "2024-01-10T12:00:00.000Z"

    def test_uses_latest_request_only(self):
        newer = dict(REQUEST, date="2024-01-08T00:00:00.000Z", requiredDocuments=["Bank Statement"])
        documents = [_doc("Passport"), _doc("Photo")]
        assert plan_upload_promotion("Additional Documents Needed", [REQUEST, newer], documents, NOW) is None

    def test_legacy_data_without_request_promotes(self):
        event = plan_upload_promotion("Document Submitted", [], [_doc("Passport")], NOW)
        assert event.status == "Additional Documents Submitted"
        assert event.note == LEGACY_PROMOTION_NOTE

    @pytest.mark.parametrize("status", [
        "Additional Documents Submitted",
        "Additional Document Submitted",
        "Visa Approved",
        "Ticket Closed",
    ])
    def test_legacy_data_already_submitted_does_not_promote_again(self, status):
        assert plan_upload_promotion(status, [], [_doc("Passport")], NOW) is None

    def test_complete_request_already_submitted_does_not_promote_again(self):
        documents = [_doc("Passport"), _doc("Photo")]
        assert plan_upload_promotion("Additional Documents Submitted", [REQUEST], documents, NOW) is None
