"""Status catalog for visa applications.

Main flow (display steps):
    Document Submitted → Additional Documents Needed →
    Additional Document Submitted → Visa Approved

The catalog also knows the legacy spelling ``Additional Documents Submitted``
(what the upload tracker writes) and the extended statuses used by staff
outside the main flow. Step indexes order the display only; they do not
restrict which transitions are allowed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .errors import UnknownStatusError


class ApplicationStatus(str, Enum):
    """Every status value the workflow accepts.

    Values are stored verbatim in ``applications.current_status`` and in
    each status history entry.
    """
    DOCUMENT_SUBMITTED = "Document Submitted"
    ADDITIONAL_DOCUMENTS_NEEDED = "Additional Documents Needed"
    ADDITIONAL_DOCUMENT_SUBMITTED = "Additional Document Submitted"
    ADDITIONAL_DOCUMENTS_SUBMITTED = "Additional Documents Submitted"  # legacy spelling
    DOCUMENTS_VERIFIED = "Documents Verified"
    VISA_APPLICATION_SUBMITTED = "Visa Application Submitted"
    VISA_VERIFICATION_IN_PROGRESS = "Visa Verification In Progress"
    VISA_APPROVED = "Visa Approved"
    VISA_REJECTED = "Visa Rejected"
    TICKET_CLOSED = "Ticket Closed"
    OFFER_LETTER_SENT = "Offer Letter Sent"


@dataclass(frozen=True)
class StatusStep:
    """Display metadata for one main-flow status."""
    status: ApplicationStatus
    message: str
    color: str
    step: int
    days_to_add: int


MAIN_FLOW: List[StatusStep] = [
    StatusStep(
        status=ApplicationStatus.DOCUMENT_SUBMITTED,
        message="You have submitted the form.",
        color="bg-blue-100 text-blue-800",
        step=1,
        days_to_add=0,
    ),
    StatusStep(
        status=ApplicationStatus.ADDITIONAL_DOCUMENTS_NEEDED,
        message="Additional documents needed.",
        color="bg-yellow-100 text-yellow-800",
        step=2,
        days_to_add=4,
    ),
    StatusStep(
        status=ApplicationStatus.ADDITIONAL_DOCUMENT_SUBMITTED,
        message="Additional documents have been submitted.",
        color="bg-green-100 text-green-800",
        step=3,
        days_to_add=1,
    ),
    StatusStep(
        status=ApplicationStatus.VISA_APPROVED,
        message="Your visa has been approved!",
        color="bg-green-100 text-green-800",
        step=4,
        days_to_add=0,
    ),
]

_STEPS_BY_STATUS: Dict[str, StatusStep] = {s.status.value: s for s in MAIN_FLOW}

NEUTRAL_COLOR = "bg-gray-100 text-gray-800"
REJECTED_COLOR = "bg-red-100 text-red-800"

LEGACY_ALIASES: Dict[str, str] = {
    ApplicationStatus.ADDITIONAL_DOCUMENTS_SUBMITTED.value:
        ApplicationStatus.ADDITIONAL_DOCUMENT_SUBMITTED.value,
}

# Intermediate processing statuses shown with the step-3 color
INTERMEDIATE_STATUSES = frozenset({
    ApplicationStatus.DOCUMENTS_VERIFIED.value,
    ApplicationStatus.VISA_APPLICATION_SUBMITTED.value,
    ApplicationStatus.VISA_VERIFICATION_IN_PROGRESS.value,
})

CLOSED_STATUS_MESSAGES: Dict[str, str] = {
    ApplicationStatus.VISA_REJECTED.value: "Your visa application has been rejected.",
    ApplicationStatus.TICKET_CLOSED.value: "This application has been closed.",
}

# Statuses at or past the point where requested documents count as submitted.
# Uploads never auto-promote an application sitting in one of these.
SUBMITTED_STAGE_STATUSES = frozenset({
    ApplicationStatus.ADDITIONAL_DOCUMENT_SUBMITTED.value,
    ApplicationStatus.ADDITIONAL_DOCUMENTS_SUBMITTED.value,
    ApplicationStatus.VISA_APPROVED.value,
    ApplicationStatus.VISA_REJECTED.value,
    ApplicationStatus.TICKET_CLOSED.value,
}) | INTERMEDIATE_STATUSES


def normalize_status(status: str) -> str:
    """Map legacy aliases onto their display-canonical status.

    Unknown values pass through unchanged.

    Example:
        >>> normalize_status("Additional Documents Submitted")
        'Additional Document Submitted'
        >>> normalize_status("Visa Approved")
        'Visa Approved'
    """
    return LEGACY_ALIASES.get(status, status)


def parse_status(value) -> ApplicationStatus:
    """Convert caller input into an ApplicationStatus.

    Accepts enum members and their string values (surrounding whitespace is
    ignored).

    Raises:
        UnknownStatusError: If the value is not a catalog status
    """
    if isinstance(value, ApplicationStatus):
        return value
    if not isinstance(value, str):
        raise UnknownStatusError(value)
    try:
        return ApplicationStatus(value.strip())
    except ValueError:
        raise UnknownStatusError(value) from None


def has_reached_submitted_stage(status: Optional[str]) -> bool:
    """True for "Additional Documents Submitted" and every status past it.

    Wider than a check for the submitted status alone: a legacy upload on an
    application that is already Visa Approved does not promote it either.
    """
    return status in SUBMITTED_STAGE_STATUSES


def get_status_step(status: str) -> Optional[int]:
    """Main-flow step index (1-4) for a status, or None outside the main flow."""
    step = _STEPS_BY_STATUS.get(normalize_status(status))
    return step.step if step else None


def get_status_color(status: str) -> str:
    """Color token for a status badge.

    Legacy and intermediate statuses share the step-3 color; rejected gets
    red; everything else outside the main flow renders neutral.
    """
    if status == ApplicationStatus.VISA_REJECTED.value:
        return REJECTED_COLOR
    mapped = normalize_status(status)
    if mapped in INTERMEDIATE_STATUSES:
        mapped = ApplicationStatus.ADDITIONAL_DOCUMENT_SUBMITTED.value
    step = _STEPS_BY_STATUS.get(mapped)
    return step.color if step else NEUTRAL_COLOR


def get_status_message(status: str) -> str:
    """Applicant-facing message for a status.

    Intermediate and unknown statuses display their own name.
    """
    if status in CLOSED_STATUS_MESSAGES:
        return CLOSED_STATUS_MESSAGES[status]
    step = _STEPS_BY_STATUS.get(normalize_status(status))
    return step.message if step else status


def status_catalog() -> List[dict]:
    """Every known status with its display metadata, main flow first."""
    entries = []
    for status in ApplicationStatus:
        step = _STEPS_BY_STATUS.get(normalize_status(status.value))
        entries.append({
            "status": status.value,
            "canonical": normalize_status(status.value),
            "step": get_status_step(status.value),
            "color": get_status_color(status.value),
            "message": get_status_message(status.value),
            "mainFlow": status.value in _STEPS_BY_STATUS,
            "daysToAdd": step.days_to_add if step else None,
        })
    entries.sort(key=lambda e: (not e["mainFlow"], e["step"] or 0))
    return entries
