"""Append-only status history for applications.

Each application carries its full status history as a list of events. The
list is persisted as JSON in camelCase; this module converts between that
shape and StatusEvent and never mutates a stored list in place.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from .status_catalog import ApplicationStatus


INITIAL_NOTE = "Application submitted successfully"


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored event date, returning None when it is unusable."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class StatusEvent:
    """One entry in an application's status history."""
    status: str
    date: str
    note: str
    tentative_date: Optional[str] = None
    required_documents: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> dict:
        data = {
            "status": self.status,
            "date": self.date,
            "note": self.note,
            "tentativeDate": self.tentative_date,
        }
        if self.required_documents is not None:
            data["requiredDocuments"] = list(self.required_documents)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "StatusEvent":
        required = data.get("requiredDocuments")
        return cls(
            status=data.get("status", ""),
            date=data.get("date", ""),
            note=data.get("note") or "",
            tentative_date=data.get("tentativeDate"),
            required_documents=tuple(required) if required is not None else None,
        )


def initial_event(now: datetime) -> StatusEvent:
    """History entry written when an application is submitted."""
    return StatusEvent(
        status=ApplicationStatus.DOCUMENT_SUBMITTED.value,
        date=format_timestamp(now),
        note=INITIAL_NOTE,
    )


def append_event(history: Optional[List[dict]], event: StatusEvent) -> List[dict]:
    """Return a new history list with ``event`` appended.

    The input list is left untouched. Callers assign the result back to the
    model attribute so the ORM sees a changed value.
    """
    return list(history or []) + [event.to_dict()]


def clean_required_documents(items: Optional[Iterable[str]]) -> List[str]:
    """Trim each requested document type and drop blanks, keeping input order.

    Example:
        >>> clean_required_documents(["  Passport ", "", "Photo"])
        ['Passport', 'Photo']
    """
    if not items:
        return []
    cleaned = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            cleaned.append(text)
    return cleaned


def latest_document_request(history: Optional[List[dict]]) -> Optional[StatusEvent]:
    """Most recent 'Additional Documents Needed' event that names documents.

    The candidate with the latest date wins, equal dates going to the later
    entry. A request whose date cannot be parsed only wins when it comes
    after that candidate in the list.
    """
    dated = None
    dated_index = -1
    latest_date = None
    undated = None
    undated_index = -1
    for index, raw in enumerate(history or []):
        if raw.get("status") != ApplicationStatus.ADDITIONAL_DOCUMENTS_NEEDED.value:
            continue
        if not raw.get("requiredDocuments"):
            continue
        parsed = parse_timestamp(raw.get("date"))
        if parsed is None:
            undated, undated_index = raw, index
        elif latest_date is None or parsed >= latest_date:
            dated, dated_index, latest_date = raw, index, parsed

    best = undated if undated_index > dated_index else dated
    return StatusEvent.from_dict(best) if best is not None else None
