"""Prometheus metrics for the application workflow."""

from prometheus_client import Counter

status_transitions_total = Counter(
    "imiiza_status_transitions_total",
    "Status history entries appended by the workflow engine",
    ["status", "source"],  # source: staff|upload
)

status_updates_skipped_total = Counter(
    "imiiza_status_updates_skipped_total",
    "Status updates skipped by the no-op guard",
)

document_uploads_total = Counter(
    "imiiza_document_uploads_total",
    "Documents recorded against applications",
    ["result"],  # result: recorded|promoted
)

concurrent_update_conflicts_total = Counter(
    "imiiza_concurrent_update_conflicts_total",
    "Writes rejected because the application changed since it was read",
)
