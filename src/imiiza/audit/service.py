"""Audit logging service for security and workflow events.

Audit Events:
- LOGIN_SUCCESS, LOGIN_FAILED
- USER_CREATED
- APPLICATION_SUBMITTED, APPLICATION_UPDATED, APPLICATION_DELETED
- APPLICATION_STATUS_CHANGED, APPLICATION_ACCEPTED
- DOCUMENT_UPLOADED, OFFER_LETTER_UPLOADED
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Add an audit log entry to the current unit of work.

    The entry is flushed but not committed; it is stored together with the
    change it describes, or not at all.

    Example:
        log_audit_event(
            db=db,
            action="APPLICATION_STATUS_CHANGED",
            actor_id=current_user.id,
            entity_type="application",
            entity_id=application.id,
            metadata={"from": "Document Submitted", "to": "Visa Approved"},
        )
    """
    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()

    return audit_entry


def client_ip(request: Request) -> Optional[str]:
    """Client IP, preferring the first X-Forwarded-For hop."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


def log_from_request(
    db: Session,
    request: Request,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """log_audit_event with IP and User-Agent taken from the request."""
    return log_audit_event(
        db=db,
        action=action,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata,
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
