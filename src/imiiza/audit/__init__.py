from .service import log_audit_event, log_from_request

__all__ = ["log_audit_event", "log_from_request"]
