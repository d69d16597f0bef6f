"""SQLAlchemy Models for imiiza"""

from .base import Base, PortableJSONB
from .user import User
from .audit_log import AuditLog
from .application import Application

__all__ = [
    "Base",
    "PortableJSONB",
    "User",
    "AuditLog",
    "Application",
]
