"""User SQLAlchemy model"""

import re
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import validates

from .base import Base, isoformat_or_none, utcnow


class User(Base):
    """Platform user: applicants (role ``user``) and staff.

    Staff roles are admin, agent, sales and employee. Agents accumulate a
    ``project_count`` as they accept applications. Passwords are hashed using
    Argon2id.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(Text, nullable=False)
    username = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="user")
    password_hash = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="ACTIVE")
    project_count = Column(Integer, nullable=False, default=0)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'agent', 'sales', 'employee', 'user')",
            name="ck_users_role",
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'DISABLED')",
            name="ck_users_status",
        ),
        UniqueConstraint("email", name="uq_users_email"),
    )

    @validates("email")
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$", value):
            raise ValueError("Invalid email format")
        return value.lower()

    def to_dict(self):
        """Convert user to dictionary representation (excludes password_hash)"""
        return {
            "id": str(self.id),
            "email": self.email,
            "username": self.username,
            "role": self.role,
            "status": self.status,
            "projectCount": self.project_count,
            "lastLoginAt": isoformat_or_none(self.last_login_at),
            "createdAt": isoformat_or_none(self.created_at),
        }
