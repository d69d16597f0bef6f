"""Application SQLAlchemy model

One row per visa application. The status history and the uploaded-document
list are embedded JSON arrays on the row, so a single UPDATE writes the whole
workflow state of an application.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, Uuid

from .base import Base, PortableJSONB, isoformat_or_none, utcnow


class Application(Base):
    """Visa application submitted by an applicant.

    Identity, destination and visa type are fixed at submission.
    ``documents`` and ``status_history`` only ever grow; ``current_status``
    is written by the workflow engine alone. The agent fields are set once,
    when an agent accepts the application.

    ``version`` is the optimistic-lock counter: every UPDATE is issued as
    ``... WHERE id = :id AND version = :version`` and a stale writer gets a
    StaleDataError instead of overwriting a concurrent append.
    """
    __tablename__ = "applications"
    __table_args__ = (
        Index("ix_applications_user_id", "user_id"),
        Index("ix_applications_agent_id", "agent_id"),
        Index("ix_applications_current_status", "current_status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    destination = Column(PortableJSONB, nullable=False)  # {"id": ..., "name": ...}
    visa_type = Column(Text, nullable=False)
    documents = Column(PortableJSONB, nullable=False, default=list)
    current_status = Column(Text, nullable=False)
    status_history = Column(PortableJSONB, nullable=False, default=list)
    agent_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    agent_name = Column(Text, nullable=True)
    agent_email = Column(Text, nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    offer_letter = Column(PortableJSONB, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_accepted(self) -> bool:
        return self.agent_id is not None

    def to_dict(self):
        """Convert application to its API representation"""
        return {
            "id": str(self.id),
            "userId": str(self.user_id),
            "name": self.name,
            "email": self.email,
            "destination": self.destination,
            "visaType": self.visa_type,
            "documents": list(self.documents or []),
            "currentStatus": self.current_status,
            "statusHistory": list(self.status_history or []),
            "agentId": str(self.agent_id) if self.agent_id else None,
            "agentName": self.agent_name,
            "agentEmail": self.agent_email,
            "isAccepted": self.is_accepted,
            "acceptedAt": isoformat_or_none(self.accepted_at),
            "offerLetter": self.offer_letter,
            "submissionDate": isoformat_or_none(self.submitted_at),
            "createdAt": isoformat_or_none(self.created_at),
            "updatedAt": isoformat_or_none(self.updated_at),
            "version": self.version,
        }
