"""Append-only workflow event log.

Each accepted decision (and each create/submit/resubmit) appends one row.
Rows are never updated or deleted. ``sequence`` is allocated while the
submission row is locked, so it orders history even when clocks of
concurrent writers disagree.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from legalflow.db.base import Base


class SubmissionEvent(Base):
    __tablename__ = "submission_events"
    __table_args__ = (
        UniqueConstraint("submission_id", "sequence", name="uq_submission_events_sequence"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid(as_uuid=True), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    # Transition details
    event_type = Column(String(50), nullable=False)  # decision, created, submitted, resubmitted
    role = Column(String(50), nullable=True)
    action = Column(String(50), nullable=True)
    from_status = Column(String(50), nullable=True)
    to_status = Column(String(50), nullable=False)
    from_legal_gm_stage = Column(String(50), nullable=True)
    to_legal_gm_stage = Column(String(50), nullable=True)
    from_lo_stage = Column(String(50), nullable=True)
    to_lo_stage = Column(String(50), nullable=True)

    # Actor
    actor_name = Column(String(255), nullable=True)
    actor_email = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)

    extra_data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)

    submission = relationship("Submission", back_populates="events")

    def __repr__(self) -> str:
        return f"<SubmissionEvent #{self.sequence} {self.from_status} -> {self.to_status}>"
