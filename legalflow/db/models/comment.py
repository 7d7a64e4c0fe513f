"""Free-text comment thread attached to a submission.

Comments are decoupled from the approval ledgers; they never drive a
transition.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from legalflow.db.base import Base


class SubmissionComment(Base):
    __tablename__ = "submission_comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid(as_uuid=True), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    author_name = Column(String(255), nullable=False)
    author_role = Column(String(50), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    submission = relationship("Submission", back_populates="comments")

    def __repr__(self) -> str:
        return f"<SubmissionComment by {self.author_name} ({self.author_role})>"
