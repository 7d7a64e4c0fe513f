"""Approval ledger database models.

Stores the first-level decision records (one per role) and the special
approver records (created on demand, keyed by email).
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from legalflow.db.base import Base


class ApprovalRecord(Base):
    """
    First-level decision record.

    Seeded PENDING for each first-level role when the submission enters
    PENDING_APPROVAL and decided exactly once per cycle by its own role.
    """
    __tablename__ = "approval_records"
    __table_args__ = (
        UniqueConstraint("submission_id", "role", name="uq_approval_records_submission_role"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid(as_uuid=True), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)

    role = Column(String(50), nullable=False)  # BUM, FBP, CLUSTER_HEAD
    approver_name = Column(String(255), nullable=True)
    approver_email = Column(String(255), nullable=True)

    status = Column(String(50), nullable=False, default="PENDING")
    comment = Column(Text, nullable=True)
    action_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    submission = relationship("Submission", back_populates="approvals")

    def __repr__(self) -> str:
        return f"<ApprovalRecord {self.role} [{self.status}]>"


class SpecialApproverRecord(Base):
    """
    Special approver decision record.

    Created by the Legal Officer when delegating; the fan-out gate is
    unanimous over every record attached to the submission.
    """
    __tablename__ = "special_approver_records"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid(as_uuid=True), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)

    approver_email = Column(String(255), nullable=False, index=True)
    approver_name = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True, default="Special Approver")
    assigned_by = Column(String(50), nullable=False, default="LEGAL_OFFICER")

    status = Column(String(50), nullable=False, default="PENDING")
    comment = Column(Text, nullable=True)
    action_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    submission = relationship("Submission", back_populates="special_approvers")

    def __repr__(self) -> str:
        return f"<SpecialApproverRecord {self.approver_email} [{self.status}]>"
