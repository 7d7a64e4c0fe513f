"""Submission aggregate models.

A submission owns its parties, required documents and, through the approval
models, its ledgers. ``status`` with the two stage flags is the single source
of truth for where the request sits in its lifecycle.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Boolean, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from legalflow.db.base import Base


class Submission(Base):
    """
    A legal document request routed through the approval stages.

    The ``version`` column is the optimistic concurrency token: every
    transition rewrites the row, so two writers racing on the same
    submission cannot both commit.
    """
    __tablename__ = "submissions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_no = Column(String(64), nullable=False, unique=True, index=True)

    # Form identification
    form_id = Column(Integer, nullable=False, index=True)  # 1-10
    form_name = Column(String(255), nullable=False)

    # Request details
    title = Column(String(255), nullable=False)
    company_code = Column(String(50), nullable=True)
    remarks = Column(Text, nullable=True)
    initiator_id = Column(String(255), nullable=False, index=True)
    initiator_name = Column(String(255), nullable=True)

    # Workflow state
    status = Column(String(50), nullable=False, default="DRAFT", index=True)
    legal_gm_stage = Column(String(50), nullable=True)
    lo_stage = Column(String(50), nullable=True)
    assigned_legal_officer = Column(String(255), nullable=True, index=True)

    # Resubmission lineage
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("submissions.id", ondelete="SET NULL"), nullable=True)
    is_resubmission = Column(Boolean, nullable=False, default=False)

    # SLA
    due_date = Column(DateTime, nullable=True)

    extra_data = Column(JSON, nullable=False, default=dict)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    parent = relationship("Submission", remote_side=[id])
    parties = relationship("SubmissionParty", back_populates="submission", cascade="all, delete-orphan")
    documents = relationship(
        "SubmissionDocument", back_populates="submission", cascade="all, delete-orphan",
        order_by="SubmissionDocument.sort_order",
    )
    approvals = relationship("ApprovalRecord", back_populates="submission", cascade="all, delete-orphan")
    special_approvers = relationship(
        "SpecialApproverRecord", back_populates="submission", cascade="all, delete-orphan",
        order_by="SpecialApproverRecord.created_at",
    )
    comments = relationship(
        "SubmissionComment", back_populates="submission", cascade="all, delete-orphan",
        order_by="SubmissionComment.created_at",
    )
    events = relationship(
        "SubmissionEvent", back_populates="submission", cascade="all, delete-orphan",
        order_by="SubmissionEvent.sequence",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Submission {self.submission_no} [{self.status}]>"


class SubmissionParty(Base):
    """A counterparty named on the request."""
    __tablename__ = "submission_parties"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid(as_uuid=True), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    party_type = Column(String(50), nullable=False)  # Company, Partnership, Sole proprietorship, Individual
    name = Column(String(255), nullable=False)

    submission = relationship("Submission", back_populates="parties")

    def __repr__(self) -> str:
        return f"<SubmissionParty {self.party_type}: {self.name}>"


class SubmissionDocument(Base):
    """
    A required document slot.

    Upload completeness and review markings are read-side signals only and
    never gate a transition.
    """
    __tablename__ = "submission_documents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid(as_uuid=True), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    doc_type = Column(String(50), nullable=False)
    status = Column(String(50), nullable=False, default="NONE")
    comment = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)
    uploaded_at = Column(DateTime, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    submission = relationship("Submission", back_populates="documents")

    def __repr__(self) -> str:
        return f"<SubmissionDocument {self.label} [{self.status}]>"
