"""Initial schema: submissions, ledgers, comments and event log

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Tables added:
- submissions: Request aggregate with status and stage flags
- submission_parties: Counterparties named on a request
- submission_documents: Required document slots
- approval_records: First-level ledger (one row per role)
- special_approver_records: Special approver ledger (keyed by email)
- submission_comments: Free-text comment thread
- submission_events: Append-only workflow history
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create workflow tables."""

    # --- submissions ---
    op.create_table(
        "submissions",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submission_no", sa.String(64), nullable=False),
        sa.Column("form_id", sa.Integer(), nullable=False),
        sa.Column("form_name", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("company_code", sa.String(50), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("initiator_id", sa.String(255), nullable=False),
        sa.Column("initiator_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="DRAFT"),
        sa.Column("legal_gm_stage", sa.String(50), nullable=True),
        sa.Column("lo_stage", sa.String(50), nullable=True),
        sa.Column("assigned_legal_officer", sa.String(255), nullable=True),
        sa.Column("parent_id", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column("is_resubmission", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("extra_data", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_submissions"),
        sa.ForeignKeyConstraint(["parent_id"], ["submissions.id"], name="fk_submissions_parent_id", ondelete="SET NULL"),
    )
    op.create_index("ix_submissions_submission_no", "submissions", ["submission_no"], unique=True)
    op.create_index("ix_submissions_form_id", "submissions", ["form_id"])
    op.create_index("ix_submissions_initiator_id", "submissions", ["initiator_id"])
    op.create_index("ix_submissions_status", "submissions", ["status"])
    op.create_index("ix_submissions_assigned_legal_officer", "submissions", ["assigned_legal_officer"])
    op.create_index("ix_submissions_created_at", "submissions", ["created_at"])

    # --- submission_parties ---
    op.create_table(
        "submission_parties",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submission_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("party_type", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_submission_parties"),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], name="fk_submission_parties_submission_id", ondelete="CASCADE"),
    )
    op.create_index("ix_submission_parties_submission_id", "submission_parties", ["submission_id"])

    # --- submission_documents ---
    op.create_table(
        "submission_documents",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submission_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("doc_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="NONE"),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name="pk_submission_documents"),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], name="fk_submission_documents_submission_id", ondelete="CASCADE"),
    )
    op.create_index("ix_submission_documents_submission_id", "submission_documents", ["submission_id"])

    # --- approval_records ---
    op.create_table(
        "approval_records",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submission_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("approver_name", sa.String(255), nullable=True),
        sa.Column("approver_email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("action_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_approval_records"),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], name="fk_approval_records_submission_id", ondelete="CASCADE"),
        sa.UniqueConstraint("submission_id", "role", name="uq_approval_records_submission_role"),
    )
    op.create_index("ix_approval_records_submission_id", "approval_records", ["submission_id"])

    # --- special_approver_records ---
    op.create_table(
        "special_approver_records",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submission_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("approver_email", sa.String(255), nullable=False),
        sa.Column("approver_name", sa.String(255), nullable=True),
        sa.Column("department", sa.String(255), nullable=True),
        sa.Column("assigned_by", sa.String(50), nullable=False, server_default="LEGAL_OFFICER"),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("action_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_special_approver_records"),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], name="fk_special_approver_records_submission_id", ondelete="CASCADE"),
    )
    op.create_index("ix_special_approver_records_submission_id", "special_approver_records", ["submission_id"])
    op.create_index("ix_special_approver_records_approver_email", "special_approver_records", ["approver_email"])

    # --- submission_comments ---
    op.create_table(
        "submission_comments",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submission_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("author_name", sa.String(255), nullable=False),
        sa.Column("author_role", sa.String(50), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_submission_comments"),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], name="fk_submission_comments_submission_id", ondelete="CASCADE"),
    )
    op.create_index("ix_submission_comments_submission_id", "submission_comments", ["submission_id"])
    op.create_index("ix_submission_comments_created_at", "submission_comments", ["created_at"])

    # --- submission_events ---
    op.create_table(
        "submission_events",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submission_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("role", sa.String(50), nullable=True),
        sa.Column("action", sa.String(50), nullable=True),
        sa.Column("from_status", sa.String(50), nullable=True),
        sa.Column("to_status", sa.String(50), nullable=False),
        sa.Column("from_legal_gm_stage", sa.String(50), nullable=True),
        sa.Column("to_legal_gm_stage", sa.String(50), nullable=True),
        sa.Column("from_lo_stage", sa.String(50), nullable=True),
        sa.Column("to_lo_stage", sa.String(50), nullable=True),
        sa.Column("actor_name", sa.String(255), nullable=True),
        sa.Column("actor_email", sa.String(255), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("extra_data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_submission_events"),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], name="fk_submission_events_submission_id", ondelete="CASCADE"),
        sa.UniqueConstraint("submission_id", "sequence", name="uq_submission_events_sequence"),
    )
    op.create_index("ix_submission_events_submission_id", "submission_events", ["submission_id"])


def downgrade() -> None:
    """Drop workflow tables."""
    op.drop_table("submission_events")
    op.drop_table("submission_comments")
    op.drop_table("special_approver_records")
    op.drop_table("approval_records")
    op.drop_table("submission_documents")
    op.drop_table("submission_parties")
    op.drop_table("submissions")
