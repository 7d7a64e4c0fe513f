"""Submission workflow schemas."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ApproverInfo(BaseModel):
    name: str = ""
    email: str = ""


class PartyIn(BaseModel):
    type: str = Field(..., description="Company, Partnership, Sole proprietorship or Individual")
    name: str


class SubmissionCreate(BaseModel):
    """Request body for creating a submission."""
    form_id: int = Field(..., ge=1, le=10)
    title: str = Field(..., min_length=1, max_length=255)
    initiator_id: str = Field(..., min_length=1)
    initiator_name: Optional[str] = None
    company_code: Optional[str] = None
    remarks: Optional[str] = None
    submission_no: Optional[str] = None
    parties: List[PartyIn] = []
    approvers: Dict[str, ApproverInfo] = Field(
        default_factory=dict,
        description="First-level approvers keyed by role (BUM, FBP, CLUSTER_HEAD)",
    )
    submit: bool = True


class DocumentStatusIn(BaseModel):
    id: str
    status: str = Field(..., description="OK, ATTENTION_NEEDED or RESUBMIT")
    comment: Optional[str] = None


class DecisionRequest(BaseModel):
    """A single decision by one role."""
    role: str
    action: str
    actor_name: Optional[str] = None
    actor_email: Optional[str] = None
    comment: Optional[str] = None
    assigned_officer: Optional[str] = None
    special_approver_email: Optional[str] = None
    special_approver_name: Optional[str] = None
    document_statuses: List[DocumentStatusIn] = []


class ResubmitRequest(BaseModel):
    actor_name: Optional[str] = None


class SubmitRequest(BaseModel):
    actor_name: Optional[str] = None


class CommentCreate(BaseModel):
    author_name: str = Field(..., min_length=1)
    author_role: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: str
    author_name: str
    author_role: str
    text: str
    created_at: Optional[str]


class ApprovalRecordResponse(BaseModel):
    id: str
    role: str
    approver_name: Optional[str]
    approver_email: Optional[str]
    status: str
    comment: Optional[str]
    action_date: Optional[str]


class SpecialApproverResponse(BaseModel):
    id: str
    approver_email: str
    approver_name: Optional[str]
    department: Optional[str]
    assigned_by: str
    status: str
    comment: Optional[str]
    action_date: Optional[str]


class PartyResponse(BaseModel):
    id: str
    type: str
    name: str


class DocumentResponse(BaseModel):
    id: str
    label: str
    type: str
    status: str
    comment: Optional[str]
    file_url: Optional[str]


class SubmissionResponse(BaseModel):
    """Full snapshot of a submission."""
    id: str
    submission_no: str
    form_id: int
    form_name: str
    title: str
    company_code: Optional[str]
    remarks: Optional[str]
    initiator_id: str
    initiator_name: Optional[str]
    status: str
    stage_label: str
    legal_gm_stage: Optional[str]
    lo_stage: Optional[str]
    assigned_legal_officer: Optional[str]
    parent_id: Optional[str]
    is_resubmission: bool
    due_date: Optional[str]
    is_overdue: bool
    version: int
    approvals: List[ApprovalRecordResponse]
    special_approvers: List[SpecialApproverResponse]
    parties: List[PartyResponse]
    documents: List[DocumentResponse]
    comments: List[CommentResponse]
    created_at: Optional[str]
    updated_at: Optional[str]


class SubmissionEventResponse(BaseModel):
    id: str
    sequence: int
    event_type: str
    role: Optional[str]
    action: Optional[str]
    from_status: Optional[str]
    to_status: str
    from_legal_gm_stage: Optional[str]
    to_legal_gm_stage: Optional[str]
    from_lo_stage: Optional[str]
    to_lo_stage: Optional[str]
    actor_name: Optional[str]
    actor_email: Optional[str]
    comment: Optional[str]
    extra_data: Dict[str, Any] = {}
    created_at: Optional[str]


class AvailableActionsResponse(BaseModel):
    role: str
    actions: List[str]


class StatsResponse(BaseModel):
    stats_cards: List[Dict[str, Any]]
    ongoing_tasks: List[Dict[str, Any]]
    lo_stats: List[Dict[str, Any]]
    completed_counts: Dict[int, int]
    early_count: Dict[int, int]
    late_count: Dict[int, int]
