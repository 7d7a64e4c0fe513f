"""Submission workflow API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from legalflow.api.deps import get_approval_service
from legalflow.api.schemas.common import PaginatedResponse, PaginationParams
from legalflow.api.schemas.submissions import (
    AvailableActionsResponse,
    CommentCreate,
    CommentResponse,
    DecisionRequest,
    ResubmitRequest,
    StatsResponse,
    SubmissionCreate,
    SubmissionEventResponse,
    SubmissionResponse,
    SubmitRequest,
)
from legalflow.core.approval import ApprovalService, Decision, WorkflowError

router = APIRouter(prefix="/submissions", tags=["submissions"])


def _http_error(e: WorkflowError) -> HTTPException:
    return HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    body: SubmissionCreate,
    service: ApprovalService = Depends(get_approval_service),
):
    """Create a submission, optionally sending it straight to first-level approval."""
    try:
        return service.create_submission(
            form_id=body.form_id,
            title=body.title,
            initiator_id=body.initiator_id,
            initiator_name=body.initiator_name,
            company_code=body.company_code,
            remarks=body.remarks,
            parties=[p.model_dump() for p in body.parties],
            approvers={role: who.model_dump() for role, who in body.approvers.items()},
            submission_no=body.submission_no,
            submit=body.submit,
        )
    except WorkflowError as e:
        raise _http_error(e)


@router.get("", response_model=PaginatedResponse[SubmissionResponse])
async def list_submissions(
    service: ApprovalService = Depends(get_approval_service),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    form_id: Optional[int] = None,
    initiator_id: Optional[str] = None,
):
    """List submissions, newest first."""
    paging = PaginationParams(page=page, per_page=per_page)
    items, total = service.list_submissions(
        status=status_filter,
        form_id=form_id,
        initiator_id=initiator_id,
        limit=paging.limit,
        offset=paging.offset,
    )
    return PaginatedResponse.create(items=items, total=total, page=page, per_page=per_page)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(service: ApprovalService = Depends(get_approval_service)):
    """Dashboard counts, ongoing tasks and per-officer figures."""
    return service.stats()


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    service: ApprovalService = Depends(get_approval_service),
):
    """Get the full snapshot of a submission."""
    try:
        return service.get_submission(submission_id)
    except WorkflowError as e:
        raise _http_error(e)


@router.post("/{submission_id}/submit", response_model=SubmissionResponse)
async def submit_submission(
    submission_id: str,
    body: Optional[SubmitRequest] = None,
    service: ApprovalService = Depends(get_approval_service),
):
    """Send a draft to first-level approval."""
    try:
        return service.submit(submission_id, actor_name=body.actor_name if body else None)
    except WorkflowError as e:
        raise _http_error(e)


@router.post("/{submission_id}/approve", response_model=SubmissionResponse)
async def apply_decision(
    submission_id: str,
    body: DecisionRequest,
    service: ApprovalService = Depends(get_approval_service),
):
    """
    Apply one decision (approve, send back, cancel, delegate, assign).

    Returns the post-transition snapshot. Workflow failures come back as
    ``{"detail": {"error", "code", "details"}}`` with the matching status.
    """
    try:
        decision = Decision.parse(
            body.role,
            body.action,
            actor_name=body.actor_name,
            actor_email=body.actor_email,
            comment=body.comment,
            assigned_officer=body.assigned_officer,
            special_approver_email=body.special_approver_email,
            special_approver_name=body.special_approver_name,
            document_statuses=[d.model_dump() for d in body.document_statuses],
        )
        return service.apply_decision(submission_id, decision)
    except WorkflowError as e:
        raise _http_error(e)


@router.post("/{submission_id}/resubmit", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def resubmit_submission(
    submission_id: str,
    body: Optional[ResubmitRequest] = None,
    service: ApprovalService = Depends(get_approval_service),
):
    """Reopen a sent-back submission as a new one."""
    try:
        return service.resubmit(submission_id, actor_name=body.actor_name if body else None)
    except WorkflowError as e:
        raise _http_error(e)


@router.get("/{submission_id}/history", response_model=List[SubmissionEventResponse])
async def get_history(
    submission_id: str,
    service: ApprovalService = Depends(get_approval_service),
):
    """Get the event log of a submission in sequence order."""
    try:
        return service.get_history(submission_id)
    except WorkflowError as e:
        raise _http_error(e)


@router.get("/{submission_id}/actions", response_model=AvailableActionsResponse)
async def get_available_actions(
    submission_id: str,
    role: str,
    service: ApprovalService = Depends(get_approval_service),
):
    """Actions the given role could take right now."""
    try:
        actions = service.get_available_actions(submission_id, role)
    except WorkflowError as e:
        raise _http_error(e)
    return AvailableActionsResponse(role=role.upper(), actions=actions)


@router.get("/{submission_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    submission_id: str,
    service: ApprovalService = Depends(get_approval_service),
):
    """List the comment thread of a submission."""
    try:
        return service.list_comments(submission_id)
    except WorkflowError as e:
        raise _http_error(e)


@router.post("/{submission_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    submission_id: str,
    body: CommentCreate,
    service: ApprovalService = Depends(get_approval_service),
):
    """Add a free-text comment."""
    try:
        return service.add_comment(
            submission_id,
            author_name=body.author_name,
            author_role=body.author_role,
            text=body.text,
        )
    except WorkflowError as e:
        raise _http_error(e)
