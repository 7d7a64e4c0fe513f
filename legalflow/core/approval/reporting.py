"""Read-side workflow reporting.

Nothing here mutates a submission: "overdue" is derived from the due date
and the caller's notion of now, never enforced by the engine.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from legalflow.common.forms import FormConfig

from .states import STAGE_LABELS, SubmissionStatus, TERMINAL_STATES

CLOSED_STATES = {
    SubmissionStatus.COMPLETED.value,
    SubmissionStatus.CANCELLED.value,
    SubmissionStatus.RESUBMITTED.value,
}


def effective_due_date(submission, sla_days: int) -> Optional[datetime]:
    """Due date, falling back to created_at + SLA for rows without one."""
    if submission.due_date:
        return submission.due_date
    if submission.created_at:
        return submission.created_at + timedelta(days=sla_days)
    return None


def is_overdue(submission, now: datetime, sla_days: int = 14) -> bool:
    """True when a submission still in flight is past its due date."""
    try:
        if SubmissionStatus(submission.status) in TERMINAL_STATES:
            return False
    except ValueError:
        return False
    due = effective_due_date(submission, sla_days)
    return due is not None and now > due


def days_overdue(submission, now: datetime, sla_days: int = 14) -> Optional[int]:
    if not is_overdue(submission, now, sla_days):
        return None
    return (now - effective_due_date(submission, sla_days)).days


def stage_label(status: str) -> str:
    try:
        return STAGE_LABELS[SubmissionStatus(status)]
    except (KeyError, ValueError):
        return status


def compute_stats(
    submissions: Iterable,
    forms: Dict[int, FormConfig],
    now: datetime,
    sla_days: int = 14,
) -> Dict[str, Any]:
    """
    Dashboard figures over a set of submissions.

    Returns:
        Dictionary with ``stats_cards`` (count per form), ``ongoing_tasks``
        (open submissions with stage label and lateness), ``lo_stats``
        (per assigned legal officer) and per-form ``completed_counts``,
        ``early_count`` and ``late_count``.
    """
    submissions = list(submissions)

    counts = {form_id: 0 for form_id in forms}
    for s in submissions:
        if s.form_id in counts:
            counts[s.form_id] += 1
    stats_cards = [
        {"form_id": form_id, "label": forms[form_id].name, "count": counts[form_id]}
        for form_id in sorted(forms)
    ]

    ongoing_tasks = []
    for s in submissions:
        if s.status in CLOSED_STATES or s.status == SubmissionStatus.DRAFT.value:
            continue
        late_by = days_overdue(s, now, sla_days)
        late = s.status == SubmissionStatus.SENT_BACK.value or late_by is not None
        ongoing_tasks.append({
            "id": str(s.id),
            "request_no": s.submission_no,
            "title": s.form_name,
            "stage": stage_label(s.status),
            "days_overdue": late_by,
            "filter": "LATE" if late else "ON_TRACK",
        })

    lo_map: Dict[str, Dict[str, int]] = {}
    for s in submissions:
        officer = s.assigned_legal_officer
        if not officer or s.status == SubmissionStatus.RESUBMITTED.value:
            continue
        bucket = lo_map.setdefault(officer, {"on_track": 0, "late": 0, "completed": 0})
        if s.status == SubmissionStatus.COMPLETED.value:
            bucket["completed"] += 1
        elif s.status in (SubmissionStatus.SENT_BACK.value, SubmissionStatus.CANCELLED.value) or is_overdue(s, now, sla_days):
            bucket["late"] += 1
        else:
            bucket["on_track"] += 1
    lo_stats = [{"officer": officer, **bucket} for officer, bucket in sorted(lo_map.items())]

    completed_counts: Dict[int, int] = {}
    early_count: Dict[int, int] = {}
    late_count: Dict[int, int] = {}
    for s in submissions:
        if s.status != SubmissionStatus.COMPLETED.value:
            continue
        completed_counts[s.form_id] = completed_counts.get(s.form_id, 0) + 1
        due = effective_due_date(s, sla_days)
        finished = s.updated_at or now
        if due is None or finished <= due:
            early_count[s.form_id] = early_count.get(s.form_id, 0) + 1
        else:
            late_count[s.form_id] = late_count.get(s.form_id, 0) + 1

    return {
        "stats_cards": stats_cards,
        "ongoing_tasks": ongoing_tasks,
        "lo_stats": lo_stats,
        "completed_counts": completed_counts,
        "early_count": early_count,
        "late_count": late_count,
    }
