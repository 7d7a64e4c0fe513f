"""Approval service for routing submissions through the workflow.

Provides the high-level API around the state machine: creation and
submission of requests, the single "apply a decision" operation, resubmission,
and read-side snapshots. Every mutating call is one transaction: the
submission row is locked (``SELECT ... FOR UPDATE``) and version-checked, the
ledgers, status and event log are written together, and a conflicting
concurrent write causes the whole read-evaluate-write to be retried.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from legalflow.common.forms import FormConfig, get_form, load_forms_config
from legalflow.core.config import get_settings
from legalflow.db.models import (
    Submission,
    SubmissionComment,
    SubmissionDocument,
    SubmissionEvent,
    SubmissionParty,
)

from .errors import InvalidInputError, InvalidTransitionError, NotFoundError, ProcessingFailedError, WorkflowError
from .ledger import FirstLevelLedger
from .machine import Decision, SubmissionStateMachine
from .reporting import compute_stats, is_overdue, stage_label
from .states import ApproverRole, SubmissionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ApprovalService:
    """
    High-level service for managing legal request approvals.

    Handles:
    - Creating, submitting and resubmitting requests
    - Applying decisions under a per-submission lock with retry
    - Recording the append-only event log
    - Querying snapshots, history, comments and dashboard stats
    """

    def __init__(
        self,
        db: Session,
        *,
        forms: Optional[Dict[int, FormConfig]] = None,
        sla_days: Optional[int] = None,
        max_retries: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the approval service.

        Args:
            db: Database session
            forms: Form catalogue (defaults to the configured catalogue)
            sla_days: Days until a new submission is due
            max_retries: Attempts per mutating call on concurrent modification
            clock: Returns the current time (defaults to ``datetime.utcnow``)
        """
        settings = get_settings()
        self.db = db
        self.forms = forms if forms is not None else load_forms_config(settings.forms_config_path)
        self.sla_days = sla_days if sla_days is not None else settings.default_sla_days
        self.max_retries = max(1, max_retries if max_retries is not None else settings.decision_max_retries)
        self._clock = clock or datetime.utcnow

    # -- lifecycle ---------------------------------------------------------

    def create_submission(
        self,
        *,
        form_id: int,
        title: str,
        initiator_id: str,
        initiator_name: Optional[str] = None,
        company_code: Optional[str] = None,
        remarks: Optional[str] = None,
        parties: Optional[List[Dict[str, str]]] = None,
        approvers: Optional[Dict[str, Dict[str, str]]] = None,
        submission_no: Optional[str] = None,
        submit: bool = True,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create a new request.

        Required documents are derived from the party types. With ``submit``
        the request goes straight to PENDING_APPROVAL with its first-level
        ledger seeded; otherwise it stays DRAFT.

        Returns:
            Snapshot of the new submission

        Raises:
            InvalidInputError: If the form, title, initiator or approvers are invalid
        """
        form = self._resolve_form(form_id)
        if not title or not title.strip():
            raise InvalidInputError("title is required", field="title")
        if not initiator_id:
            raise InvalidInputError("initiator_id is required", field="initiator_id")
        approvers = self._validate_approvers(form, approvers or {})
        parties = self._validate_parties(parties or [])

        def operation() -> uuid.UUID:
            now = self._clock()
            number = (submission_no or "").strip() or self._next_submission_no(now)
            if self.db.query(Submission.id).filter(Submission.submission_no == number).first():
                raise InvalidInputError(f"Submission number {number} already exists", field="submission_no")

            submission = Submission(
                id=uuid.uuid4(),
                submission_no=number,
                form_id=form.form_id,
                form_name=form.name,
                title=title.strip(),
                company_code=company_code,
                remarks=remarks or "",
                initiator_id=initiator_id,
                initiator_name=initiator_name,
                status=SubmissionStatus.DRAFT.value,
                is_resubmission=False,
                due_date=now + timedelta(days=self.sla_days),
                extra_data={**(extra_data or {}), "approvers": approvers},
                created_at=now,
                updated_at=now,
            )
            for party in parties:
                submission.parties.append(SubmissionParty(party_type=party["type"], name=party["name"]))
            for order, doc in enumerate(form.required_documents([p["type"] for p in parties])):
                submission.documents.append(
                    SubmissionDocument(label=doc.label, doc_type=doc.doc_type, status="NONE", sort_order=order)
                )
            self.db.add(submission)
            self._append_event(submission, "created", to_status=SubmissionStatus.DRAFT.value,
                               actor_name=initiator_name, timestamp=now)
            if submit:
                self._open_first_level(submission, form, approvers, now, actor_name=initiator_name)
            return submission.id

        submission_id = self._mutate("create submission", operation)
        logger.info(f"Created submission {submission_id} (form {form.form_id}, submit={submit})")
        return self.get_submission(submission_id)

    def submit(self, submission_id, *, actor_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Move a DRAFT into PENDING_APPROVAL and seed the first-level ledger.

        Raises:
            NotFoundError: If the submission does not exist
            InvalidTransitionError: If the submission is not a draft
        """
        def operation() -> None:
            submission = self._load_for_update(submission_id)
            if submission.status != SubmissionStatus.DRAFT.value:
                raise InvalidTransitionError(
                    f"Only drafts can be submitted (status is {submission.status})",
                    status=submission.status,
                )
            form = self._resolve_form(submission.form_id)
            approvers = (submission.extra_data or {}).get("approvers", {})
            self._open_first_level(submission, form, approvers, self._clock(), actor_name=actor_name)

        self._mutate("submit", operation)
        logger.info(f"Submission {submission_id} submitted for approval")
        return self.get_submission(submission_id)

    def apply_decision(self, submission_id, decision: Decision) -> Dict[str, Any]:
        """
        Apply one decision to a submission.

        Args:
            submission_id: ID of the submission
            decision: Role, action and companion data

        Returns:
            Full post-transition snapshot

        Raises:
            NotFoundError: If the submission does not exist
            InvalidTransitionError: If the decision is not allowed here
            RoleNotAssignedError: If the role/email has no ledger record
            UnhandledRoleError: If the role's decisions are not routed
            InvalidInputError: If companion data is missing
            ProcessingFailedError: If persistence fails
        """
        def operation() -> Dict[str, Any]:
            submission = self._load_for_update(submission_id)
            machine = SubmissionStateMachine(
                submission,
                form=self.forms.get(submission.form_id),
                clock=self._clock,
            )
            record = machine.apply(decision)
            # Always rewrite the row so peer decisions on one ledger conflict on version
            flag_modified(submission, "updated_at")
            self._append_event(
                submission,
                "decision",
                role=record["role"],
                action=record["action"],
                from_status=record["from_status"],
                to_status=record["to_status"],
                from_legal_gm_stage=record["from_legal_gm_stage"],
                to_legal_gm_stage=record["to_legal_gm_stage"],
                from_lo_stage=record["from_lo_stage"],
                to_lo_stage=record["to_lo_stage"],
                actor_name=record["actor_name"],
                actor_email=record["actor_email"],
                comment=record["comment"],
                extra_data=record["extra_data"],
                timestamp=record["timestamp"],
            )
            return record

        try:
            record = self._mutate("apply decision", operation)
        except ProcessingFailedError:
            raise
        except WorkflowError as e:
            logger.warning(
                f"Rejected {decision.role.value}/{decision.action.value} on submission {submission_id}: {e.message}"
            )
            raise

        logger.info(
            f"Submission {submission_id}: {record['role']} {record['action']} "
            f"{record['from_status']} -> {record['to_status']}"
        )
        return self.get_submission(submission_id)

    def resubmit(self, submission_id, *, actor_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Reopen a sent-back request as a fresh submission.

        The original is tagged RESUBMITTED and keeps its ledgers and history;
        the copy starts at PENDING_APPROVAL with new PENDING records for the
        same approvers.

        Returns:
            Snapshot of the new submission

        Raises:
            NotFoundError: If the submission does not exist
            InvalidTransitionError: If the submission was not sent back
        """
        def operation() -> uuid.UUID:
            original = self._load_for_update(submission_id)
            if original.status != SubmissionStatus.SENT_BACK.value:
                raise InvalidTransitionError(
                    f"Only sent-back submissions can be resubmitted (status is {original.status})",
                    status=original.status,
                )
            form = self._resolve_form(original.form_id)
            now = self._clock()

            approvers = dict((original.extra_data or {}).get("approvers", {}))
            for record in original.approvals:
                approvers[record.role] = {"name": record.approver_name or "", "email": record.approver_email or ""}
            approvers = {role: who for role, who in approvers.items() if role in form.first_level_roles}

            copy = Submission(
                id=uuid.uuid4(),
                submission_no=self._next_submission_no(now),
                form_id=original.form_id,
                form_name=original.form_name,
                title=original.title,
                company_code=original.company_code,
                remarks=original.remarks,
                initiator_id=original.initiator_id,
                initiator_name=original.initiator_name,
                status=SubmissionStatus.DRAFT.value,
                parent_id=original.id,
                is_resubmission=True,
                due_date=now + timedelta(days=self.sla_days),
                extra_data={**(original.extra_data or {}), "approvers": approvers},
                created_at=now,
                updated_at=now,
            )
            for party in original.parties:
                copy.parties.append(SubmissionParty(party_type=party.party_type, name=party.name))
            for doc in original.documents:
                copy.documents.append(SubmissionDocument(
                    label=doc.label,
                    doc_type=doc.doc_type,
                    status="UPLOADED" if doc.file_url else "NONE",
                    file_url=doc.file_url,
                    uploaded_at=doc.uploaded_at,
                    sort_order=doc.sort_order,
                ))
            self.db.add(copy)
            self._append_event(copy, "created", to_status=SubmissionStatus.DRAFT.value,
                               actor_name=actor_name, extra_data={"parent_id": str(original.id)}, timestamp=now)
            self._open_first_level(copy, form, approvers, now, actor_name=actor_name)

            self._append_event(
                original,
                "resubmitted",
                from_status=original.status,
                to_status=SubmissionStatus.RESUBMITTED.value,
                actor_name=actor_name,
                extra_data={"resubmission_id": str(copy.id)},
                timestamp=now,
            )
            original.status = SubmissionStatus.RESUBMITTED.value
            original.updated_at = now
            return copy.id

        new_id = self._mutate("resubmit", operation)
        logger.info(f"Submission {submission_id} resubmitted as {new_id}")
        return self.get_submission(new_id)

    # -- comments ----------------------------------------------------------

    def add_comment(self, submission_id, *, author_name: str, author_role: str, text: str) -> Dict[str, Any]:
        """Append a free-text comment; does not touch the workflow."""
        if not author_name or not author_role or not (text or "").strip():
            raise InvalidInputError("author_name, author_role and text are required")

        def operation() -> SubmissionComment:
            submission = self._get(submission_id)
            comment = SubmissionComment(
                submission_id=submission.id,
                author_name=author_name,
                author_role=author_role,
                text=text.strip(),
                created_at=self._clock(),
            )
            self.db.add(comment)
            return comment

        comment = self._mutate("add comment", operation)
        return self._comment_to_dict(comment)

    def list_comments(self, submission_id) -> List[Dict[str, Any]]:
        submission = self._get(submission_id)
        return [self._comment_to_dict(c) for c in submission.comments]

    # -- queries -----------------------------------------------------------

    def get_submission(self, submission_id) -> Dict[str, Any]:
        """Get the full snapshot of a submission."""
        return self._submission_to_dict(self._get(submission_id))

    def list_submissions(
        self,
        *,
        status: Optional[str] = None,
        form_id: Optional[int] = None,
        initiator_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List submissions, newest first, with the total before paging."""
        query = self.db.query(Submission)
        if status:
            query = query.filter(Submission.status == status)
        if form_id:
            query = query.filter(Submission.form_id == form_id)
        if initiator_id:
            query = query.filter(Submission.initiator_id == initiator_id)

        total = query.count()
        rows = query.order_by(Submission.created_at.desc()).offset(offset).limit(limit).all()
        return [self._submission_to_dict(s) for s in rows], total

    def get_history(self, submission_id) -> List[Dict[str, Any]]:
        """Event log of a submission in sequence order."""
        submission = self._get(submission_id)
        return [self._event_to_dict(e) for e in submission.events]

    def get_available_actions(self, submission_id, role: str) -> List[str]:
        """Actions a role could take on the submission right now."""
        try:
            parsed = ApproverRole(str(role).upper())
        except ValueError:
            raise InvalidInputError(f"Unknown role: {role}", field="role")
        submission = self._get(submission_id)
        machine = SubmissionStateMachine(submission, form=self.forms.get(submission.form_id), clock=self._clock)
        return [a.value for a in machine.available_actions(parsed)]

    def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Dashboard figures across all submissions."""
        submissions = self.db.query(Submission).all()
        return compute_stats(submissions, self.forms, now or self._clock(), self.sla_days)

    # -- internals ---------------------------------------------------------

    def _mutate(self, description: str, operation: Callable[[], T]) -> T:
        """Run ``operation`` and commit, retrying on concurrent modification."""
        for attempt in range(1, self.max_retries + 1):
            try:
                result = operation()
                self.db.commit()
                return result
            except WorkflowError:
                self.db.rollback()
                raise
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                logger.warning(
                    f"Concurrent modification during {description} "
                    f"(attempt {attempt}/{self.max_retries}): {type(e).__name__}"
                )
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception(f"Database error during {description}")
                raise ProcessingFailedError()

        logger.error(f"Giving up on {description} after {self.max_retries} attempts")
        raise ProcessingFailedError()

    def _parse_id(self, submission_id) -> uuid.UUID:
        if isinstance(submission_id, uuid.UUID):
            return submission_id
        try:
            return uuid.UUID(str(submission_id))
        except ValueError:
            raise NotFoundError(submission_id)

    def _get(self, submission_id) -> Submission:
        submission = self.db.query(Submission).filter(Submission.id == self._parse_id(submission_id)).first()
        if not submission:
            raise NotFoundError(submission_id)
        return submission

    def _load_for_update(self, submission_id) -> Submission:
        # Ledger rows loaded by an earlier transaction may be outdated
        self.db.expire_all()
        submission = (
            self.db.query(Submission)
            .filter(Submission.id == self._parse_id(submission_id))
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not submission:
            raise NotFoundError(submission_id)
        return submission

    def _resolve_form(self, form_id) -> FormConfig:
        try:
            return get_form(self.forms, form_id)
        except ValueError as e:
            raise InvalidInputError(str(e), field="form_id")

    def _validate_approvers(self, form: FormConfig, approvers: Dict[str, Dict[str, str]]) -> Dict[str, Dict[str, str]]:
        normalized = {}
        for role, who in approvers.items():
            key = str(role).upper()
            if key not in form.first_level_roles:
                raise InvalidInputError(
                    f"{key} is not a first-level approver for {form.name}",
                    field="approvers",
                )
            who = who or {}
            normalized[key] = {"name": who.get("name") or "", "email": who.get("email") or ""}
        return {role: normalized.get(role, {"name": "", "email": ""}) for role in form.first_level_roles}

    def _validate_parties(self, parties: List[Dict[str, str]]) -> List[Dict[str, str]]:
        result = []
        for party in parties:
            party_type = (party.get("type") or "").strip()
            name = (party.get("name") or "").strip()
            if not party_type or not name:
                raise InvalidInputError("Each party needs a type and a name", field="parties")
            result.append({"type": party_type, "name": name})
        return result

    def _open_first_level(
        self,
        submission: Submission,
        form: FormConfig,
        approvers: Dict[str, Dict[str, str]],
        now: datetime,
        *,
        actor_name: Optional[str] = None,
    ) -> None:
        FirstLevelLedger(submission).seed(
            {role: approvers.get(role, {}) for role in form.first_level_roles}
        )
        previous = submission.status
        submission.status = SubmissionStatus.PENDING_APPROVAL.value
        submission.legal_gm_stage = None
        submission.lo_stage = None
        submission.updated_at = now
        self._append_event(
            submission,
            "submitted",
            from_status=previous,
            to_status=submission.status,
            actor_name=actor_name,
            extra_data={"first_level_roles": list(form.first_level_roles)},
            timestamp=now,
        )

    def _next_submission_no(self, now: datetime) -> str:
        day_start = datetime(now.year, now.month, now.day)
        today = self.db.query(func.count(Submission.id)).filter(
            Submission.created_at >= day_start,
            Submission.created_at < day_start + timedelta(days=1),
        ).scalar() or 0
        return f"LHD_{now.strftime('%Y%m%d%H%M%S')}_{today + 1:03d}"

    def _append_event(
        self,
        submission: Submission,
        event_type: str,
        *,
        to_status: str,
        timestamp: datetime,
        from_status: Optional[str] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        **fields: Any,
    ) -> SubmissionEvent:
        pending = [o for o in self.db.new if isinstance(o, SubmissionEvent) and o.submission_id == submission.id]
        persisted = self.db.query(func.max(SubmissionEvent.sequence)).filter(
            SubmissionEvent.submission_id == submission.id
        ).scalar() or 0
        sequence = max([persisted] + [e.sequence for e in pending]) + 1

        event = SubmissionEvent(
            id=uuid.uuid4(),
            submission_id=submission.id,
            sequence=sequence,
            event_type=event_type,
            from_status=from_status,
            to_status=to_status,
            extra_data=extra_data or {},
            created_at=timestamp,
            **fields,
        )
        self.db.add(event)
        return event

    def _submission_to_dict(self, submission: Submission) -> Dict[str, Any]:
        """Convert a Submission model to its snapshot dictionary."""
        now = self._clock()
        return {
            "id": str(submission.id),
            "submission_no": submission.submission_no,
            "form_id": submission.form_id,
            "form_name": submission.form_name,
            "title": submission.title,
            "company_code": submission.company_code,
            "remarks": submission.remarks,
            "initiator_id": submission.initiator_id,
            "initiator_name": submission.initiator_name,
            "status": submission.status,
            "stage_label": stage_label(submission.status),
            "legal_gm_stage": submission.legal_gm_stage,
            "lo_stage": submission.lo_stage,
            "assigned_legal_officer": submission.assigned_legal_officer,
            "parent_id": str(submission.parent_id) if submission.parent_id else None,
            "is_resubmission": bool(submission.is_resubmission),
            "due_date": submission.due_date.isoformat() if submission.due_date else None,
            "is_overdue": is_overdue(submission, now, self.sla_days),
            "version": submission.version,
            "approvals": [
                {
                    "id": str(a.id),
                    "role": a.role,
                    "approver_name": a.approver_name,
                    "approver_email": a.approver_email,
                    "status": a.status,
                    "comment": a.comment,
                    "action_date": a.action_date.isoformat() if a.action_date else None,
                }
                for a in sorted(submission.approvals, key=lambda a: a.role)
            ],
            "special_approvers": [
                {
                    "id": str(s.id),
                    "approver_email": s.approver_email,
                    "approver_name": s.approver_name,
                    "department": s.department,
                    "assigned_by": s.assigned_by,
                    "status": s.status,
                    "comment": s.comment,
                    "action_date": s.action_date.isoformat() if s.action_date else None,
                }
                for s in submission.special_approvers
            ],
            "parties": [
                {"id": str(p.id), "type": p.party_type, "name": p.name}
                for p in submission.parties
            ],
            "documents": [
                {
                    "id": str(d.id),
                    "label": d.label,
                    "type": d.doc_type,
                    "status": d.status,
                    "comment": d.comment,
                    "file_url": d.file_url,
                }
                for d in submission.documents
            ],
            "comments": [self._comment_to_dict(c) for c in submission.comments],
            "created_at": submission.created_at.isoformat() if submission.created_at else None,
            "updated_at": submission.updated_at.isoformat() if submission.updated_at else None,
        }

    def _comment_to_dict(self, comment: SubmissionComment) -> Dict[str, Any]:
        return {
            "id": str(comment.id),
            "author_name": comment.author_name,
            "author_role": comment.author_role,
            "text": comment.text,
            "created_at": comment.created_at.isoformat() if comment.created_at else None,
        }

    def _event_to_dict(self, event: SubmissionEvent) -> Dict[str, Any]:
        return {
            "id": str(event.id),
            "sequence": event.sequence,
            "event_type": event.event_type,
            "role": event.role,
            "action": event.action,
            "from_status": event.from_status,
            "to_status": event.to_status,
            "from_legal_gm_stage": event.from_legal_gm_stage,
            "to_legal_gm_stage": event.to_legal_gm_stage,
            "from_lo_stage": event.from_lo_stage,
            "to_lo_stage": event.to_lo_stage,
            "actor_name": event.actor_name,
            "actor_email": event.actor_email,
            "comment": event.comment,
            "extra_data": event.extra_data,
            "created_at": event.created_at.isoformat() if event.created_at else None,
        }
