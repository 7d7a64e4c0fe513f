"""Submission approval state machine.

Evaluates one decision against one submission aggregate held in memory:
validates it against the transition table, updates the affected ledger and
the status/stage flags, and returns a transition record. Persistence,
locking and the event log belong to ``ApprovalService``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from legalflow.common.forms import FormConfig
from legalflow.db.models import SubmissionComment

from .errors import InvalidInputError, InvalidTransitionError, RoleNotAssignedError, UnhandledRoleError
from .ledger import FirstLevelLedger, SpecialApproverLedger
from .states import (
    ApproverRole,
    DecisionAction,
    DELEGATION_RETURNS,
    DocumentReviewStatus,
    FAN_OUT_POSITIONS,
    Gate,
    LegalGmStage,
    LoStage,
    SubmissionStatus,
    TERMINAL_STATES,
    TransitionRule,
    WorkflowPosition,
    get_transition_rule,
    is_valid_position,
)

logger = logging.getLogger(__name__)


# One handler per role. Import fails if a role is added without one.
ROLE_HANDLERS: Dict[ApproverRole, str] = {
    ApproverRole.BUM: "_first_level",
    ApproverRole.FBP: "_first_level",
    ApproverRole.CLUSTER_HEAD: "_first_level",
    ApproverRole.LEGAL_GM: "_legal_gm",
    ApproverRole.LEGAL_OFFICER: "_legal_officer",
    ApproverRole.SPECIAL_APPROVER: "_special_approver",
    ApproverRole.COURT_OFFICER: "_court_officer",
}

_unrouted = set(ApproverRole) - set(ROLE_HANDLERS)
if _unrouted:
    raise RuntimeError(f"Roles without a decision handler: {sorted(r.value for r in _unrouted)}")

DOCUMENT_MARKINGS = {
    DocumentReviewStatus.OK.value,
    DocumentReviewStatus.ATTENTION_NEEDED.value,
    DocumentReviewStatus.RESUBMIT.value,
}


@dataclass
class Decision:
    """A decision submitted by one role against one submission."""

    role: ApproverRole
    action: DecisionAction
    actor_name: Optional[str] = None
    actor_email: Optional[str] = None
    comment: Optional[str] = None
    assigned_officer: Optional[str] = None
    special_approver_email: Optional[str] = None
    special_approver_name: Optional[str] = None
    document_statuses: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def parse(cls, role: str, action: str, **kwargs: Any) -> "Decision":
        """Build a decision from raw role/action strings.

        Raises:
            InvalidInputError: If the role or action is not a known value
        """
        try:
            parsed_role = ApproverRole(str(role).upper())
        except ValueError:
            raise InvalidInputError(f"Unknown role: {role}", field="role")
        try:
            parsed_action = DecisionAction(str(action).upper())
        except ValueError:
            raise InvalidInputError(f"Unknown action: {action}", field="action")
        kwargs["document_statuses"] = list(kwargs.get("document_statuses") or [])
        return cls(role=parsed_role, action=parsed_action, **kwargs)


class SubmissionStateMachine:
    """
    State machine for one submission.

    Dispatches the decision to the acting role's handler, which:
    - resolves the transition rule for the current status
    - updates the role's ledger (first-level or special approver)
    - applies the gate (unanimous or unconditional)
    - sets the status and stage flags of the resulting position
    """

    def __init__(
        self,
        submission,
        *,
        form: Optional[FormConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the state machine.

        Args:
            submission: Submission model instance with its ledgers loaded
            form: Form configuration; decides whether litigation stages exist
            clock: Returns the current time (defaults to ``datetime.utcnow``)
        """
        self.submission = submission
        self.form = form
        self._clock = clock or datetime.utcnow
        self.first_level = FirstLevelLedger(submission)
        self.special_approvers = SpecialApproverLedger(submission)
        self._handlers: Dict[ApproverRole, Callable[[Decision, datetime], Dict[str, Any]]] = {
            role: getattr(self, name) for role, name in ROLE_HANDLERS.items()
        }

    @property
    def position(self) -> WorkflowPosition:
        """Current status and stage flags."""
        try:
            return WorkflowPosition(
                SubmissionStatus(self.submission.status),
                LegalGmStage(self.submission.legal_gm_stage) if self.submission.legal_gm_stage else None,
                LoStage(self.submission.lo_stage) if self.submission.lo_stage else None,
            )
        except ValueError:
            raise InvalidTransitionError(
                "Submission carries an unknown status or stage flag",
                status=self.submission.status,
            )

    @property
    def status(self) -> SubmissionStatus:
        return self.position.status

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_litigation(self) -> bool:
        return bool(self.form and self.form.litigation)

    def available_actions(self, role: ApproverRole) -> list[DecisionAction]:
        """Actions the role could take right now."""
        if self.is_terminal:
            return []
        actions = []
        for action in DecisionAction:
            if get_transition_rule(self.status, role, action) is None:
                continue
            if role in (ApproverRole.BUM, ApproverRole.FBP, ApproverRole.CLUSTER_HEAD):
                record = self.first_level.find(role)
                if record is None or record.status != "PENDING":
                    continue
            if action == DecisionAction.ASSIGN_SPECIAL_APPROVER and not self._may_delegate(role):
                continue
            actions.append(action)
        return actions

    def apply(self, decision: Decision) -> Dict[str, Any]:
        """
        Apply a decision.

        Args:
            decision: The decision to evaluate

        Returns:
            Transition record describing the change

        Raises:
            InvalidTransitionError: If the decision is not allowed here
            RoleNotAssignedError: If the role/email has no ledger record
            UnhandledRoleError: If the role's decisions are not routed
            InvalidInputError: If companion data is missing
        """
        before = self.position
        if not is_valid_position(before):
            raise InvalidTransitionError(
                f"Stage flags {before.legal_gm_stage}/{before.lo_stage} are inconsistent with {before.status.value}",
                status=before.status.value,
            )
        if before.status in TERMINAL_STATES or before.status == SubmissionStatus.DRAFT:
            raise InvalidTransitionError(
                f"Submission is {before.status.value}; no decisions are accepted",
                status=before.status.value,
                role=decision.role.value,
                action=decision.action.value,
            )

        now = self._clock()
        extra = self._handlers[decision.role](decision, now)

        after = self.position
        self._check_invariants(after)
        self.submission.updated_at = now

        return {
            "role": decision.role.value,
            "action": decision.action.value,
            "from_status": before.status.value,
            "to_status": after.status.value,
            "from_legal_gm_stage": _value(before.legal_gm_stage),
            "to_legal_gm_stage": _value(after.legal_gm_stage),
            "from_lo_stage": _value(before.lo_stage),
            "to_lo_stage": _value(after.lo_stage),
            "actor_name": decision.actor_name,
            "actor_email": decision.actor_email,
            "comment": decision.comment,
            "extra_data": extra,
            "timestamp": now,
        }

    # -- role handlers -----------------------------------------------------

    def _first_level(self, decision: Decision, now: datetime) -> Dict[str, Any]:
        rule = self._rule_for(decision)
        self.first_level.record_decision(
            decision.role,
            decision.action,
            actor_name=decision.actor_name,
            actor_email=decision.actor_email,
            comment=decision.comment,
            now=now,
        )
        if rule.gate == Gate.FIRST_LEVEL and not self.first_level.is_unanimous():
            return {"awaiting": self._pending_first_level_roles()}
        self._move(rule.to_status)
        if rule.to_status == SubmissionStatus.PENDING_LEGAL_GM:
            self.submission.legal_gm_stage = LegalGmStage.INITIAL_REVIEW.value
            self.submission.lo_stage = None
        return {}

    def _legal_gm(self, decision: Decision, now: datetime) -> Dict[str, Any]:
        rule = self._rule_for(decision)
        if rule.to_status in (SubmissionStatus.SENT_BACK, SubmissionStatus.CANCELLED):
            self._move(rule.to_status)
            return {}
        if decision.action == DecisionAction.ASSIGN_SPECIAL_APPROVER:
            return self._delegate(decision)

        stage = self.position.legal_gm_stage
        if stage == LegalGmStage.INITIAL_REVIEW:
            officer = (decision.assigned_officer or "").strip()
            if rule.requires_assignee and not officer:
                raise InvalidInputError("An assigned legal officer is required to proceed", field="assigned_officer")
            self._move(rule.to_status)
            self.submission.legal_gm_stage = LegalGmStage.INITIAL_REVIEW.value
            self.submission.assigned_legal_officer = officer
            self.submission.lo_stage = LoStage.ACTIVE.value
            return {"assigned_officer": officer}
        if stage == LegalGmStage.FINAL_APPROVAL:
            self._move(rule.to_status)
            return {}
        raise InvalidTransitionError(
            "Legal GM stage is not set",
            status=self.submission.status,
            role=decision.role.value,
            action=decision.action.value,
        )

    def _legal_officer(self, decision: Decision, now: datetime) -> Dict[str, Any]:
        rule = self._rule_for(decision)
        action = decision.action

        if action == DecisionAction.SUBMIT_TO_LEGAL_GM:
            self._move(rule.to_status)
            self.submission.legal_gm_stage = LegalGmStage.FINAL_APPROVAL.value
            self.submission.lo_stage = LoStage.POST_GM_APPROVAL.value
            return {}

        if action == DecisionAction.ASSIGN_SPECIAL_APPROVER:
            return self._delegate(decision)

        if action == DecisionAction.RETURNED_TO_INITIATOR:
            comment = (decision.comment or "").strip()
            if rule.requires_comment and not comment:
                raise InvalidInputError("A comment is required when returning to the initiator", field="comment")
            marked = self._mark_documents(decision.document_statuses)
            self.submission.comments.append(
                SubmissionComment(
                    author_name=decision.actor_name or "Legal Officer",
                    author_role=ApproverRole.LEGAL_OFFICER.value,
                    text=comment,
                    created_at=now,
                )
            )
            self._move(rule.to_status)
            return {"documents": marked}

        # SENT_BACK / CANCELLED
        self._move(rule.to_status)
        return {}

    def _special_approver(self, decision: Decision, now: datetime) -> Dict[str, Any]:
        rule = self._rule_for(decision)
        record = self.special_approvers.record_decision(
            decision.actor_email,
            decision.action,
            comment=decision.comment,
            now=now,
        )
        if rule.gate != Gate.SPECIAL_APPROVERS:
            self._move(rule.to_status)
            return {}
        if not self.special_approvers.is_unanimous():
            return {"awaiting": self._pending_special_approvers()}
        # Control goes back to whoever opened this round
        self._place(DELEGATION_RETURNS[ApproverRole(record.assigned_by)])
        return {"returned_to": record.assigned_by}

    def _court_officer(self, decision: Decision, now: datetime) -> Dict[str, Any]:
        if not self.is_litigation:
            raise RoleNotAssignedError(
                "Court Officer stage only exists on litigation forms",
                role=decision.role.value,
            )
        # Litigation forms know the stage but no decision of it is routed
        raise UnhandledRoleError(decision.role.value)

    # -- helpers -----------------------------------------------------------

    def _rule_for(self, decision: Decision) -> TransitionRule:
        rule = get_transition_rule(self.status, decision.role, decision.action)
        if rule is None:
            raise InvalidTransitionError(
                f"{decision.role.value} cannot perform {decision.action.value} from {self.status.value}",
                status=self.status.value,
                role=decision.role.value,
                action=decision.action.value,
            )
        return rule

    def _move(self, to_status: SubmissionStatus) -> None:
        self.submission.status = to_status.value

    def _place(self, position: WorkflowPosition) -> None:
        self.submission.status = position.status.value
        self.submission.legal_gm_stage = _value(position.legal_gm_stage)
        self.submission.lo_stage = _value(position.lo_stage)

    def _may_delegate(self, role: ApproverRole) -> bool:
        open_round = self.special_approvers.open_delegator()
        return open_round is None or open_round == role

    def _delegate(self, decision: Decision) -> Dict[str, Any]:
        """Add a special approver and park the submission in the delegator's fan-out."""
        if not self._may_delegate(decision.role):
            raise InvalidTransitionError(
                f"Special approvers were requested by {self.special_approvers.open_delegator().value}; "
                f"{decision.role.value} cannot add to that round",
                status=self.submission.status,
                role=decision.role.value,
                action=decision.action.value,
            )
        record = self.special_approvers.assign(
            decision.special_approver_email,
            decision.special_approver_name,
            assigned_by=decision.role,
        )
        self._place(FAN_OUT_POSITIONS[decision.role])
        return {
            "special_approver_email": record.approver_email,
            "special_approver_name": record.approver_name,
            "assigned_by": decision.role.value,
        }

    def _mark_documents(self, document_statuses: List[Dict[str, Any]]) -> list[Dict[str, Any]]:
        documents = {str(doc.id): doc for doc in self.submission.documents}
        marked = []
        for entry in document_statuses:
            doc_id = str(entry.get("id", ""))
            status = str(entry.get("status", "")).upper()
            doc = documents.get(doc_id)
            if doc is None:
                raise InvalidInputError(f"Document {doc_id} does not belong to this submission", field="document_statuses")
            if status not in DOCUMENT_MARKINGS:
                raise InvalidInputError(f"Invalid document status: {status}", field="document_statuses")
            doc.status = status
            if entry.get("comment"):
                doc.comment = entry["comment"]
            marked.append({"id": doc_id, "status": status})
        return marked

    def _pending_first_level_roles(self) -> list[str]:
        return [r.role for r in self.first_level.records if r.status == "PENDING"]

    def _pending_special_approvers(self) -> list[str]:
        return [r.approver_email for r in self.special_approvers.records if r.status == "PENDING"]

    def _check_invariants(self, position: WorkflowPosition) -> None:
        problem = None
        if not is_valid_position(position):
            problem = "stage flags do not match the status"
        elif position.status == SubmissionStatus.PENDING_LEGAL_GM and not self.first_level.is_unanimous():
            problem = "first-level ledger is not unanimous"
        elif position.status == SubmissionStatus.PENDING_SPECIAL_APPROVER and not self._pending_special_approvers():
            problem = "no special approver is pending"
        elif (
            position.status == SubmissionStatus.PENDING_SPECIAL_APPROVER
            and position != FAN_OUT_POSITIONS[self.special_approvers.open_delegator()]
        ):
            problem = "stage flags do not match who requested the special approvers"
        if problem:
            logger.error(f"Invariant violated on submission {self.submission.id}: {problem}")
            raise InvalidTransitionError(
                f"Transition would leave the submission inconsistent: {problem}",
                status=position.status.value,
            )


def _value(enum_member) -> Optional[str]:
    return enum_member.value if enum_member is not None else None
