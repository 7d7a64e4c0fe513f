"""Submission workflow states and transitions.

State Machine Diagram:

    ┌───────┐  submit   ┌──────────────────┐
    │ DRAFT │──────────►│ PENDING_APPROVAL │ BUM / FBP / CLUSTER_HEAD (unanimous)
    └───────┘           └────────┬─────────┘
                                 │ all APPROVED
                        ┌────────▼─────────┐
                        │ PENDING_LEGAL_GM │ legal_gm_stage = INITIAL_REVIEW
                        └────────┬─────────┘
                                 │ APPROVED + assigned officer
                     ┌───────────▼───────────┐  ASSIGN_SPECIAL_APPROVER  ┌──────────────────────────┐
                     │ PENDING_LEGAL_OFFICER │─────────────────────────►│ PENDING_SPECIAL_APPROVER │
                     │   lo_stage = ACTIVE   │◄─────────────────────────│   (unanimous, by email)  │
                     └───────────┬───────────┘      all APPROVED        └──────────────────────────┘
                                 │ SUBMIT_TO_LEGAL_GM
                     ┌───────────▼────────────┐
                     │ PENDING_LEGAL_GM_FINAL │ legal_gm_stage = FINAL_APPROVAL
                     └───────────┬────────────┘
                                 │ APPROVED
                           ┌─────▼─────┐
                           │ COMPLETED │
                           └───────────┘

At final approval the Legal GM can also fan out to special approvers; once
they all approve, control returns to PENDING_LEGAL_GM_FINAL instead.

Any active stage can be vetoed to SENT_BACK or CANCELLED by the role acting on
it. Past initial review the Legal GM and the Legal Officer can also cancel at
any stage. SENT_BACK is only left through resubmission, which tags the old
submission RESUBMITTED and opens a fresh one.
"""

from enum import Enum
from typing import Dict, FrozenSet, NamedTuple, Optional, Set, Tuple


class SubmissionStatus(str, Enum):
    """Lifecycle status of a submission."""

    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    PENDING_LEGAL_GM = "PENDING_LEGAL_GM"
    PENDING_LEGAL_OFFICER = "PENDING_LEGAL_OFFICER"
    PENDING_SPECIAL_APPROVER = "PENDING_SPECIAL_APPROVER"
    PENDING_LEGAL_GM_FINAL = "PENDING_LEGAL_GM_FINAL"

    SENT_BACK = "SENT_BACK"          # Recoverable through resubmission
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    RESUBMITTED = "RESUBMITTED"      # Superseded by a resubmitted copy


class LegalGmStage(str, Enum):
    """Which of the two Legal GM visits is current."""

    INITIAL_REVIEW = "INITIAL_REVIEW"
    FINAL_APPROVAL = "FINAL_APPROVAL"


class LoStage(str, Enum):
    """Which of the Legal Officer visits is current."""

    ACTIVE = "ACTIVE"
    POST_GM_APPROVAL = "POST_GM_APPROVAL"


class RecordStatus(str, Enum):
    """Status of a single ledger record."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    SENT_BACK = "SENT_BACK"
    CANCELLED = "CANCELLED"


class ApproverRole(str, Enum):
    """Roles that can submit a decision."""

    BUM = "BUM"
    FBP = "FBP"
    CLUSTER_HEAD = "CLUSTER_HEAD"
    LEGAL_GM = "LEGAL_GM"
    LEGAL_OFFICER = "LEGAL_OFFICER"
    SPECIAL_APPROVER = "SPECIAL_APPROVER"
    COURT_OFFICER = "COURT_OFFICER"


class DecisionAction(str, Enum):
    """Actions a role can take on a submission."""

    APPROVED = "APPROVED"
    SENT_BACK = "SENT_BACK"
    CANCELLED = "CANCELLED"
    SUBMIT_TO_LEGAL_GM = "SUBMIT_TO_LEGAL_GM"
    SUBMIT_TO_LEGAL_OFFICER = "SUBMIT_TO_LEGAL_OFFICER"
    ASSIGN_SPECIAL_APPROVER = "ASSIGN_SPECIAL_APPROVER"
    RETURNED_TO_INITIATOR = "RETURNED_TO_INITIATOR"


class DocumentReviewStatus(str, Enum):
    """Per-document markings a Legal Officer can return to the initiator."""

    NONE = "NONE"
    UPLOADED = "UPLOADED"
    OK = "OK"
    ATTENTION_NEEDED = "ATTENTION_NEEDED"
    RESUBMIT = "RESUBMIT"


class Gate(str, Enum):
    """Aggregation rule deciding whether an APPROVED advances the submission."""

    NONE = "none"
    FIRST_LEVEL = "first_level"
    SPECIAL_APPROVERS = "special_approvers"


FIRST_LEVEL_ROLES: Tuple[ApproverRole, ...] = (
    ApproverRole.BUM,
    ApproverRole.FBP,
    ApproverRole.CLUSTER_HEAD,
)

VETO_ACTIONS: FrozenSet[DecisionAction] = frozenset({
    DecisionAction.SENT_BACK,
    DecisionAction.CANCELLED,
})

# Roles that may fan a submission out to special approvers
DELEGATORS: Tuple[ApproverRole, ...] = (
    ApproverRole.LEGAL_OFFICER,
    ApproverRole.LEGAL_GM,
)


class WorkflowPosition(NamedTuple):
    """Status plus the two stage flags, treated as one value."""

    status: SubmissionStatus
    legal_gm_stage: Optional[LegalGmStage] = None
    lo_stage: Optional[LoStage] = None


class TransitionRule(NamedTuple):
    """Defines a valid decision from one status."""
    from_status: SubmissionStatus
    role: ApproverRole
    action: DecisionAction
    to_status: SubmissionStatus
    gate: Gate = Gate.NONE
    requires_assignee: bool = False
    requires_special_approver: bool = False
    requires_comment: bool = False


def _vetoes(status: SubmissionStatus, role: ApproverRole) -> list[TransitionRule]:
    return [
        TransitionRule(status, role, DecisionAction.SENT_BACK, SubmissionStatus.SENT_BACK),
        TransitionRule(status, role, DecisionAction.CANCELLED, SubmissionStatus.CANCELLED),
    ]


TRANSITION_RULES: list[TransitionRule] = []

# First-level ledger
for _role in FIRST_LEVEL_ROLES:
    TRANSITION_RULES.append(
        TransitionRule(SubmissionStatus.PENDING_APPROVAL, _role, DecisionAction.APPROVED,
                       SubmissionStatus.PENDING_LEGAL_GM, gate=Gate.FIRST_LEVEL)
    )
    TRANSITION_RULES.extend(_vetoes(SubmissionStatus.PENDING_APPROVAL, _role))

TRANSITION_RULES.extend([
    # Legal GM, initial review
    TransitionRule(SubmissionStatus.PENDING_LEGAL_GM, ApproverRole.LEGAL_GM, DecisionAction.APPROVED,
                   SubmissionStatus.PENDING_LEGAL_OFFICER, requires_assignee=True),
    TransitionRule(SubmissionStatus.PENDING_LEGAL_GM, ApproverRole.LEGAL_GM, DecisionAction.SUBMIT_TO_LEGAL_OFFICER,
                   SubmissionStatus.PENDING_LEGAL_OFFICER, requires_assignee=True),
    *_vetoes(SubmissionStatus.PENDING_LEGAL_GM, ApproverRole.LEGAL_GM),

    # Legal GM, final approval
    TransitionRule(SubmissionStatus.PENDING_LEGAL_GM_FINAL, ApproverRole.LEGAL_GM, DecisionAction.APPROVED,
                   SubmissionStatus.COMPLETED),
    TransitionRule(SubmissionStatus.PENDING_LEGAL_GM_FINAL, ApproverRole.LEGAL_GM,
                   DecisionAction.ASSIGN_SPECIAL_APPROVER, SubmissionStatus.PENDING_SPECIAL_APPROVER,
                   requires_special_approver=True),
    *_vetoes(SubmissionStatus.PENDING_LEGAL_GM_FINAL, ApproverRole.LEGAL_GM),

    # Legal Officer dispatch
    TransitionRule(SubmissionStatus.PENDING_LEGAL_OFFICER, ApproverRole.LEGAL_OFFICER, DecisionAction.SUBMIT_TO_LEGAL_GM,
                   SubmissionStatus.PENDING_LEGAL_GM_FINAL),
    TransitionRule(SubmissionStatus.PENDING_LEGAL_OFFICER, ApproverRole.LEGAL_OFFICER,
                   DecisionAction.ASSIGN_SPECIAL_APPROVER, SubmissionStatus.PENDING_SPECIAL_APPROVER,
                   requires_special_approver=True),
    TransitionRule(SubmissionStatus.PENDING_LEGAL_OFFICER, ApproverRole.LEGAL_OFFICER,
                   DecisionAction.RETURNED_TO_INITIATOR, SubmissionStatus.SENT_BACK, requires_comment=True),
    *_vetoes(SubmissionStatus.PENDING_LEGAL_OFFICER, ApproverRole.LEGAL_OFFICER),

    # The delegator can keep adding signers while its fan-out is open
    *[
        TransitionRule(SubmissionStatus.PENDING_SPECIAL_APPROVER, _delegator,
                       DecisionAction.ASSIGN_SPECIAL_APPROVER, SubmissionStatus.PENDING_SPECIAL_APPROVER,
                       requires_special_approver=True)
        for _delegator in DELEGATORS
    ],

    # Special-approver fan-out. to_status is the Legal Officer return;
    # DELEGATION_RETURNS decides by who opened the fan-out.
    TransitionRule(SubmissionStatus.PENDING_SPECIAL_APPROVER, ApproverRole.SPECIAL_APPROVER, DecisionAction.APPROVED,
                   SubmissionStatus.PENDING_LEGAL_OFFICER, gate=Gate.SPECIAL_APPROVERS),
    *_vetoes(SubmissionStatus.PENDING_SPECIAL_APPROVER, ApproverRole.SPECIAL_APPROVER),
])

# Legal GM and Legal Officer can stop the request at any stage past initial review
for _status, _role in (
    (SubmissionStatus.PENDING_LEGAL_OFFICER, ApproverRole.LEGAL_GM),
    (SubmissionStatus.PENDING_SPECIAL_APPROVER, ApproverRole.LEGAL_GM),
    (SubmissionStatus.PENDING_SPECIAL_APPROVER, ApproverRole.LEGAL_OFFICER),
    (SubmissionStatus.PENDING_LEGAL_GM_FINAL, ApproverRole.LEGAL_OFFICER),
):
    TRANSITION_RULES.append(
        TransitionRule(_status, _role, DecisionAction.CANCELLED, SubmissionStatus.CANCELLED)
    )

# Build lookup table
TRANSITION_TABLE: Dict[Tuple[SubmissionStatus, ApproverRole, DecisionAction], TransitionRule] = {}
for _rule in TRANSITION_RULES:
    _key = (_rule.from_status, _rule.role, _rule.action)
    if _key in TRANSITION_TABLE:
        raise RuntimeError(f"Duplicate transition rule for {_key}")
    TRANSITION_TABLE[_key] = _rule


# Terminal states (no decisions accepted)
TERMINAL_STATES: Set[SubmissionStatus] = {
    SubmissionStatus.COMPLETED,
    SubmissionStatus.CANCELLED,
    SubmissionStatus.SENT_BACK,
    SubmissionStatus.RESUBMITTED,
}

# States that still wait on somebody
ACTIVE_STATES: Set[SubmissionStatus] = {
    SubmissionStatus.PENDING_APPROVAL,
    SubmissionStatus.PENDING_LEGAL_GM,
    SubmissionStatus.PENDING_LEGAL_OFFICER,
    SubmissionStatus.PENDING_SPECIAL_APPROVER,
    SubmissionStatus.PENDING_LEGAL_GM_FINAL,
}

# Positions whose flags are fixed by the status
VALID_POSITIONS: Set[WorkflowPosition] = {
    WorkflowPosition(SubmissionStatus.DRAFT),
    WorkflowPosition(SubmissionStatus.PENDING_APPROVAL),
    WorkflowPosition(SubmissionStatus.PENDING_LEGAL_GM, LegalGmStage.INITIAL_REVIEW),
    WorkflowPosition(SubmissionStatus.PENDING_LEGAL_OFFICER, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE),
    WorkflowPosition(SubmissionStatus.PENDING_SPECIAL_APPROVER, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE),
    WorkflowPosition(SubmissionStatus.PENDING_SPECIAL_APPROVER, LegalGmStage.FINAL_APPROVAL, LoStage.POST_GM_APPROVAL),
    WorkflowPosition(SubmissionStatus.PENDING_LEGAL_GM_FINAL, LegalGmStage.FINAL_APPROVAL, LoStage.POST_GM_APPROVAL),
}

# Where a fan-out opened by each delegator sits, and where control returns
# once every special approver has approved
FAN_OUT_POSITIONS: Dict[ApproverRole, WorkflowPosition] = {
    ApproverRole.LEGAL_OFFICER: WorkflowPosition(
        SubmissionStatus.PENDING_SPECIAL_APPROVER, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE),
    ApproverRole.LEGAL_GM: WorkflowPosition(
        SubmissionStatus.PENDING_SPECIAL_APPROVER, LegalGmStage.FINAL_APPROVAL, LoStage.POST_GM_APPROVAL),
}

DELEGATION_RETURNS: Dict[ApproverRole, WorkflowPosition] = {
    ApproverRole.LEGAL_OFFICER: WorkflowPosition(
        SubmissionStatus.PENDING_LEGAL_OFFICER, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE),
    ApproverRole.LEGAL_GM: WorkflowPosition(
        SubmissionStatus.PENDING_LEGAL_GM_FINAL, LegalGmStage.FINAL_APPROVAL, LoStage.POST_GM_APPROVAL),
}

STAGE_LABELS: Dict[SubmissionStatus, str] = {
    SubmissionStatus.DRAFT: "Draft",
    SubmissionStatus.PENDING_APPROVAL: "Awaiting BUM / FBP / Cluster Head Approvals",
    SubmissionStatus.PENDING_LEGAL_GM: "Pending Legal GM Initial Review",
    SubmissionStatus.PENDING_LEGAL_GM_FINAL: "Pending Legal GM Final Approval",
    SubmissionStatus.PENDING_LEGAL_OFFICER: "Under Legal Review",
    SubmissionStatus.PENDING_SPECIAL_APPROVER: "Awaiting Special Approver",
    SubmissionStatus.SENT_BACK: "Sent Back - Awaiting Resubmission",
    SubmissionStatus.COMPLETED: "Completed",
    SubmissionStatus.CANCELLED: "Cancelled",
    SubmissionStatus.RESUBMITTED: "Resubmitted",
}


def is_valid_position(position: WorkflowPosition) -> bool:
    """Check that the stage flags agree with the status."""
    status = position.status
    if status in (SubmissionStatus.SENT_BACK, SubmissionStatus.CANCELLED, SubmissionStatus.RESUBMITTED):
        return True
    if status == SubmissionStatus.COMPLETED:
        return position.legal_gm_stage == LegalGmStage.FINAL_APPROVAL
    return position in VALID_POSITIONS


def get_transition_rule(
    status: SubmissionStatus, role: ApproverRole, action: DecisionAction
) -> Optional[TransitionRule]:
    """Get the rule for a status/role/action combination."""
    return TRANSITION_TABLE.get((status, role, action))


def can_transition(status: SubmissionStatus, role: ApproverRole, action: DecisionAction) -> bool:
    """Check if a decision is allowed from the given status."""
    return (status, role, action) in TRANSITION_TABLE


def available_actions(status: SubmissionStatus, role: ApproverRole) -> list[DecisionAction]:
    """List the actions a role may take from the given status."""
    return [action for action in DecisionAction if can_transition(status, role, action)]


def roles_for_status(status: SubmissionStatus) -> Set[ApproverRole]:
    """Roles with at least one rule from the given status."""
    return {rule.role for rule in TRANSITION_RULES if rule.from_status == status}
