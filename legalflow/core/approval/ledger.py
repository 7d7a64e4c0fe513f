"""Decision ledgers attached to a submission.

Both ledgers are unanimous gates with veto: an APPROVED advances the
submission only once every record in the ledger is APPROVED, while a single
SENT_BACK or CANCELLED ends the stage whatever the peers decided. Vetoes do
not touch peer records; clearing them is the job of resubmission.
"""

from datetime import datetime
from typing import Iterable, Optional

from legalflow.db.models import ApprovalRecord, SpecialApproverRecord

from .errors import InvalidInputError, InvalidTransitionError, RoleNotAssignedError
from .states import ApproverRole, DecisionAction, RecordStatus


def _stamp(record, action: DecisionAction, comment: Optional[str], now: datetime) -> None:
    record.status = RecordStatus(action.value).value
    record.comment = comment or None
    record.action_date = now


def _all_approved(records: Iterable) -> bool:
    records = list(records)
    return bool(records) and all(r.status == RecordStatus.APPROVED.value for r in records)


class FirstLevelLedger:
    """The fixed per-role records (BUM / FBP / Cluster Head) of one submission."""

    def __init__(self, submission):
        self.submission = submission

    @property
    def records(self) -> list[ApprovalRecord]:
        return list(self.submission.approvals)

    def find(self, role: ApproverRole) -> Optional[ApprovalRecord]:
        for record in self.submission.approvals:
            if record.role == role.value:
                return record
        return None

    def seed(self, approvers: dict) -> list[ApprovalRecord]:
        """Create one PENDING record per role.

        Args:
            approvers: Mapping of role value to ``{"name": ..., "email": ...}``
        """
        if self.submission.approvals:
            raise InvalidTransitionError(
                "First-level ledger is already seeded",
                status=self.submission.status,
            )
        created = []
        for role, who in approvers.items():
            who = who or {}
            record = ApprovalRecord(
                role=ApproverRole(role).value,
                approver_name=who.get("name") or "",
                approver_email=who.get("email") or "",
                status=RecordStatus.PENDING.value,
            )
            self.submission.approvals.append(record)
            created.append(record)
        return created

    def record_decision(
        self,
        role: ApproverRole,
        action: DecisionAction,
        *,
        actor_name: Optional[str],
        actor_email: Optional[str],
        comment: Optional[str],
        now: datetime,
    ) -> ApprovalRecord:
        """Stamp the role's record with the decision.

        Raises:
            RoleNotAssignedError: If the role has no record on this submission
            InvalidTransitionError: If the record was already decided
        """
        record = self.find(role)
        if record is None:
            raise RoleNotAssignedError(
                f"Role {role.value} is not an approver on this submission",
                role=role.value,
            )
        if record.status != RecordStatus.PENDING.value:
            raise InvalidTransitionError(
                f"{role.value} has already decided ({record.status})",
                status=self.submission.status,
                role=role.value,
                action=action.value,
            )
        _stamp(record, action, comment, now)
        if actor_name:
            record.approver_name = actor_name
        if actor_email:
            record.approver_email = actor_email
        return record

    def is_unanimous(self) -> bool:
        return _all_approved(self.submission.approvals)


class SpecialApproverLedger:
    """Special approver records, created on demand and matched by email."""

    def __init__(self, submission):
        self.submission = submission

    @property
    def records(self) -> list[SpecialApproverRecord]:
        return list(self.submission.special_approvers)

    def pending_for(self, email: str) -> Optional[SpecialApproverRecord]:
        key = _email_key(email)
        for record in self.submission.special_approvers:
            if _email_key(record.approver_email) == key and record.status == RecordStatus.PENDING.value:
                return record
        return None

    def open_delegator(self) -> Optional[ApproverRole]:
        """Role that requested the approvers still pending, if any."""
        for record in self.submission.special_approvers:
            if record.status == RecordStatus.PENDING.value:
                return ApproverRole(record.assigned_by)
        return None

    def assign(
        self,
        email: Optional[str],
        name: Optional[str],
        *,
        assigned_by: ApproverRole = ApproverRole.LEGAL_OFFICER,
    ) -> SpecialApproverRecord:
        """Add one more required signer.

        Raises:
            InvalidInputError: If the email is missing or already awaiting a decision
        """
        if not email or not email.strip():
            raise InvalidInputError("A special approver email is required", field="special_approver_email")
        if self.pending_for(email) is not None:
            raise InvalidInputError(
                f"{email} is already assigned and has not decided yet",
                field="special_approver_email",
            )
        record = SpecialApproverRecord(
            approver_email=email.strip(),
            approver_name=(name or "").strip(),
            department="Special Approver",
            assigned_by=assigned_by.value,
            status=RecordStatus.PENDING.value,
        )
        self.submission.special_approvers.append(record)
        return record

    def record_decision(
        self,
        email: Optional[str],
        action: DecisionAction,
        *,
        comment: Optional[str],
        now: datetime,
    ) -> SpecialApproverRecord:
        """Stamp the approver's pending record with the decision.

        Raises:
            InvalidInputError: If no email was given
            RoleNotAssignedError: If the email has no record on this submission
            InvalidTransitionError: If the email's records are all decided
        """
        if not email:
            raise InvalidInputError("approver_email is required for special approver decisions",
                                    field="approver_email")
        record = self.pending_for(email)
        if record is None:
            known = any(_email_key(r.approver_email) == _email_key(email) for r in self.submission.special_approvers)
            if known:
                raise InvalidTransitionError(
                    f"Special approver {email} has already decided",
                    status=self.submission.status,
                    role=ApproverRole.SPECIAL_APPROVER.value,
                    action=action.value,
                )
            raise RoleNotAssignedError(
                f"{email} is not a special approver on this submission",
                role=ApproverRole.SPECIAL_APPROVER.value,
                approver=email,
            )
        _stamp(record, action, comment, now)
        return record

    def is_unanimous(self) -> bool:
        return _all_approved(self.submission.special_approvers)


def _email_key(email: Optional[str]) -> str:
    return (email or "").strip().lower()
