"""Database models for LegalFlow."""

from legalflow.db.models.submission import Submission, SubmissionParty, SubmissionDocument
from legalflow.db.models.approval import ApprovalRecord, SpecialApproverRecord
from legalflow.db.models.comment import SubmissionComment
from legalflow.db.models.event import SubmissionEvent

__all__ = [
    "Submission",
    "SubmissionParty",
    "SubmissionDocument",
    "ApprovalRecord",
    "SpecialApproverRecord",
    "SubmissionComment",
    "SubmissionEvent",
]
