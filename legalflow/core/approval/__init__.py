"""Approval workflow module for LegalFlow.

Implements the submission approval state machine, its decision ledgers and
the transactional service around them.
"""

from .states import SubmissionStatus, ApproverRole, DecisionAction, TRANSITION_TABLE
from .errors import (
    WorkflowError,
    NotFoundError,
    InvalidTransitionError,
    RoleNotAssignedError,
    UnhandledRoleError,
    InvalidInputError,
    ProcessingFailedError,
)
from .machine import Decision, SubmissionStateMachine
from .service import ApprovalService

__all__ = [
    "SubmissionStatus",
    "ApproverRole",
    "DecisionAction",
    "TRANSITION_TABLE",
    "WorkflowError",
    "NotFoundError",
    "InvalidTransitionError",
    "RoleNotAssignedError",
    "UnhandledRoleError",
    "InvalidInputError",
    "ProcessingFailedError",
    "Decision",
    "SubmissionStateMachine",
    "ApprovalService",
]
