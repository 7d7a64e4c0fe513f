"""Failures raised by the approval workflow.

Every error carries a stable ``code`` and the HTTP status the API layer maps
it to, so callers can render a message without parsing text.
"""

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base class for workflow failures."""

    code = "WORKFLOW_ERROR"
    http_status = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFoundError(WorkflowError):
    """Raised when a submission id is unknown."""

    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, submission_id: Any):
        super().__init__(f"Submission {submission_id} not found", submission_id=str(submission_id))
        self.submission_id = submission_id


class InvalidTransitionError(WorkflowError):
    """Raised when a decision is not allowed from the current status or stage."""

    code = "INVALID_TRANSITION"
    http_status = 409

    def __init__(
        self,
        message: str,
        *,
        status: Optional[str] = None,
        role: Optional[str] = None,
        action: Optional[str] = None,
    ):
        super().__init__(message, status=status, role=role, action=action)
        self.status = status
        self.role = role
        self.action = action


class RoleNotAssignedError(WorkflowError):
    """Raised when no ledger record exists for the acting role or approver."""

    code = "ROLE_NOT_ASSIGNED"
    http_status = 409

    def __init__(self, message: str, *, role: Optional[str] = None, approver: Optional[str] = None):
        super().__init__(message, role=role, approver=approver)
        self.role = role
        self.approver = approver


class UnhandledRoleError(WorkflowError):
    """Raised for a known role whose decisions the engine does not route."""

    code = "UNHANDLED_ROLE"
    http_status = 409

    def __init__(self, role: str):
        super().__init__(f"Decisions for role {role} are not handled by the approval engine", role=role)
        self.role = role


class InvalidInputError(WorkflowError):
    """Raised when required companion data is missing or malformed."""

    code = "INVALID_INPUT"
    http_status = 422

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.field = field


class ProcessingFailedError(WorkflowError):
    """Raised when persistence fails; the message never carries internals."""

    code = "PROCESSING_FAILED"
    http_status = 500

    def __init__(self, message: str = "Failed to process approval"):
        super().__init__(message)
