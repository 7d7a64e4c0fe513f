"""Tests for workflow error payloads."""

from legalflow.core.approval.errors import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ProcessingFailedError,
    RoleNotAssignedError,
    UnhandledRoleError,
    WorkflowError,
)


def test_codes_and_statuses():
    cases = [
        (NotFoundError("abc"), "NOT_FOUND", 404),
        (InvalidTransitionError("no"), "INVALID_TRANSITION", 409),
        (RoleNotAssignedError("no"), "ROLE_NOT_ASSIGNED", 409),
        (UnhandledRoleError("COURT_OFFICER"), "UNHANDLED_ROLE", 409),
        (InvalidInputError("no"), "INVALID_INPUT", 422),
        (ProcessingFailedError(), "PROCESSING_FAILED", 500),
    ]
    for error, code, http_status in cases:
        assert isinstance(error, WorkflowError)
        assert error.code == code
        assert error.http_status == http_status


def test_to_dict_drops_empty_details():
    error = InvalidTransitionError("BUM cannot act", status="PENDING_LEGAL_GM", role="BUM")

    assert error.to_dict() == {
        "error": "BUM cannot act",
        "code": "INVALID_TRANSITION",
        "details": {"status": "PENDING_LEGAL_GM", "role": "BUM"},
    }


def test_processing_failed_message_is_generic():
    assert str(ProcessingFailedError()) == "Failed to process approval"
    assert ProcessingFailedError().details == {}


def test_not_found_carries_id():
    error = NotFoundError("1234")
    assert error.details == {"submission_id": "1234"}
    assert "1234" in error.message
