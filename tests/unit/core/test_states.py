"""Tests for workflow state and transition definitions."""

import pytest

from legalflow.core.approval.states import (
    ACTIVE_STATES,
    ApproverRole,
    DecisionAction,
    DELEGATION_RETURNS,
    DELEGATORS,
    FAN_OUT_POSITIONS,
    FIRST_LEVEL_ROLES,
    Gate,
    LegalGmStage,
    LoStage,
    STAGE_LABELS,
    SubmissionStatus,
    TERMINAL_STATES,
    TRANSITION_RULES,
    TRANSITION_TABLE,
    WorkflowPosition,
    available_actions,
    can_transition,
    get_transition_rule,
    is_valid_position,
    roles_for_status,
)


class TestSubmissionStates:
    """Test status definitions."""

    def test_all_states_defined(self):
        expected = [
            "DRAFT", "PENDING_APPROVAL", "PENDING_LEGAL_GM", "PENDING_LEGAL_OFFICER",
            "PENDING_SPECIAL_APPROVER", "PENDING_LEGAL_GM_FINAL",
            "SENT_BACK", "COMPLETED", "CANCELLED", "RESUBMITTED",
        ]
        assert sorted(s.value for s in SubmissionStatus) == sorted(expected)

    def test_terminal_states(self):
        assert SubmissionStatus.COMPLETED in TERMINAL_STATES
        assert SubmissionStatus.CANCELLED in TERMINAL_STATES
        assert SubmissionStatus.SENT_BACK in TERMINAL_STATES
        assert SubmissionStatus.RESUBMITTED in TERMINAL_STATES
        assert SubmissionStatus.PENDING_APPROVAL not in TERMINAL_STATES

    def test_active_and_terminal_do_not_overlap(self):
        assert not ACTIVE_STATES & TERMINAL_STATES
        assert SubmissionStatus.DRAFT not in ACTIVE_STATES

    def test_every_status_has_a_label(self):
        for status in SubmissionStatus:
            assert STAGE_LABELS[status]

    def test_no_rule_leaves_a_terminal_state(self):
        for rule in TRANSITION_RULES:
            assert rule.from_status not in TERMINAL_STATES


class TestTransitions:
    """Test the transition table."""

    @pytest.mark.parametrize("role", FIRST_LEVEL_ROLES)
    def test_first_level_approval_is_gated(self, role):
        rule = get_transition_rule(SubmissionStatus.PENDING_APPROVAL, role, DecisionAction.APPROVED)
        assert rule.to_status == SubmissionStatus.PENDING_LEGAL_GM
        assert rule.gate == Gate.FIRST_LEVEL

    @pytest.mark.parametrize("role", FIRST_LEVEL_ROLES)
    def test_first_level_vetoes(self, role):
        assert get_transition_rule(
            SubmissionStatus.PENDING_APPROVAL, role, DecisionAction.SENT_BACK
        ).to_status == SubmissionStatus.SENT_BACK
        assert get_transition_rule(
            SubmissionStatus.PENDING_APPROVAL, role, DecisionAction.CANCELLED
        ).to_status == SubmissionStatus.CANCELLED

    def test_legal_gm_initial_review_requires_assignee(self):
        for action in (DecisionAction.APPROVED, DecisionAction.SUBMIT_TO_LEGAL_OFFICER):
            rule = get_transition_rule(SubmissionStatus.PENDING_LEGAL_GM, ApproverRole.LEGAL_GM, action)
            assert rule.to_status == SubmissionStatus.PENDING_LEGAL_OFFICER
            assert rule.requires_assignee

    def test_legal_gm_final_approval_completes(self):
        rule = get_transition_rule(
            SubmissionStatus.PENDING_LEGAL_GM_FINAL, ApproverRole.LEGAL_GM, DecisionAction.APPROVED
        )
        assert rule.to_status == SubmissionStatus.COMPLETED
        assert not rule.requires_assignee

    def test_legal_officer_actions(self):
        assert set(available_actions(SubmissionStatus.PENDING_LEGAL_OFFICER, ApproverRole.LEGAL_OFFICER)) == {
            DecisionAction.SUBMIT_TO_LEGAL_GM,
            DecisionAction.ASSIGN_SPECIAL_APPROVER,
            DecisionAction.RETURNED_TO_INITIATOR,
            DecisionAction.SENT_BACK,
            DecisionAction.CANCELLED,
        }

    def test_officer_can_add_signers_during_fan_out(self):
        assert can_transition(
            SubmissionStatus.PENDING_SPECIAL_APPROVER,
            ApproverRole.LEGAL_OFFICER,
            DecisionAction.ASSIGN_SPECIAL_APPROVER,
        )
        assert not can_transition(
            SubmissionStatus.PENDING_SPECIAL_APPROVER,
            ApproverRole.LEGAL_OFFICER,
            DecisionAction.SUBMIT_TO_LEGAL_GM,
        )

    def test_legal_gm_delegates_only_at_final_approval(self):
        rule = get_transition_rule(
            SubmissionStatus.PENDING_LEGAL_GM_FINAL, ApproverRole.LEGAL_GM, DecisionAction.ASSIGN_SPECIAL_APPROVER
        )
        assert rule.to_status == SubmissionStatus.PENDING_SPECIAL_APPROVER
        assert rule.requires_special_approver
        assert not can_transition(
            SubmissionStatus.PENDING_LEGAL_GM, ApproverRole.LEGAL_GM, DecisionAction.ASSIGN_SPECIAL_APPROVER
        )

    @pytest.mark.parametrize("role", DELEGATORS)
    def test_delegators_can_extend_a_fan_out(self, role):
        assert can_transition(SubmissionStatus.PENDING_SPECIAL_APPROVER, role, DecisionAction.ASSIGN_SPECIAL_APPROVER)

    def test_cancellation_matrix(self):
        cancellers = {
            SubmissionStatus.PENDING_APPROVAL: set(FIRST_LEVEL_ROLES),
            SubmissionStatus.PENDING_LEGAL_GM: {ApproverRole.LEGAL_GM},
            SubmissionStatus.PENDING_LEGAL_OFFICER: {ApproverRole.LEGAL_GM, ApproverRole.LEGAL_OFFICER},
            SubmissionStatus.PENDING_SPECIAL_APPROVER: {
                ApproverRole.LEGAL_GM, ApproverRole.LEGAL_OFFICER, ApproverRole.SPECIAL_APPROVER,
            },
            SubmissionStatus.PENDING_LEGAL_GM_FINAL: {ApproverRole.LEGAL_GM, ApproverRole.LEGAL_OFFICER},
        }
        assert set(cancellers) == ACTIVE_STATES
        for status, roles in cancellers.items():
            allowed = {role for role in ApproverRole if can_transition(status, role, DecisionAction.CANCELLED)}
            assert allowed == roles, status

    def test_special_approver_gate(self):
        rule = get_transition_rule(
            SubmissionStatus.PENDING_SPECIAL_APPROVER, ApproverRole.SPECIAL_APPROVER, DecisionAction.APPROVED
        )
        assert rule.to_status == SubmissionStatus.PENDING_LEGAL_OFFICER
        assert rule.gate == Gate.SPECIAL_APPROVERS

    def test_roles_cannot_act_out_of_turn(self):
        assert not can_transition(SubmissionStatus.PENDING_APPROVAL, ApproverRole.LEGAL_GM, DecisionAction.APPROVED)
        assert not can_transition(SubmissionStatus.PENDING_LEGAL_GM, ApproverRole.BUM, DecisionAction.APPROVED)
        assert not can_transition(
            SubmissionStatus.PENDING_LEGAL_GM_FINAL, ApproverRole.LEGAL_GM, DecisionAction.SUBMIT_TO_LEGAL_OFFICER
        )

    def test_court_officer_has_no_rules(self):
        for status in SubmissionStatus:
            assert ApproverRole.COURT_OFFICER not in roles_for_status(status)

    def test_table_matches_rules(self):
        assert len(TRANSITION_TABLE) == len(TRANSITION_RULES)


class TestPositions:
    """Test stage flag consistency."""

    def test_valid_positions(self):
        assert is_valid_position(WorkflowPosition(SubmissionStatus.PENDING_APPROVAL))
        assert is_valid_position(
            WorkflowPosition(SubmissionStatus.PENDING_LEGAL_OFFICER, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE)
        )
        assert is_valid_position(
            WorkflowPosition(SubmissionStatus.COMPLETED, LegalGmStage.FINAL_APPROVAL, LoStage.POST_GM_APPROVAL)
        )

    def test_invalid_positions(self):
        assert not is_valid_position(WorkflowPosition(SubmissionStatus.PENDING_LEGAL_GM))
        assert not is_valid_position(
            WorkflowPosition(SubmissionStatus.PENDING_LEGAL_GM_FINAL, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE)
        )
        assert not is_valid_position(
            WorkflowPosition(SubmissionStatus.PENDING_APPROVAL, LegalGmStage.INITIAL_REVIEW)
        )
        assert not is_valid_position(
            WorkflowPosition(SubmissionStatus.COMPLETED, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE)
        )

    def test_fan_out_positions_are_valid(self):
        for role in DELEGATORS:
            assert is_valid_position(FAN_OUT_POSITIONS[role])
            assert is_valid_position(DELEGATION_RETURNS[role])
        assert DELEGATION_RETURNS[ApproverRole.LEGAL_GM].status == SubmissionStatus.PENDING_LEGAL_GM_FINAL
        assert DELEGATION_RETURNS[ApproverRole.LEGAL_OFFICER].status == SubmissionStatus.PENDING_LEGAL_OFFICER

    def test_vetoed_positions_keep_their_flags(self):
        assert is_valid_position(
            WorkflowPosition(SubmissionStatus.SENT_BACK, LegalGmStage.INITIAL_REVIEW, LoStage.ACTIVE)
        )
