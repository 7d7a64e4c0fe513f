"""Tests for read-side reporting."""

from datetime import datetime, timedelta

from legalflow.common.forms import default_forms
from legalflow.core.approval.reporting import (
    compute_stats,
    days_overdue,
    effective_due_date,
    is_overdue,
    stage_label,
)

from tests.factories import build_submission

CREATED = datetime(2026, 3, 1, 10, 0, 0)


class TestOverdue:

    def test_not_overdue_before_due_date(self):
        sub = build_submission(status="PENDING_LEGAL_GM", created_at=CREATED)
        assert not is_overdue(sub, CREATED + timedelta(days=13))

    def test_overdue_after_due_date(self):
        sub = build_submission(status="PENDING_LEGAL_GM", created_at=CREATED)
        now = CREATED + timedelta(days=17)

        assert is_overdue(sub, now)
        assert days_overdue(sub, now) == 3

    def test_terminal_submissions_are_never_overdue(self):
        for status in ("COMPLETED", "CANCELLED", "SENT_BACK", "RESUBMITTED"):
            sub = build_submission(status=status, created_at=CREATED)
            assert not is_overdue(sub, CREATED + timedelta(days=90))

    def test_due_date_falls_back_to_sla(self):
        sub = build_submission(status="PENDING_APPROVAL", created_at=CREATED)
        sub.due_date = None

        assert effective_due_date(sub, 7) == CREATED + timedelta(days=7)
        assert is_overdue(sub, CREATED + timedelta(days=8), sla_days=7)

    def test_check_does_not_mutate(self):
        sub = build_submission(status="PENDING_APPROVAL", created_at=CREATED)
        is_overdue(sub, CREATED + timedelta(days=30))
        assert sub.status == "PENDING_APPROVAL"


def test_stage_label():
    assert stage_label("PENDING_LEGAL_GM_FINAL") == "Pending Legal GM Final Approval"
    assert stage_label("SOMETHING_ELSE") == "SOMETHING_ELSE"


class TestComputeStats:

    def setup_method(self):
        self.forms = default_forms()
        self.now = CREATED + timedelta(days=20)
        self.submissions = [
            build_submission(status="PENDING_APPROVAL", form_id=1, created_at=CREATED),
            build_submission(status="PENDING_LEGAL_OFFICER", form_id=1, created_at=self.now - timedelta(days=2),
                             assigned_legal_officer="lo1@example.com"),
            build_submission(status="SENT_BACK", form_id=2, created_at=self.now - timedelta(days=1)),
            build_submission(status="COMPLETED", form_id=2, created_at=CREATED,
                             updated_at=CREATED + timedelta(days=5), assigned_legal_officer="lo1@example.com"),
            build_submission(status="COMPLETED", form_id=2, created_at=CREATED,
                             updated_at=CREATED + timedelta(days=19), assigned_legal_officer="lo2@example.com"),
            build_submission(status="DRAFT", form_id=3, created_at=CREATED),
        ]

    def test_stats_cards_cover_every_form(self):
        stats = compute_stats(self.submissions, self.forms, self.now)
        cards = {c["form_id"]: c["count"] for c in stats["stats_cards"]}

        assert len(cards) == 10
        assert cards[1] == 2
        assert cards[2] == 3
        assert cards[3] == 1
        assert cards[4] == 0

    def test_ongoing_tasks(self):
        stats = compute_stats(self.submissions, self.forms, self.now)
        tasks = {t["stage"]: t for t in stats["ongoing_tasks"]}

        assert set(tasks) == {
            "Awaiting BUM / FBP / Cluster Head Approvals",
            "Under Legal Review",
            "Sent Back - Awaiting Resubmission",
        }
        assert tasks["Awaiting BUM / FBP / Cluster Head Approvals"]["filter"] == "LATE"
        assert tasks["Awaiting BUM / FBP / Cluster Head Approvals"]["days_overdue"] == 6
        assert tasks["Under Legal Review"]["filter"] == "ON_TRACK"
        assert tasks["Sent Back - Awaiting Resubmission"]["filter"] == "LATE"

    def test_lo_stats(self):
        stats = compute_stats(self.submissions, self.forms, self.now)

        assert stats["lo_stats"] == [
            {"officer": "lo1@example.com", "on_track": 1, "late": 0, "completed": 1},
            {"officer": "lo2@example.com", "on_track": 0, "late": 0, "completed": 1},
        ]

    def test_completed_early_and_late(self):
        stats = compute_stats(self.submissions, self.forms, self.now)

        assert stats["completed_counts"] == {2: 2}
        assert stats["early_count"] == {2: 1}
        assert stats["late_count"] == {2: 1}
