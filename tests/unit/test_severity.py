"""
Unit tests for severity classification and age escalation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tenant_case_guard.models.issues import IssueStatus, Severity
from tenant_case_guard.services.severity import (
    classify,
    days_between,
    escalate_by_age,
    get_display_severity,
    severity_rank,
)

NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


class TestClassify:
    def test_gas_leak_is_urgent(self):
        """A gas leak in the title is an immediate hazard."""
        assert classify("Gas leak smell in kitchen", "") == Severity.URGENT

    @pytest.mark.parametrize(
        "title,description,expected",
        [
            ("Mould in bathroom", None, Severity.HIGH),
            ("Dripping tap", None, Severity.MEDIUM),
            ("Scuff on skirting board", None, Severity.LOW),
            ("Kitchen problem", "There is smoke coming from the oven", Severity.URGENT),
            ("FIRE ALARM BEEPING", None, Severity.URGENT),
        ],
    )
    def test_keyword_sets(self, title, description, expected):
        assert classify(title, description) == expected

    def test_higher_set_wins_over_lower(self):
        """'leak' (High) is checked before 'tap' (Medium)."""
        assert classify("Leaking tap under sink") == Severity.HIGH

    def test_unmatched_text_is_low_not_error(self):
        assert classify("") == Severity.LOW
        assert classify("General question about my tenancy", None) == Severity.LOW


class TestEscalateByAge:
    def test_low_escalates_to_medium_after_thirty_days(self):
        """A Low issue open 35 days is shown as Medium."""
        assert escalate_by_age(Severity.LOW, 35) == Severity.MEDIUM

    @pytest.mark.parametrize(
        "severity,threshold,escalated",
        [
            (Severity.HIGH, 14, Severity.URGENT),
            (Severity.MEDIUM, 21, Severity.HIGH),
            (Severity.LOW, 30, Severity.MEDIUM),
        ],
    )
    def test_threshold_is_strictly_greater_than(self, severity, threshold, escalated):
        assert escalate_by_age(severity, threshold) == severity
        assert escalate_by_age(severity, threshold + 1) == escalated

    def test_escalates_one_step_only(self):
        assert escalate_by_age(Severity.LOW, 365) == Severity.MEDIUM

    def test_urgent_stays_urgent(self):
        assert escalate_by_age(Severity.URGENT, 0) == Severity.URGENT
        assert escalate_by_age(Severity.URGENT, 1000) == Severity.URGENT

    def test_never_reduces(self):
        for severity in Severity:
            for days in range(0, 60):
                assert severity_rank(escalate_by_age(severity, days)) >= severity_rank(severity)

    @pytest.mark.parametrize("severity", list(Severity))
    def test_monotonic_in_age(self, severity):
        """An older issue is never shown as less severe than a younger one."""
        ranks = [severity_rank(escalate_by_age(severity, days)) for days in range(0, 120)]
        for d1 in range(len(ranks)):
            for d2 in range(d1, len(ranks)):
                assert ranks[d2] >= ranks[d1], (severity, d1, d2)


class TestDisplaySeverity:
    def test_open_issue_is_escalated(self):
        created = NOW - timedelta(days=35)
        assert get_display_severity(Severity.LOW, created, IssueStatus.OPEN, NOW) == Severity.MEDIUM

    def test_in_progress_issue_is_escalated(self):
        created = NOW - timedelta(days=20)
        assert (
            get_display_severity(Severity.HIGH, created, IssueStatus.IN_PROGRESS, NOW)
            == Severity.URGENT
        )

    @pytest.mark.parametrize("status", [IssueStatus.RESOLVED, IssueStatus.CLOSED, "resolved"])
    def test_resolved_and_closed_are_frozen(self, status):
        created = NOW - timedelta(days=400)
        assert get_display_severity(Severity.LOW, created, status, NOW) == Severity.LOW

    @pytest.mark.parametrize("severity", list(Severity))
    def test_open_issue_never_drops_day_to_day(self, severity):
        created = NOW - timedelta(hours=5)
        previous = severity_rank(severity)
        for day in range(0, 90):
            shown = get_display_severity(severity, created, IssueStatus.OPEN, NOW + timedelta(days=day))
            assert severity_rank(shown) >= previous, (severity, day)
            previous = severity_rank(shown)

    def test_naive_created_at_is_treated_as_utc(self):
        created = datetime(2025, 1, 1, 12, 0)
        assert get_display_severity(Severity.LOW, created, IssueStatus.OPEN, NOW) == Severity.MEDIUM


def test_days_between_floors_partial_days():
    start = NOW - timedelta(days=1, hours=23)
    assert days_between(start, NOW) == 1
    assert days_between(NOW, NOW) == 0
