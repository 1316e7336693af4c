"""
Unit tests for evidence pack readiness scoring.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tenant_case_guard.models.issues import (
    CommsLogEntry,
    EvidenceItem,
    Issue,
    IssueStatus,
    Severity,
)
from tenant_case_guard.models.pack import PackReadinessStatus, PackWarning
from tenant_case_guard.services.pack_readiness import (
    calculate_pack_readiness,
    get_readiness_status,
)

NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


def _issue(issue_id, severity=Severity.LOW, status=IssueStatus.OPEN, updated_days_ago=1, title=None):
    return Issue(
        id=issue_id,
        user_id="tenant-1",
        title=title or f"Issue {issue_id}",
        status=status,
        severity=severity,
        created_at=NOW - timedelta(days=60),
        updated_at=NOW - timedelta(days=updated_days_ago),
    )


def _evidence(issue_id, n=1):
    return [
        EvidenceItem(id=f"{issue_id}-ev-{k}", issue_id=issue_id, type="photo", occurred_at=NOW)
        for k in range(n)
    ]


def _comms(issue_id, n=1):
    return [CommsLogEntry(id=f"{issue_id}-cm-{k}", issue_id=issue_id, occurred_at=NOW) for k in range(n)]


def _readiness(issues, selected, evidence=(), comms=(), **kwargs):
    return calculate_pack_readiness(issues, selected, evidence, comms, now=NOW, **kwargs)


class TestCoverage:
    def test_fully_documented_pack_is_strong(self):
        issues = [_issue("a"), _issue("b")]
        result = _readiness(
            issues, {"a", "b"}, _evidence("a") + _evidence("b"), _comms("a") + _comms("b")
        )
        assert result.score == 100
        assert result.status == PackReadinessStatus.STRONG
        assert result.status_label == "Strong"
        assert result.warnings == []
        assert result.requires_confirmation is False
        assert result.coverage.model_dump() == {
            "included_issues": 2,
            "excluded_issues": 0,
            "total_open_issues": 2,
        }

    def test_no_open_issues(self):
        result = _readiness([_issue("r", status=IssueStatus.RESOLVED)], set())
        assert result.score == 100
        assert result.coverage.total_open_issues == 0
        assert result.requires_confirmation is False

    def test_resolved_and_closed_issues_are_not_counted(self):
        issues = [
            _issue("a"),
            _issue("r1", status=IssueStatus.RESOLVED),
            _issue("r2", status=IssueStatus.CLOSED, severity=Severity.URGENT),
        ]
        result = _readiness(issues, {"a", "r1"}, _evidence("a"), _comms("a"))
        assert result.coverage.model_dump() == {
            "included_issues": 1,
            "excluded_issues": 0,
            "total_open_issues": 1,
        }
        assert result.warnings == []


class TestExcludedIssues:
    def test_excluded_high_severity_issue_is_critical(self):
        issues = [_issue("a"), _issue("b", severity=Severity.HIGH, title="Mould in bedroom")]
        result = _readiness(issues, {"a"}, _evidence("a"), _comms("a"))

        # 15 for half coverage, 25 for the excluded High issue
        assert result.score == 60
        assert result.status == PackReadinessStatus.WEAK
        assert result.requires_confirmation is True
        (warning,) = result.warnings
        assert warning.type == "critical"
        assert warning.title == "High-Severity Issue Excluded"
        assert warning.issue_id == "b"
        assert warning.message.startswith('"Mould in bedroom" is High severity')

    def test_excluded_issue_with_evidence(self):
        issues = [_issue("a"), _issue("b")]
        result = _readiness(issues, {"a"}, _evidence("a") + _evidence("b", 2), _comms("a"))
        assert result.score == 75
        assert result.status == PackReadinessStatus.MODERATE
        assert result.requires_confirmation is True
        (warning,) = result.warnings
        assert warning.title == "Issue with Evidence Excluded"
        assert "has 2 evidence items but will NOT be included" in warning.message

    def test_excluded_issue_with_comms_only(self):
        issues = [_issue("a"), _issue("b")]
        result = _readiness(issues, {"a"}, _evidence("a"), _comms("a") + _comms("b"))
        assert result.score == 85
        assert result.status == PackReadinessStatus.STRONG
        # Leaving an open issue out always needs confirmation
        assert result.requires_confirmation is True
        (warning,) = result.warnings
        assert warning.title == "Issue with Communications Excluded"
        assert "has 1 logged communication but" in warning.message

    def test_one_warning_per_excluded_issue(self):
        issues = [_issue("a"), _issue("b", severity=Severity.URGENT)]
        result = _readiness(
            issues, {"a"}, _evidence("a") + _evidence("b"), _comms("a") + _comms("b")
        )
        assert [w.title for w in result.warnings] == ["High-Severity Issue Excluded"]
        assert result.score == 60

    def test_severity_override_is_used(self):
        """An issue stored Medium but shown High counts as high severity."""
        issues = [_issue("a"), _issue("b", severity=Severity.MEDIUM)]
        without = _readiness(issues, {"a"}, _evidence("a"), _comms("a"))
        with_display = _readiness(
            issues, {"a"}, _evidence("a"), _comms("a"), severities={"b": Severity.HIGH}
        )
        assert [w.type for w in without.warnings] == []
        assert [w.type for w in with_display.warnings] == ["critical"]

    def test_high_risk_when_critical_and_low_score(self):
        issues = [_issue("a")] + [_issue(f"h{k}", severity=Severity.HIGH) for k in range(3)]
        result = _readiness(issues, {"a"}, _evidence("a"), _comms("a"))
        # 22.5 rounds up to 23 for a quarter coverage, then 3 x 25
        assert result.score == 2
        assert result.status == PackReadinessStatus.HIGH_RISK
        assert result.status_label == "High Risk"
        assert result.requires_confirmation is True

    def test_long_titles_are_truncated(self):
        title = "Water coming through the ceiling above the kitchen sink"
        issues = [_issue("a"), _issue("b", severity=Severity.HIGH, title=title)]
        (warning,) = _readiness(issues, {"a"}, _evidence("a"), _comms("a")).warnings
        assert warning.message.startswith(f'"{title[:39]}…"')
        assert warning.issue_title == title


class TestIncludedIssues:
    def test_included_issue_without_evidence(self):
        result = _readiness([_issue("a")], {"a"})
        assert result.score == 85
        assert [w.title for w in result.warnings] == ["Issue Lacks Evidence"]
        assert result.requires_confirmation is False

    def test_included_issue_without_comms(self):
        result = _readiness([_issue("a")], {"a"}, _evidence("a"))
        assert result.score == 95
        (warning,) = result.warnings
        assert warning.type == "info"
        assert warning.title == "No Communications Logged"

    def test_stale_issues_are_summarised(self):
        issues = [_issue("a", updated_days_ago=20), _issue("b", updated_days_ago=15), _issue("c")]
        evidence = _evidence("a") + _evidence("b") + _evidence("c")
        comms = _comms("a") + _comms("b") + _comms("c")
        result = _readiness(issues, {"a", "b", "c"}, evidence, comms)
        assert result.score == 100
        (warning,) = result.warnings
        assert warning.title == "Stale Documentation"
        assert warning.message == "2 issues included have not been updated in over 14 days."
        assert warning.issue_id is None

    def test_fourteen_days_is_not_stale(self):
        result = _readiness([_issue("a", updated_days_ago=14)], {"a"}, _evidence("a"), _comms("a"))
        assert result.warnings == []


@pytest.mark.parametrize(
    "score,critical,expected",
    [
        (85, False, PackReadinessStatus.STRONG),
        (80, False, PackReadinessStatus.STRONG),
        (65, False, PackReadinessStatus.MODERATE),
        (30, False, PackReadinessStatus.WEAK),
        (85, True, PackReadinessStatus.WEAK),
        (40, True, PackReadinessStatus.WEAK),
        (39, True, PackReadinessStatus.HIGH_RISK),
    ],
)
def test_readiness_status_bands(score, critical, expected):
    warnings = [PackWarning(type="critical", title="t", message="m")] if critical else []
    assert get_readiness_status(score, warnings) == expected
