"""
Unit tests for case health scoring, aggregation and next-step recommendations.
"""

import pytest

from tenant_case_guard.models.health import CaseHealthStatus, FactorStatus, IssueHealthInput
from tenant_case_guard.models.issues import Severity
from tenant_case_guard.services.case_health import (
    get_recommended_next_step,
    get_status_from_score,
    get_weakest_issue,
    score_case,
    score_issue,
)


class TestScoreIssue:
    def test_full_documentation_is_strong(self):
        """Three pieces of evidence and two communications max out the score."""
        health = score_issue(evidence_count=3, comms_count=2)
        assert health.score == 100
        assert health.status == CaseHealthStatus.STRONG

    def test_no_documentation_is_at_risk(self):
        """The base score alone is at-risk."""
        health = score_issue(evidence_count=0, comms_count=0)
        assert health.score == 40
        assert health.status == CaseHealthStatus.AT_RISK

    @pytest.mark.parametrize(
        "evidence,comms,score,status",
        [
            (1, 0, 55, CaseHealthStatus.WEAK),
            (0, 1, 55, CaseHealthStatus.WEAK),
            (2, 0, 55, CaseHealthStatus.WEAK),
            (3, 0, 70, CaseHealthStatus.ADEQUATE),
            (1, 1, 70, CaseHealthStatus.ADEQUATE),
            (0, 2, 70, CaseHealthStatus.ADEQUATE),
            (3, 1, 85, CaseHealthStatus.STRONG),
            (1, 2, 85, CaseHealthStatus.STRONG),
            (50, 50, 100, CaseHealthStatus.STRONG),
        ],
    )
    def test_score_steps(self, evidence, comms, score, status):
        health = score_issue(evidence, comms)
        assert health.score == score
        assert health.status == status

    def test_score_is_monotonic_and_bounded(self):
        for evidence in range(0, 6):
            for comms in range(0, 6):
                score = score_issue(evidence, comms).score
                assert 0 <= score <= 100
                assert score_issue(evidence + 1, comms).score >= score
                assert score_issue(evidence, comms + 1).score >= score

    def test_factors_describe_missing_documentation(self):
        health = score_issue(0, 1)
        factors = {f.name: f for f in health.factors}
        assert factors["Evidence collected"].status == FactorStatus.CRITICAL
        assert factors["Evidence collected"].max_score == 30
        assert factors["Communication logged"].status == FactorStatus.WARNING
        assert factors["Communication logged"].score == 15

    def test_status_copy(self):
        health = score_issue(0, 0)
        assert health.status_label == "At Risk"
        assert "Immediate action" in health.status_description


@pytest.mark.parametrize(
    "score,status",
    [
        (100, CaseHealthStatus.STRONG),
        (80, CaseHealthStatus.STRONG),
        (79, CaseHealthStatus.ADEQUATE),
        (60, CaseHealthStatus.ADEQUATE),
        (59, CaseHealthStatus.WEAK),
        (41, CaseHealthStatus.WEAK),
        (40, CaseHealthStatus.AT_RISK),
        (0, CaseHealthStatus.AT_RISK),
    ],
)
def test_status_bands(score, status):
    assert get_status_from_score(score) == status


class TestScoreCase:
    def test_no_active_issues_is_strong(self):
        health = score_case([])
        assert health.score == 100
        assert health.status == CaseHealthStatus.STRONG
        assert health.status_label == "No Active Issues"
        assert health.factors == []

    def test_case_is_as_weak_as_its_weakest_issue(self):
        issues = [
            IssueHealthInput(issue_id="a", evidence_count=3, comms_count=2),
            IssueHealthInput(issue_id="b", evidence_count=1, comms_count=0),
        ]
        health = score_case(issues)
        assert health.score == 55
        assert health.status == CaseHealthStatus.WEAK

    def test_case_factors_put_critical_first(self):
        issues = [
            IssueHealthInput(issue_id="a", evidence_count=1, comms_count=1),
            IssueHealthInput(issue_id="b", evidence_count=0, comms_count=1),
        ]
        factors = score_case(issues).factors
        assert [f.status for f in factors] == [FactorStatus.CRITICAL, FactorStatus.WARNING]
        assert factors[0].name == "Evidence collected"


def test_weakest_issue():
    issues = [
        IssueHealthInput(issue_id="a", evidence_count=3, comms_count=2),
        IssueHealthInput(issue_id="b", evidence_count=0, comms_count=0),
    ]
    issue, health = get_weakest_issue(issues)
    assert issue.issue_id == "b"
    assert health.score == 40
    assert get_weakest_issue([]) is None


class TestRecommendedNextStep:
    def _step(self, evidence, comms, severity=Severity.LOW, title="Broken heater"):
        issue = IssueHealthInput(
            issue_id="i1",
            title=title,
            severity=severity,
            evidence_count=evidence,
            comms_count=comms,
        )
        return get_recommended_next_step(issue, score_issue(evidence, comms))

    def test_high_severity_without_evidence_is_critical(self):
        step = self._step(0, 0, severity=Severity.HIGH)
        assert step.action == "Add Evidence Now"
        assert step.urgency == "critical"
        assert "High severity" in step.description
        assert step.href == "/evidence/upload?issueId=i1"

    def test_low_severity_without_evidence(self):
        step = self._step(0, 2)
        assert step.action == "Add Evidence"
        assert step.urgency == "high"

    def test_evidence_without_comms(self):
        step = self._step(2, 0)
        assert step.action == "Log Communication"
        assert step.href == "/comms/new?issueId=i1"

    def test_strong_issue_is_ready_for_pack(self):
        step = self._step(3, 2)
        assert step.action == "Prepare Evidence Pack"
        assert step.urgency == "low"

    def test_partial_documentation(self):
        step = self._step(1, 1)
        assert step.action == "Strengthen Case"
        assert step.urgency == "medium"

    def test_long_titles_are_truncated(self):
        step = self._step(1, 1, title="A" * 40)
        assert ("A" * 29 + "…") in step.description
