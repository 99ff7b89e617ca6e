"""Tests for decision analytics over audit records."""

from datetime import datetime, timedelta, timezone

from helm_ai.data.validators import parse_reasoning_response
from helm_ai.governance import analytics
from helm_ai.governance.schemas import AuditRecord, AuditStatus

from conftest import make_reasoning


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _decision(verdict="approve", risk=30, moat="medium", cost=0.05, hours_ago=0, status=None):
    response = parse_reasoning_response(
        make_reasoning(decision=verdict, risk_score=risk, moat_value=moat, cost_estimate_usd=cost)
    )
    return AuditRecord(
        request_id=f"req-{verdict}-{risk}-{hours_ago}",
        actor="cto",
        timestamp=NOW - timedelta(hours=hours_ago),
        reasoning_response=response,
        decision_text=response.decision,
        risk_score=response.risk_score,
        moat_value=response.moat_value,
        status=status or AuditStatus.APPROVED,
        processing_time_ms=20,
        signature="sig",
    )


def _override_grant():
    return AuditRecord(
        request_id="grant",
        actor="ceo",
        timestamp=NOW,
        status=AuditStatus.HUMAN_OVERRIDE_GRANTED,
        signature="sig",
    )


class TestDecisionFeed:
    """Tests for the live decision feed."""

    def test_metrics(self):
        records = [
            _decision("approve", risk=20, moat="high"),
            _decision("revise", risk=70, moat="medium"),
            _decision("reject", risk=90, moat="low", status=AuditStatus.BLOCKED),
            _override_grant(),
        ]

        feed = analytics.decision_feed(records)
        metrics = feed["metrics"]

        assert metrics["total_decisions"] == 3
        assert metrics["decisions_by_type"] == {"approved": 1, "revised": 1, "rejected": 1}
        assert metrics["avg_risk_score"] == 60
        assert metrics["high_risk_count"] == 2
        assert metrics["moat_distribution"] == {"high": 1, "medium": 1, "low": 1}
        assert len(feed["decisions"]) == 3

    def test_rows(self):
        feed = analytics.decision_feed([_decision()])
        row = feed["decisions"][0]

        assert row["decision"] == "approve"
        assert row["moat_value"] == "medium"
        assert row["status"] == "approved"
        assert row["rationale"] == "Managed service removes operational toil"

    def test_error_records_have_no_verdict(self):
        error = AuditRecord(request_id="e", actor="cto", timestamp=NOW, status=AuditStatus.ERROR)

        feed = analytics.decision_feed([error])

        assert feed["decisions"][0]["decision"] is None
        assert feed["metrics"]["avg_risk_score"] == 0

    def test_empty(self):
        feed = analytics.decision_feed([])

        assert feed["decisions"] == []
        assert feed["metrics"]["total_decisions"] == 0
        assert feed["metrics"]["avg_risk_score"] == 0


class TestRiskHeatmap:
    """Tests for windowed risk aggregation."""

    def test_windows(self):
        records = [
            _decision(risk=80, hours_ago=1),
            _decision(risk=90, hours_ago=5),
            _decision(risk=40, hours_ago=7),
            _decision(risk=10, hours_ago=13),
        ]

        result = analytics.risk_heatmap(records, now=NOW)
        heatmap = result["heatmap"]

        assert [w["window"] for w in heatmap] == ["0h ago", "6h ago", "12h ago"]
        assert heatmap[0]["decision_count"] == 2
        assert heatmap[0]["avg_risk"] == 85
        assert heatmap[0]["max_risk"] == 90
        assert heatmap[0]["risk_level"] == "high"
        assert heatmap[1]["risk_level"] == "medium"
        assert heatmap[2]["risk_level"] == "low"
        assert result["current_risk_level"] == "high"

    def test_empty(self):
        result = analytics.risk_heatmap([], now=NOW)

        assert result == {"heatmap": [], "current_risk_level": "unknown"}

    def test_override_grants_ignored(self):
        result = analytics.risk_heatmap([_override_grant()], now=NOW)

        assert result["heatmap"] == []


class TestMoatTrend:
    """Tests for the daily moat trend."""

    def test_daily_scores(self):
        records = [
            _decision(moat="high", hours_ago=0),
            _decision(moat="low", hours_ago=1),
            _decision(moat="unknown", hours_ago=2),
            _decision(moat="medium", hours_ago=24),
        ]

        result = analytics.moat_trend(records)
        trend = result["moat_trend"]

        assert [d["date"] for d in trend] == ["2026-10-17", "2026-10-18"]
        assert trend[0]["moat_percentage"] == 0
        assert trend[0]["avg_moat_score"] == 2.0
        assert trend[1]["total_decisions"] == 3
        assert trend[1]["high_moat_count"] == 1
        assert trend[1]["moat_percentage"] == 33
        assert trend[1]["avg_moat_score"] == 1.33
        assert result["summary"] == {
            "total_high_moat_decisions": 1,
            "moat_growth_rate": 33,
            "current_moat_strength": 1.33,
        }

    def test_empty(self):
        result = analytics.moat_trend([])

        assert result["moat_trend"] == []
        assert result["summary"]["current_moat_strength"] == 0


class TestCostMetrics:
    """Tests for spend reporting."""

    def test_daily_and_by_verdict(self):
        records = [
            _decision("approve", cost=2.0, hours_ago=0),
            _decision("reject", cost=3.5, hours_ago=1),
            _decision("approve", cost=1.0, hours_ago=30),
        ]
        telemetry = {"total_cost_usd": 6.5, "request_count": 4, "avg_cost_per_request": 1.625}

        result = analytics.cost_metrics(records, telemetry=telemetry, today=NOW)

        assert result["cost_metrics"]["daily_cost_trend"] == {
            "2026-10-17": 1.0,
            "2026-10-18": 5.5,
        }
        assert result["cost_metrics"]["cost_by_decision_type"] == {
            "approve": 3.0,
            "revise": 0.0,
            "reject": 3.5,
        }
        assert result["cost_metrics"]["total_requests"] == 4
        assert result["budget_alerts"]["current_daily_spend"] == 5.5
        assert result["budget_alerts"]["budget_remaining"] == 4.5
        assert result["budget_alerts"]["over_budget"] is False

    def test_over_budget(self):
        result = analytics.cost_metrics([_decision(cost=12.0)], today=NOW)

        assert result["budget_alerts"]["over_budget"] is True

    def test_no_spend_today(self):
        result = analytics.cost_metrics(
            [_decision(cost=4.0, hours_ago=48)], today=NOW, daily_budget_usd=5.0
        )

        assert result["budget_alerts"]["current_daily_spend"] == 0.0
        assert result["budget_alerts"]["budget_remaining"] == 5.0


class TestBrainReport:
    """Executive summary over recent decisions."""

    def test_summary(self):
        records = [
            _decision("approve", risk=20, moat="high"),
            _decision("approve", risk=40, moat="high", hours_ago=1),
            _decision("revise", risk=60, moat="low", hours_ago=2),
            _decision("reject", risk=99, moat="medium", hours_ago=3, status=AuditStatus.BLOCKED),
        ]

        report = analytics.brain_report(records, NOW)

        summary = report["executive_summary"]
        assert summary["total_decisions"] == 4
        assert summary["approval_rate"] == 50
        assert summary["avg_risk_score"] == 55
        assert summary["high_moat_decisions"] == 2
        assert summary["blocked_decisions"] == 1
        assert report["risk_assessment"]["current_level"] == "medium"
        assert report["risk_assessment"]["next_review"] == (NOW + timedelta(hours=24)).isoformat()
        assert report["generated_at"] == NOW.isoformat()
        assert report["report_id"]

    def test_override_grants_ignored(self):
        grant = AuditRecord(
            request_id="req-x",
            actor="ceo",
            timestamp=NOW,
            status=AuditStatus.HUMAN_OVERRIDE_GRANTED,
            signature="sig",
        )

        report = analytics.brain_report([grant, _decision(risk=10)], NOW)

        assert report["executive_summary"]["total_decisions"] == 1
        assert report["executive_summary"]["approval_rate"] == 100

    def test_empty(self):
        report = analytics.brain_report([], NOW)

        assert report["executive_summary"] == {
            "total_decisions": 0,
            "approval_rate": 0,
            "avg_risk_score": 0,
            "high_moat_decisions": 0,
            "blocked_decisions": 0,
        }
        assert report["risk_assessment"]["current_level"] == "unknown"
