"""Decision analytics - reports computed over stored audit records.

Every function here is pure: it takes records (and a reference time
where windows matter) and returns a JSON-ready dictionary. Override
grant records are not decisions and are ignored.
"""

from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from helm_ai.common.constants import AnalyticsConstants
from helm_ai.governance.schemas import AuditRecord, AuditStatus, DecisionVerdict, MoatValue


def decision_records(records: Iterable[AuditRecord]) -> List[AuditRecord]:
    return [r for r in records if r.status != AuditStatus.HUMAN_OVERRIDE_GRANTED]


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _risk(record: AuditRecord) -> float:
    return record.risk_score or 0.0


def _cost(record: AuditRecord) -> float:
    if record.reasoning_response is None:
        return 0.0
    return record.reasoning_response.cost_estimate_usd


def decision_feed(records: Iterable[AuditRecord]) -> Dict[str, Any]:
    """Summarize recent decisions for a live feed.

    Returns:
        Dict with one summary row per decision plus aggregate metrics:
        counts by verdict, average risk, high-risk count and moat spread.
    """
    decisions = decision_records(records)
    total = len(decisions)

    def count_verdict(verdict: DecisionVerdict) -> int:
        return sum(1 for d in decisions if d.decision_text == verdict)

    def count_moat(moat: MoatValue) -> int:
        return sum(1 for d in decisions if d.moat_value == moat)

    metrics = {
        "total_decisions": total,
        "decisions_by_type": {
            "approved": count_verdict(DecisionVerdict.APPROVE),
            "revised": count_verdict(DecisionVerdict.REVISE),
            "rejected": count_verdict(DecisionVerdict.REJECT),
        },
        "avg_risk_score": round(sum(_risk(d) for d in decisions) / total) if total else 0,
        "high_risk_count": sum(
            1 for d in decisions if _risk(d) >= AnalyticsConstants.DECISION_FEED_HIGH_RISK
        ),
        "moat_distribution": {
            "high": count_moat(MoatValue.HIGH),
            "medium": count_moat(MoatValue.MEDIUM),
            "low": count_moat(MoatValue.LOW),
        },
    }

    rows = [
        {
            "id": d.id,
            "request_id": d.request_id,
            "actor": d.actor,
            "timestamp": d.timestamp.isoformat(),
            "decision": d.decision_text.value if d.decision_text else None,
            "risk_score": d.risk_score,
            "moat_value": d.moat_value.value if d.moat_value else None,
            "rationale": d.reasoning_response.rationale if d.reasoning_response else None,
            "processing_time_ms": d.processing_time_ms,
            "status": d.status.value,
        }
        for d in decisions
    ]

    return {"decisions": rows, "metrics": metrics}


def _risk_level(avg_risk: float) -> str:
    if avg_risk >= AnalyticsConstants.HEATMAP_HIGH_RISK:
        return "high"
    if avg_risk >= AnalyticsConstants.HEATMAP_MEDIUM_RISK:
        return "medium"
    return "low"


def risk_heatmap(records: Iterable[AuditRecord], now: datetime) -> Dict[str, Any]:
    """Bucket decision risk into fixed windows counted back from `now`.

    Windows are HEATMAP_WINDOW_HOURS wide and labelled by their start,
    e.g. "0h ago", "6h ago". The current risk level is that of the most
    recent window holding any decisions.
    """
    window_hours = AnalyticsConstants.HEATMAP_WINDOW_HOURS
    now = _utc(now)
    windows: Dict[int, List[float]] = {}

    for record in decision_records(records):
        hours_ago = int((now - _utc(record.timestamp)).total_seconds() // 3600)
        # Future-stamped records fall into the current window
        start = max(hours_ago, 0) // window_hours * window_hours
        windows.setdefault(start, []).append(_risk(record))

    heatmap = []
    for start in sorted(windows):
        risks = windows[start]
        avg_risk = round(sum(risks) / len(risks))
        heatmap.append({
            "window": f"{start}h ago",
            "window_start_hours": start,
            "decision_count": len(risks),
            "avg_risk": avg_risk,
            "max_risk": max(risks),
            "risk_level": _risk_level(avg_risk),
        })

    return {
        "heatmap": heatmap,
        "current_risk_level": heatmap[0]["risk_level"] if heatmap else "unknown",
    }


def moat_trend(records: Iterable[AuditRecord]) -> Dict[str, Any]:
    """Daily evolution of the competitive-advantage labels.

    Each moat label carries a weight (high 3, medium 2, low 1, unknown 0);
    the daily average of those weights is the moat score.
    """
    weights = AnalyticsConstants.MOAT_WEIGHTS
    days: Dict[str, Dict[str, Any]] = {}

    for record in decision_records(records):
        day = _utc(record.timestamp).date().isoformat()
        entry = days.setdefault(day, {
            "date": day,
            "high_moat_count": 0,
            "medium_moat_count": 0,
            "low_moat_count": 0,
            "total_decisions": 0,
            "moat_score": 0,
        })
        entry["total_decisions"] += 1
        moat = record.moat_value.value if record.moat_value else None
        if moat in weights:
            entry[f"{moat}_moat_count"] += 1
            entry["moat_score"] += weights[moat]

    trend = []
    for day in sorted(days):
        entry = dict(days[day])
        total = entry["total_decisions"]
        entry["moat_percentage"] = round(entry["high_moat_count"] / total * 100)
        entry["avg_moat_score"] = round(entry["moat_score"] / total, 2)
        trend.append(entry)

    summary = {
        "total_high_moat_decisions": sum(d["high_moat_count"] for d in trend),
        "moat_growth_rate": (
            trend[-1]["moat_percentage"] - trend[0]["moat_percentage"] if len(trend) > 1 else 0
        ),
        "current_moat_strength": trend[-1]["avg_moat_score"] if trend else 0,
    }
    return {"moat_trend": trend, "summary": summary}


def cost_metrics(
    records: Iterable[AuditRecord],
    telemetry: Optional[Dict[str, Any]] = None,
    today: Optional[datetime] = None,
    daily_budget_usd: float = AnalyticsConstants.DAILY_BUDGET_USD,
) -> Dict[str, Any]:
    """Reasoning spend by day and by verdict, with a daily budget check.

    Args:
        records: Audit records to aggregate
        telemetry: Telemetry snapshot dict for lifetime totals
        today: Reference time for the budget check
        daily_budget_usd: Budget the current day's spend is compared to
    """
    telemetry = telemetry or {}
    daily: "OrderedDict[str, float]" = OrderedDict()
    by_verdict = {v.value: 0.0 for v in DecisionVerdict}

    decisions = sorted(decision_records(records), key=lambda r: _utc(r.timestamp))
    for record in decisions:
        cost = _cost(record)
        day = _utc(record.timestamp).date().isoformat()
        daily[day] = daily.get(day, 0.0) + cost
        if record.decision_text is not None:
            by_verdict[record.decision_text.value] += cost

    today_key = _utc(today or datetime.now(timezone.utc)).date().isoformat()
    current_spend = daily.get(today_key, 0.0)

    return {
        "cost_metrics": {
            "total_cost_usd": telemetry.get("total_cost_usd", 0.0),
            "total_requests": telemetry.get("request_count", 0),
            "avg_cost_per_request": telemetry.get("avg_cost_per_request", 0.0),
            "daily_cost_trend": dict(daily),
            "cost_by_decision_type": by_verdict,
        },
        "budget_alerts": {
            "daily_budget": daily_budget_usd,
            "current_daily_spend": current_spend,
            "budget_remaining": daily_budget_usd - current_spend,
            "over_budget": current_spend > daily_budget_usd,
        },
    }


def brain_report(records: Iterable[AuditRecord], now: datetime) -> Dict[str, Any]:
    """Executive summary of recent decisions.

    Approval rate is the share of decisions whose verdict was approve,
    as a whole percentage. The risk level uses the heatmap thresholds.
    """
    now = _utc(now)
    decisions = decision_records(records)
    total = len(decisions)
    approved = sum(1 for d in decisions if d.decision_text == DecisionVerdict.APPROVE)
    avg_risk = round(sum(_risk(d) for d in decisions) / total) if total else 0

    return {
        "report_id": str(uuid4()),
        "generated_at": now.isoformat(),
        "executive_summary": {
            "total_decisions": total,
            "approval_rate": round(approved / total * 100) if total else 0,
            "avg_risk_score": avg_risk,
            "high_moat_decisions": sum(1 for d in decisions if d.moat_value == MoatValue.HIGH),
            "blocked_decisions": sum(1 for d in decisions if d.status == AuditStatus.BLOCKED),
        },
        "risk_assessment": {
            "current_level": _risk_level(avg_risk) if total else "unknown",
            "next_review": (
                now + timedelta(hours=AnalyticsConstants.BRAIN_REPORT_REVIEW_HOURS)
            ).isoformat(),
        },
    }
