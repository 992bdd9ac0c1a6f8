from __future__ import annotations

from typing import Any, Dict, List, Mapping, Union

import pandas as pd

from fleetdash.aggregates import MonthlyBucket
from fleetdash.charts import count_chart, raised_resolved_chart
from fleetdash.metrics_response import summarize_response_times
from fleetdash.pipeline import DashboardSnapshot


MISALIGNMENT_BREAKDOWN_COLUMNS = ["client", "month", "vehicle_count", "unique_vehicles"]
ALERT_BREAKDOWN_COLUMNS = ["client", "month", "count"]
ISSUE_BREAKDOWN_COLUMNS = ["client", "month", "raised", "resolved", "historical_videos"]


def chart_records(monthly: Mapping[str, Union[MonthlyBucket, int]]) -> List[Dict[str, Any]]:
    """Monthly mapping -> month-sorted records for charting."""
    records: List[Dict[str, Any]] = []
    for month in sorted(monthly):
        value = monthly[month]
        if isinstance(value, MonthlyBucket):
            records.append({"month": month, "raised": value.raised, "resolved": value.resolved})
        else:
            records.append({"month": month, "count": int(value)})
    return records


def _total_raised(monthly: Mapping[str, MonthlyBucket]) -> int:
    return sum(b.raised for b in monthly.values())


def compute_overview(snapshot: DashboardSnapshot) -> Dict[str, Any]:
    misalignment_trend = chart_records(snapshot.misalignment.monthly)
    alerts_trend = chart_records(snapshot.alerts.monthly)
    videos_trend = chart_records(snapshot.issues.historical_videos.monthly)
    issues_trend = chart_records(snapshot.issues.all_issues.monthly)

    charts: Dict[str, Any] = {}
    for key, spec in (
        ("misalignment", raised_resolved_chart(misalignment_trend, "Misalignments Raised vs Resolved")),
        ("alerts", count_chart(alerts_trend, "Alerts per Month")),
        ("historical_videos", raised_resolved_chart(videos_trend, "Historical Video Requests")),
        ("all_issues", raised_resolved_chart(issues_trend, "All Issues Raised vs Resolved")),
    ):
        if spec is not None:
            charts[key] = spec

    return {
        "refreshed_at": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
        "kpis": {
            "misalignments": _total_raised(snapshot.misalignment.monthly),
            "alerts": int(sum(snapshot.alerts.monthly.values())),
            "historical_videos": _total_raised(snapshot.issues.historical_videos.monthly),
            "all_issues": _total_raised(snapshot.issues.all_issues.monthly),
        },
        "trends": {
            "misalignment": misalignment_trend,
            "alerts": alerts_trend,
            "historical_videos": videos_trend,
            "all_issues": issues_trend,
        },
        "response_times": {
            "historical_videos": summarize_response_times(snapshot.issues.historical_videos.response_times).to_payload(),
            "all_issues": summarize_response_times(snapshot.issues.all_issues.response_times).to_payload(),
        },
        "charts": charts,
    }


def misalignment_breakdown(snapshot: DashboardSnapshot) -> pd.DataFrame:
    rows = [
        {"client": client, "month": month, "vehicle_count": stats.count, "unique_vehicles": len(stats.vehicles)}
        for client, months in snapshot.misalignment.client_stats.items()
        for month, stats in months.items()
    ]
    return pd.DataFrame(rows, columns=MISALIGNMENT_BREAKDOWN_COLUMNS)


def alert_breakdown(snapshot: DashboardSnapshot) -> pd.DataFrame:
    rows = [
        {"client": client, "month": month, "count": count}
        for client, months in snapshot.alerts.client_stats.items()
        for month, count in months.items()
    ]
    return pd.DataFrame(rows, columns=ALERT_BREAKDOWN_COLUMNS)


def issue_breakdown(snapshot: DashboardSnapshot) -> pd.DataFrame:
    videos = snapshot.issues.historical_videos.client_stats
    rows = []
    for client, months in snapshot.issues.all_issues.client_stats.items():
        for month, bucket in months.items():
            video_bucket = videos.get(client, {}).get(month)
            rows.append(
                {
                    "client": client,
                    "month": month,
                    "raised": bucket.raised,
                    "resolved": bucket.resolved,
                    "historical_videos": video_bucket.raised if video_bucket else 0,
                }
            )
    return pd.DataFrame(rows, columns=ISSUE_BREAKDOWN_COLUMNS)


BREAKDOWNS = {
    "misalignment": misalignment_breakdown,
    "alerts": alert_breakdown,
    "issues": issue_breakdown,
}


def compute_breakdowns(snapshot: DashboardSnapshot) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for name, build in BREAKDOWNS.items():
        df = build(snapshot).sort_values(["client", "month"]).reset_index(drop=True)
        payload[name] = df.to_dict(orient="records")
    return payload
