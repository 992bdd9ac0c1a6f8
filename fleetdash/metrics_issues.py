from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, Mapping, Optional

import pandas as pd

from fleetdash.aggregates import IssueAggregate, IssueView, MonthlyBucket
from fleetdash.config import HISTORICAL_VIDEO_PHRASES, ISSUE_COLUMNS
from fleetdash.data import RawTable, client_label, contains_any, freeze, month_key, parse_date, table_frame


logger = logging.getLogger(__name__)

MILLISECOND = timedelta(milliseconds=1)


def response_time_ms(raised: date, resolved: Optional[date]) -> Optional[int]:
    """Resolved minus raised in milliseconds; None unless strictly positive."""
    if resolved is None:
        return None
    elapsed = (resolved - raised) // MILLISECOND
    return int(elapsed) if elapsed > 0 else None


def issue_view(df: pd.DataFrame) -> IssueView:
    if df.empty:
        return IssueView()

    per_month = df.groupby("month_key", sort=True).agg(
        raised=("is_resolved", "size"),
        resolved=("is_resolved", "sum"),
    )
    monthly = {
        str(m): MonthlyBucket(raised=int(row.raised), resolved=int(row.resolved))
        for m, row in per_month.iterrows()
    }

    per_client = df.groupby(["client", "month_key"], sort=True).agg(
        raised=("is_resolved", "size"),
        resolved=("is_resolved", "sum"),
    )
    client_stats: Dict[str, Dict[str, MonthlyBucket]] = {}
    for (client, month), row in per_client.iterrows():
        client_stats.setdefault(str(client), {})[str(month)] = MonthlyBucket(
            raised=int(row.raised),
            resolved=int(row.resolved),
        )

    samples = tuple(int(ms) for ms in df["response_ms"] if ms is not None)
    return IssueView(
        monthly=freeze(monthly),
        client_stats=freeze({c: freeze(m) for c, m in client_stats.items()}),
        response_times=samples,
    )


def compute_issues(
    raw_table: Optional[RawTable],
    columns: Optional[Mapping[str, str]] = None,
    *,
    video_phrases: Iterable[str] = HISTORICAL_VIDEO_PHRASES,
) -> IssueAggregate:
    df = table_frame(raw_table, columns or ISSUE_COLUMNS)
    if df.empty:
        return IssueAggregate()

    df = df.assign(raised_date=pd.Series([parse_date(v) for v in df["raised_at"]], index=df.index, dtype=object))
    df = df[df["raised_date"].notna()].copy()
    if df.empty:
        return IssueAggregate()

    resolved_dates = [parse_date(v) for v in df["resolved_at"]]
    phrases = [p.lower() for p in video_phrases]
    df["month_key"] = [month_key(d) for d in df["raised_date"]]
    df["client"] = [client_label(c) for c in df["client"]]
    df["is_resolved"] = [d is not None for d in resolved_dates]
    df["response_ms"] = pd.Series(
        [response_time_ms(r, s) for r, s in zip(df["raised_date"], resolved_dates)],
        index=df.index,
        dtype=object,
    )
    df["is_video"] = [contains_any(t, phrases) for t in df["issue"]]

    all_issues = issue_view(df)
    historical_videos = issue_view(df[df["is_video"]])
    logger.debug(
        "issues: %d raised, %d historical video requests",
        len(df),
        int(df["is_video"].sum()),
    )
    return IssueAggregate(all_issues=all_issues, historical_videos=historical_videos)
