from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd

from fleetdash.aggregates import MisalignmentAggregate, MonthlyBucket, VehicleMonthStats
from fleetdash.config import MISALIGNMENT_COLUMNS
from fleetdash.data import RawTable, client_label, freeze, split_vehicles, table_frame, with_calendar_keys


logger = logging.getLogger(__name__)


def vehicles_by_day(df: pd.DataFrame) -> Dict[str, List[str]]:
    """Vehicle list per day key, sorted by day; the last row of a day wins."""
    if df.empty:
        return {}
    latest = df.drop_duplicates(subset=["day_key"], keep="last").set_index("day_key")["vehicle_ids"].sort_index()
    return {str(day): list(ids) for day, ids in latest.items()}


def infer_resolutions(day_vehicles: Mapping[str, Sequence[str]]) -> Dict[str, int]:
    """Count vehicles present on a day and gone on the next recorded day.

    Resolutions are attributed to the earlier day. The last day has no
    successor and never appears in the result.
    """
    days = sorted(day_vehicles)
    resolved: Dict[str, int] = {}
    for current, following in zip(days, days[1:]):
        gone = set(day_vehicles[current]) - set(day_vehicles[following])
        if gone:
            resolved[current] = len(gone)
    return resolved


def compute_misalignment(raw_table: Optional[RawTable], columns: Optional[Mapping[str, str]] = None) -> MisalignmentAggregate:
    df = table_frame(raw_table, columns or MISALIGNMENT_COLUMNS)
    df = with_calendar_keys(df, "date")
    if df.empty:
        return MisalignmentAggregate()

    df["vehicle_ids"] = pd.Series([split_vehicles(v) for v in df["vehicles"]], index=df.index, dtype=object)
    df["vehicle_count"] = [len(ids) for ids in df["vehicle_ids"]]
    df["client"] = [client_label(c) for c in df["client"]]

    resolved_daily = infer_resolutions(vehicles_by_day(df))
    resolved_monthly: Dict[str, int] = {}
    for day, n in resolved_daily.items():
        resolved_monthly[day[:7]] = resolved_monthly.get(day[:7], 0) + n

    monthly_raised = df.groupby("month_key", sort=True)["vehicle_count"].sum()
    daily_raised = df.groupby("day_key", sort=True)["vehicle_count"].sum()

    monthly = {
        str(m): MonthlyBucket(raised=int(n), resolved=resolved_monthly.get(str(m), 0))
        for m, n in monthly_raised.items()
    }
    daily = {
        str(d): MonthlyBucket(raised=int(n), resolved=resolved_daily.get(str(d), 0))
        for d, n in daily_raised.items()
    }

    client_stats: Dict[str, Dict[str, VehicleMonthStats]] = {}
    for (client, month), group in df.groupby(["client", "month_key"], sort=True):
        unique = frozenset(v for ids in group["vehicle_ids"] for v in ids)
        client_stats.setdefault(str(client), {})[str(month)] = VehicleMonthStats(
            count=int(group["vehicle_count"].sum()),
            vehicles=unique,
        )

    logger.debug("misalignment: %d rows over %d days", len(df), len(daily))
    return MisalignmentAggregate(
        monthly=freeze(monthly),
        daily=freeze(daily),
        client_stats=freeze({c: freeze(m) for c, m in client_stats.items()}),
    )
