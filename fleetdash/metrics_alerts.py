from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional

from fleetdash.aggregates import AlertAggregate
from fleetdash.config import ALERT_COLUMNS, ALERT_SKIP_PHRASES
from fleetdash.data import RawTable, client_label, contains_any, freeze, table_frame, with_calendar_keys


logger = logging.getLogger(__name__)


def compute_alerts(
    raw_table: Optional[RawTable],
    columns: Optional[Mapping[str, str]] = None,
    *,
    skip_phrases: Iterable[str] = ALERT_SKIP_PHRASES,
) -> AlertAggregate:
    df = table_frame(raw_table, columns or ALERT_COLUMNS)
    if df.empty:
        return AlertAggregate()

    phrases = [p.lower() for p in skip_phrases]
    # "No L2 alerts found" rows record that nothing happened that day.
    df = df[[not contains_any(t, phrases) for t in df["alert_type"]]]
    df = with_calendar_keys(df, "date")
    if df.empty:
        return AlertAggregate()
    df["client"] = [client_label(c) for c in df["client"]]

    monthly = {str(m): int(n) for m, n in df.groupby("month_key", sort=True).size().items()}
    client_stats: Dict[str, Dict[str, int]] = {}
    for (client, month), n in df.groupby(["client", "month_key"], sort=True).size().items():
        client_stats.setdefault(str(client), {})[str(month)] = int(n)

    logger.debug("alerts: %d counted rows", len(df))
    return AlertAggregate(
        monthly=freeze(monthly),
        client_stats=freeze({c: freeze(m) for c, m in client_stats.items()}),
    )
