from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from fleetdash.aggregates import AlertAggregate, IssueAggregate, MisalignmentAggregate
from fleetdash.config import FETCH_ERROR_MESSAGE, REFRESH_INTERVAL_SECONDS
from fleetdash.data import RawTable
from fleetdash.metrics_alerts import compute_alerts
from fleetdash.metrics_issues import compute_issues
from fleetdash.metrics_misalignment import compute_misalignment
from fleetdash.sheets import SheetFetchError


logger = logging.getLogger(__name__)

FetchTables = Callable[[], Awaitable[Mapping[str, RawTable]]]


@dataclass(frozen=True)
class DashboardSnapshot:
    misalignment: MisalignmentAggregate = field(default_factory=MisalignmentAggregate)
    alerts: AlertAggregate = field(default_factory=AlertAggregate)
    issues: IssueAggregate = field(default_factory=IssueAggregate)
    refreshed_at: Optional[datetime] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "refreshed_at": self.refreshed_at.isoformat() if self.refreshed_at else None,
            "misalignment": self.misalignment.to_payload(),
            "alerts": self.alerts.to_payload(),
            "issues": self.issues.to_payload(),
        }


def build_snapshot(tables: Mapping[str, RawTable], refreshed_at: Optional[datetime] = None) -> DashboardSnapshot:
    """Aggregate the three sheets. The aggregators share no state."""
    return DashboardSnapshot(
        misalignment=compute_misalignment(tables.get("misalignment")),
        alerts=compute_alerts(tables.get("alerts")),
        issues=compute_issues(tables.get("issues")),
        refreshed_at=refreshed_at,
    )


class DashboardRefresher:
    """Keeps the latest good snapshot and refreshes it one fetch at a time.

    A ``refresh()`` issued while another is running joins the running one.
    A failed fetch leaves the previous snapshot in place and records
    ``error`` until the next successful refresh.
    """

    def __init__(self, fetch_tables: FetchTables, *, interval_seconds: float = REFRESH_INTERVAL_SECONDS):
        self._fetch_tables = fetch_tables
        self.interval_seconds = interval_seconds
        self._snapshot: Optional[DashboardSnapshot] = None
        self._error: Optional[str] = None
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> Optional[DashboardSnapshot]:
        return self._snapshot

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def status(self) -> Dict[str, Any]:
        refreshed_at = self._snapshot.refreshed_at if self._snapshot else None
        return {
            "ready": self._snapshot is not None,
            "refreshing": self.is_refreshing,
            "refreshed_at": refreshed_at.isoformat() if refreshed_at else None,
            "error": self._error,
        }

    async def refresh(self) -> Optional[DashboardSnapshot]:
        if not self.is_refreshing:
            self._in_flight = asyncio.create_task(self._refresh_once())
        else:
            logger.info("refresh already in flight; joining it")
        return await asyncio.shield(self._in_flight)

    async def _refresh_once(self) -> Optional[DashboardSnapshot]:
        try:
            tables = await self._fetch_tables()
            snapshot = await asyncio.to_thread(build_snapshot, tables, datetime.now(timezone.utc))
        except SheetFetchError as exc:
            logger.warning("sheet fetch failed: %s", exc)
            self._error = FETCH_ERROR_MESSAGE
            return self._snapshot
        except Exception:
            logger.exception("refresh cycle failed")
            self._error = FETCH_ERROR_MESSAGE
            return self._snapshot
        self._snapshot = snapshot
        self._error = None
        logger.info("dashboard refreshed at %s", snapshot.refreshed_at.isoformat())
        return snapshot

    def cancel(self) -> None:
        """Abandon the in-flight refresh, if any; the last snapshot stays."""
        if self.is_refreshing:
            self._in_flight.cancel()

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Initial load, then one refresh per interval until ``stop`` is set."""
        while not stop.is_set():
            try:
                await self.refresh()
            except Exception:
                logger.exception("scheduled refresh failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
