"""
Tests for snapshot building and the refresh coordinator.

Run with:
    python3 -m pytest fleetdash/test_pipeline.py -v
"""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from fleetdash import pipeline
from fleetdash.config import FETCH_ERROR_MESSAGE
from fleetdash.pipeline import DashboardRefresher, build_snapshot
from fleetdash.sheets import SheetFetchError

TABLES = {
    "misalignment": [
        ["Date", "Vehicles", "Client"],
        ["01/01/2024", "A, B", "Acme"],
        ["02/01/2024", "B", "Acme"],
    ],
    "alerts": [
        ["Date", "Alert Type", "Client"],
        ["01/01/2024", "Overspeed", "Acme"],
        ["01/01/2024", "No L2 alerts found", "Acme"],
    ],
    "issues": [
        ["Issue", "Client", "Timestamp Issues Raised", "Timestamp Issues Resolved"],
        ["Historical video request", "Acme", "01/01/2024 10:00", "02/01/2024 11:00"],
    ],
}


class FakeFetcher:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class TestBuildSnapshot:

    def test_runs_are_identical(self):
        at = datetime(2024, 1, 3, tzinfo=timezone.utc)
        first = json.dumps(build_snapshot(TABLES, at).to_payload(), sort_keys=True)
        second = json.dumps(build_snapshot(TABLES, at).to_payload(), sort_keys=True)
        assert first == second

    def test_aggregates_each_sheet(self):
        snapshot = build_snapshot(TABLES)
        assert snapshot.misalignment.monthly["2024-01"].raised == 3
        assert snapshot.misalignment.monthly["2024-01"].resolved == 1
        assert dict(snapshot.alerts.monthly) == {"2024-01": 1}
        assert snapshot.issues.historical_videos.monthly["2024-01"].raised == 1

    def test_missing_tables_are_empty(self):
        snapshot = build_snapshot({})
        assert snapshot.to_payload()["alerts"] == {"monthly": {}, "client_stats": {}}


class TestDashboardRefresher:

    def test_success_sets_snapshot(self):
        refresher = DashboardRefresher(FakeFetcher([TABLES]))
        snapshot = asyncio.run(refresher.refresh())
        assert snapshot is refresher.snapshot
        assert refresher.error is None
        assert refresher.status()["ready"] is True

    def test_failure_keeps_last_good_snapshot(self):
        fetcher = FakeFetcher([TABLES, SheetFetchError("alerts", "HTTP error! status: 500"), TABLES])
        refresher = DashboardRefresher(fetcher)

        good = asyncio.run(refresher.refresh())
        kept = asyncio.run(refresher.refresh())
        assert kept is good
        assert refresher.error == FETCH_ERROR_MESSAGE

        asyncio.run(refresher.refresh())
        assert refresher.error is None
        assert refresher.snapshot is not good

    def test_first_failure_leaves_no_snapshot(self):
        refresher = DashboardRefresher(FakeFetcher([SheetFetchError("issues", "boom")]))
        assert asyncio.run(refresher.refresh()) is None
        assert refresher.status() == {"ready": False, "refreshing": False, "refreshed_at": None, "error": FETCH_ERROR_MESSAGE}

    def test_concurrent_refreshes_share_one_fetch(self):
        fetcher = FakeFetcher([TABLES, TABLES])
        refresher = DashboardRefresher(fetcher)

        async def both():
            return await asyncio.gather(refresher.refresh(), refresher.refresh())

        first, second = asyncio.run(both())
        assert fetcher.calls == 1
        assert first is second

    def test_run_forever_stops(self):
        fetcher = FakeFetcher([TABLES, TABLES, TABLES])
        refresher = DashboardRefresher(fetcher, interval_seconds=0.01)

        async def run():
            stop = asyncio.Event()
            task = asyncio.create_task(refresher.run_forever(stop))
            await asyncio.sleep(0.05)
            stop.set()
            await task

        asyncio.run(run())
        assert fetcher.calls >= 1
        assert refresher.snapshot is not None

    def test_unexpected_fetch_error_sets_indicator(self):
        refresher = DashboardRefresher(FakeFetcher([RuntimeError("boom")]))
        assert asyncio.run(refresher.refresh()) is None
        assert refresher.status()["error"] == FETCH_ERROR_MESSAGE

    def test_aggregation_error_keeps_last_good_snapshot(self, monkeypatch):
        refresher = DashboardRefresher(FakeFetcher([TABLES]))
        good = asyncio.run(refresher.refresh())

        def broken(*args, **kwargs):
            raise ValueError("bad table")

        monkeypatch.setattr(pipeline, "build_snapshot", broken)
        assert asyncio.run(refresher.refresh()) is good
        assert refresher.error == FETCH_ERROR_MESSAGE

    def test_cancel_abandons_in_flight_refresh(self):
        async def hang():
            await asyncio.sleep(60)

        refresher = DashboardRefresher(hang)

        async def run():
            pending = asyncio.create_task(refresher.refresh())
            await asyncio.sleep(0.01)
            assert refresher.is_refreshing
            refresher.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending

        asyncio.run(run())
        assert not refresher.is_refreshing
        assert refresher.snapshot is None
