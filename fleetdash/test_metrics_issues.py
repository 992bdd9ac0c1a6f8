"""
Tests for issue aggregation (all issues + historical video requests).

Run with:
    python3 -m pytest fleetdash/test_metrics_issues.py -v
"""

from datetime import date

from fleetdash.aggregates import MonthlyBucket
from fleetdash.metrics_issues import compute_issues, response_time_ms

DAY_MS = 24 * 60 * 60 * 1000

# Description column first so "issue" resolves to it rather than a timestamp column.
HEADER = ["Issue Description", "Client", "Timestamp Issues Raised", "Timestamp Issues Resolved"]


class TestResponseTime:

    def test_positive_difference(self):
        assert response_time_ms(date(2024, 1, 1), date(2024, 1, 3)) == 2 * DAY_MS

    def test_zero_or_negative_discarded(self):
        assert response_time_ms(date(2024, 1, 3), date(2024, 1, 3)) is None
        assert response_time_ms(date(2024, 1, 3), date(2024, 1, 1)) is None

    def test_unresolved(self):
        assert response_time_ms(date(2024, 1, 3), None) is None


class TestComputeIssues:

    def test_video_request_counts_in_both_views(self):
        agg = compute_issues(
            [
                HEADER,
                ["Historical Video Request - bus 12", "Acme", "01/05/2024 09:00:00", "03/05/2024 10:00:00"],
                ["GPS offline", "Acme", "02/05/2024 11:00:00", "04/05/2024 12:00:00"],
            ]
        )
        assert agg.all_issues.monthly["2024-05"] == MonthlyBucket(raised=2, resolved=2)
        assert agg.historical_videos.monthly["2024-05"] == MonthlyBucket(raised=1, resolved=1)
        assert agg.all_issues.response_times == (2 * DAY_MS, 2 * DAY_MS)
        assert agg.historical_videos.response_times == (2 * DAY_MS,)

    def test_non_video_row_only_in_all_issues(self):
        agg = compute_issues([HEADER, ["Camera fault", "Acme", "01/05/2024", "02/05/2024"]])
        assert agg.all_issues.client_stats["Acme"]["2024-05"] == MonthlyBucket(raised=1, resolved=1)
        assert agg.historical_videos.to_payload() == {"monthly": {}, "client_stats": {}, "response_times": []}

    def test_unparseable_raised_skips_row(self):
        agg = compute_issues([HEADER, ["historical video request", "Acme", "pending", "02/05/2024"]])
        assert agg.all_issues.to_payload()["monthly"] == {}
        assert agg.historical_videos.to_payload()["monthly"] == {}

    def test_unresolved_counts_raised_only(self):
        agg = compute_issues([HEADER, ["GPS offline", "", "01/05/2024", ""]])
        assert agg.all_issues.monthly["2024-05"] == MonthlyBucket(raised=1, resolved=0)
        assert agg.all_issues.client_stats["Unknown"]["2024-05"].raised == 1
        assert agg.all_issues.response_times == ()

    def test_same_day_resolution_counts_but_has_no_sample(self):
        agg = compute_issues([HEADER, ["GPS offline", "Acme", "01/05/2024 09:00", "01/05/2024 17:00"]])
        assert agg.all_issues.monthly["2024-05"].resolved == 1
        assert agg.all_issues.response_times == ()

    def test_month_bucket_follows_raised_date(self):
        agg = compute_issues([HEADER, ["GPS offline", "Acme", "30/04/2024", "02/05/2024"]])
        assert list(agg.all_issues.monthly) == ["2024-04"]

    def test_video_phrases_are_configurable(self):
        table = [HEADER, ["Footage pull", "Acme", "01/05/2024", ""]]
        agg = compute_issues(table, video_phrases=["footage"])
        assert agg.historical_videos.monthly["2024-05"].raised == 1

    def test_empty(self):
        assert compute_issues([]).to_payload()["all_issues"]["monthly"] == {}
