"""
Tests for the Google Sheets fetch layer, using httpx.MockTransport.

Run with:
    python3 -m pytest fleetdash/test_sheets.py -v
"""

import asyncio

import httpx
import pytest

from fleetdash.sheets import SheetFetchError, SheetSource, SheetsClient

SOURCES = (
    SheetSource("misalignment", "sheet-a", "Misalignment_Tracking!A:Z"),
    SheetSource("alerts", "sheet-a", "Alert_Tracking!A:Z"),
    SheetSource("issues", "sheet-b", "Issues- Realtime!A:Z"),
)


def make_client(handler):
    return SheetsClient("test-key", sources=SOURCES, base_url="https://sheets.test/v4/spreadsheets", transport=httpx.MockTransport(handler))


class TestSheetsClient:

    def test_values_url_encodes_range(self):
        client = make_client(lambda request: httpx.Response(200, json={}))
        assert client.values_url(SOURCES[2]) == "https://sheets.test/v4/spreadsheets/sheet-b/values/Issues-%20Realtime%21A%3AZ"

    def test_fetch_tables_returns_values_per_sheet(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if "Alert_Tracking" in request.url.path:
                return httpx.Response(200, json={"range": "x"})
            return httpx.Response(200, json={"values": [["Date"], ["01/01/2024"]]})

        tables = asyncio.run(make_client(handler).fetch_tables())

        assert tables["misalignment"] == [["Date"], ["01/01/2024"]]
        assert tables["alerts"] == []
        assert tables["issues"] == [["Date"], ["01/01/2024"]]
        assert len(seen) == 3
        assert all(r.url.params["key"] == "test-key" for r in seen)

    def test_http_status_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if "sheet-b" in request.url.path:
                return httpx.Response(403, json={"error": "denied"})
            return httpx.Response(200, json={"values": []})

        with pytest.raises(SheetFetchError) as excinfo:
            asyncio.run(make_client(handler).fetch_tables())
        assert excinfo.value.sheet == "issues"
        assert "403" in str(excinfo.value)

    def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(SheetFetchError):
            asyncio.run(make_client(handler).fetch_tables())

    @pytest.mark.parametrize("body", [[["Date"], ["01/01/2024"]], "values", {"values": "Date,Client"}])
    def test_malformed_payload(self, body):
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(SheetFetchError) as excinfo:
            asyncio.run(client.fetch_tables())
        assert "unexpected" in excinfo.value.message
