from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from fleetdash.config import (
    ALERTS_RANGE,
    FETCH_TIMEOUT_SECONDS,
    GOOGLE_SHEETS_API_KEY,
    ISSUES_RANGE,
    ISSUES_SHEET_ID,
    MISALIGNMENT_RANGE,
    OPS_SHEET_ID,
    SHEETS_API_URL,
)


logger = logging.getLogger(__name__)


class SheetFetchError(Exception):
    """A sheet could not be fetched; the whole refresh cycle is aborted."""

    def __init__(self, sheet: str, message: str):
        self.sheet = sheet
        self.message = message
        super().__init__(f"{sheet}: {message}")


@dataclass(frozen=True)
class SheetSource:
    name: str
    sheet_id: str
    range: str


DEFAULT_SOURCES = (
    SheetSource("misalignment", OPS_SHEET_ID, MISALIGNMENT_RANGE),
    SheetSource("alerts", OPS_SHEET_ID, ALERTS_RANGE),
    SheetSource("issues", ISSUES_SHEET_ID, ISSUES_RANGE),
)


class SheetsClient:
    def __init__(
        self,
        api_key: str = GOOGLE_SHEETS_API_KEY,
        *,
        sources: Sequence[SheetSource] = DEFAULT_SOURCES,
        base_url: str = SHEETS_API_URL,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sources = tuple(sources)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def values_url(self, source: SheetSource) -> str:
        return f"{self.base_url}/{source.sheet_id}/values/{quote(source.range, safe='')}"

    async def fetch_values(self, client: httpx.AsyncClient, source: SheetSource) -> List[List[str]]:
        try:
            response = await client.get(self.values_url(source), params={"key": self.api_key})
        except httpx.HTTPError as exc:
            raise SheetFetchError(source.name, f"{type(exc).__name__}: {exc}") from exc
        if response.status_code != 200:
            raise SheetFetchError(source.name, f"HTTP error! status: {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise SheetFetchError(source.name, "response is not JSON") from exc
        if not isinstance(payload, dict):
            raise SheetFetchError(source.name, f"unexpected payload type: {type(payload).__name__}")
        values = payload.get("values") or []
        if not isinstance(values, list):
            raise SheetFetchError(source.name, f"unexpected values type: {type(values).__name__}")
        logger.debug("fetched %s: %d rows", source.name, len(values))
        return values

    async def fetch_tables(self) -> Dict[str, List[List[str]]]:
        """Fetch every source concurrently; the first failure cancels the rest."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            tasks = [asyncio.ensure_future(self.fetch_values(client, s)) for s in self.sources]
            try:
                results = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        return {source.name: values for source, values in zip(self.sources, results)}
