from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class StatusResponse(BaseModel):
    ready: bool
    refreshing: bool
    refreshed_at: Optional[str] = None
    error: Optional[str] = None


class ResponseTimeSummaryModel(BaseModel):
    fastest: str = "N/A"
    median: str = "N/A"
    slowest: str = "N/A"


class ResponseTimesResponse(BaseModel):
    view: str
    samples: int
    summary: ResponseTimeSummaryModel
