from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Literal

import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import ResponseTimesResponse, ResponseTimeSummaryModel, StatusResponse
from fleetdash.config import AUTO_REFRESH
from fleetdash.metrics_overview import BREAKDOWNS, compute_breakdowns, compute_overview
from fleetdash.metrics_response import summarize_response_times
from fleetdash.pipeline import DashboardRefresher, DashboardSnapshot
from fleetdash.sheets import SheetsClient


logger = logging.getLogger(__name__)

refresher = DashboardRefresher(SheetsClient().fetch_tables)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    stop = asyncio.Event()
    task = asyncio.create_task(refresher.run_forever(stop)) if AUTO_REFRESH else None
    try:
        yield
    finally:
        await shutdown_refresh(stop, task)


async def shutdown_refresh(stop: asyncio.Event, task: asyncio.Task | None) -> None:
    """Stop the refresh loop without waiting on an in-flight fetch."""
    stop.set()
    refresher.cancel()
    if task is None:
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


app = FastAPI(title="Fleet Ops Dashboard API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(data))


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _not_ready() -> JSONResponse:
    status = refresher.status()
    return JSONResponse(
        status_code=503,
        content={"error": status["error"] or "Dashboard data is still loading.", "type": "NotReady"},
    )


def _current() -> DashboardSnapshot | None:
    return refresher.snapshot


@app.get("/meta/status")
def meta_status():
    return _json(StatusResponse(**refresher.status()).model_dump())


@app.post("/refresh")
async def refresh():
    try:
        await refresher.refresh()
        return _json(StatusResponse(**refresher.status()).model_dump())
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)


@app.get("/overview")
def overview():
    snapshot = _current()
    if snapshot is None:
        return _not_ready()
    try:
        return _json(compute_overview(snapshot))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.get("/breakdowns")
def breakdowns():
    snapshot = _current()
    if snapshot is None:
        return _not_ready()
    try:
        return _json(compute_breakdowns(snapshot))
    except Exception as exc:
        logger.exception("breakdowns failed")
        return _error(exc)


@app.get("/misalignment")
def misalignment():
    snapshot = _current()
    if snapshot is None:
        return _not_ready()
    return _json(snapshot.misalignment.to_payload())


@app.get("/alerts")
def alerts():
    snapshot = _current()
    if snapshot is None:
        return _not_ready()
    return _json(snapshot.alerts.to_payload())


@app.get("/issues")
def issues():
    snapshot = _current()
    if snapshot is None:
        return _not_ready()
    return _json(snapshot.issues.to_payload())


@app.get("/issues/response-times")
def issue_response_times(view: Literal["all_issues", "historical_videos"] = Query(default="all_issues")):
    snapshot = _current()
    if snapshot is None:
        return _not_ready()
    issue_view = getattr(snapshot.issues, view)
    summary = summarize_response_times(issue_view.response_times)
    body = ResponseTimesResponse(
        view=view,
        samples=len(issue_view.response_times),
        summary=ResponseTimeSummaryModel(**summary.to_payload()),
    )
    return _json(body.model_dump())


@app.get("/export/{page}")
def export_page(page: str):
    snapshot = _current()
    if snapshot is None:
        return _not_ready()
    build = BREAKDOWNS.get(page)
    export_df = build(snapshot).sort_values(["client", "month"]) if build else pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    filename = f"{page}.csv"
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
