"""JSON API endpoints: series snapshot, single-candle detail, CSV export, status."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from fomo.export import export_filename, to_csv, tooltip_detail
from fomo.session import ChartSession

log = structlog.get_logger(__name__)

router = APIRouter()


def _session(request: Request) -> ChartSession:
    session = request.app.state.session
    if session is None:
        raise HTTPException(status_code=503, detail="chart session not started")
    return session


@router.get("/candles")
async def get_candles(request: Request) -> JSONResponse:
    """Ordered candle array for the chart widget, oldest first."""
    session = _session(request)
    candles = [c.to_dict() for c in session.store.snapshot()]
    return JSONResponse(content=candles)


@router.get("/candles/{open_time}")
async def get_candle_detail(request: Request, open_time: int) -> JSONResponse:
    """Tooltip detail for the candle opening at ``open_time``."""
    session = _session(request)
    candle = session.store.get(open_time)
    if candle is None:
        raise HTTPException(status_code=404, detail="candle not found")
    return JSONResponse(content=tooltip_detail(candle))


@router.get("/export.csv")
async def export_csv(request: Request) -> Response:
    """Download the whole loaded series as CSV."""
    session = _session(request)
    snapshot = session.store.snapshot()
    filename = export_filename(session.symbol, session.interval)
    log.info("csv_export", candles=len(snapshot), filename=filename)
    return Response(
        content=to_csv(snapshot),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Session health: series size, history state, live stream state."""
    session = _session(request)
    return JSONResponse(content=session.status())
