"""
FastAPI application exposing candle retrieval and multi-resolution EMA
crossover reconciliation.  The API is stateless and can be deployed
independently of other services.
"""
from __future__ import annotations
import logging
import datetime as dt
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, validator

import pandas as pd
from crossover import (
    DataSourceError,
    InsufficientDataError,
    ReconcilerConfig,
    fetch_candles,
    run_reconciliation,
)

logger = logging.getLogger("crossover_api")
app = FastAPI(title="EMA Crossover Reconciliation API")


# ----------------------------------------------------------------------
# Models
# ----------------------------------------------------------------------
class CandleResponse(BaseModel):
    date: dt.datetime
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None


class ReconcileRequest(BaseModel):
    """
    Request payload for a reconciliation run.  ``start`` is the first
    coarse bar to report; ``end`` defaults to now.
    """
    symbol: str = Field("USDTIRT", description="Nobitex market symbol, e.g. USDTIRT")
    coarse_resolution: str = Field("60", description="Nobitex resolution of the coarse series")
    fine_resolution: str = Field("1", description="Nobitex resolution of the fine series")
    fast_period: int = Field(9, description="Fast EMA period")
    slow_period: int = Field(21, description="Slow EMA period")
    seed_lookback: int = Field(21, description="Coarse bars fetched before start to seed the EMAs")
    start: dt.datetime
    end: Optional[dt.datetime] = None

    @validator("end")
    def _validate_dates(cls, v, values):
        start = values.get("start")
        if v is not None and start and _as_utc(v) <= _as_utc(start):
            raise ValueError("end must be after start")
        return v


def _as_utc(ts: dt.datetime) -> dt.datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc)


def _series_to_dict(s: pd.Series) -> Dict[str, float]:
    return {ts.isoformat(): float(v) for ts, v in s.items()}


def _error_status(e: Exception) -> HTTPException:
    if isinstance(e, DataSourceError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, InsufficientDataError):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ----------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------
@app.get("/data/candles", response_model=List[CandleResponse])
async def get_candles(
    symbol: str = Query(..., description="Market symbol, e.g. USDTIRT"),
    resolution: str = Query("60", description="Resolution: 1, 5, 15, 30, 60, 180, 240, 360, 720, D…"),
    start: dt.datetime = Query(...),
    end: dt.datetime = Query(...),
) -> List[CandleResponse]:
    """Return candles for the given range."""
    try:
        df = await fetch_candles(symbol, resolution, _as_utc(start), _as_utc(end))
    except (DataSourceError, ValueError) as e:
        raise _error_status(e)
    return [
        CandleResponse(date=idx.to_pydatetime(), **{k: float(v) for k, v in row.items()})
        for idx, row in df.iterrows()
    ]


@app.post("/reconcile")
async def reconcile_endpoint(req: ReconcileRequest):
    """
    Fetch both resolutions and return one reconciled row per coarse bar,
    together with the coarse and fine EMA series.
    """
    try:
        config = ReconcilerConfig(
            symbol=req.symbol,
            coarse_resolution=req.coarse_resolution,
            fine_resolution=req.fine_resolution,
            fast_period=req.fast_period,
            slow_period=req.slow_period,
            seed_lookback=req.seed_lookback,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    end = _as_utc(req.end) if req.end is not None else None
    try:
        result = await run_reconciliation(config, _as_utc(req.start), end, fetch=fetch_candles)
    except (DataSourceError, ValueError) as e:
        raise _error_status(e)
    except Exception:
        logger.exception("Unhandled error in /reconcile")
        raise HTTPException(status_code=500, detail="Internal server error")

    rows: List[Dict[str, Any]] = []
    for row in result.rows:
        d = row.to_dict()
        d["coarse_bar_start"] = row.coarse_bar_start.isoformat()
        rows.append(d)
    return {
        "symbol": config.symbol,
        "rows": rows,
        "ema": {
            "coarse_fast": _series_to_dict(result.coarse_fast),
            "coarse_slow": _series_to_dict(result.coarse_slow),
            "fine_fast": _series_to_dict(result.fine_fast),
            "fine_slow": _series_to_dict(result.fine_slow),
        },
    }
