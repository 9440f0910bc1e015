"""
Fetch both resolutions of one instrument and reconcile them.

Both series are fetched from ``seed_lookback`` coarse bars before the
report start, so the slow EMA is fully seeded by the time the first
reported bar is reached.  Retrieval finishes before any EMA is computed.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Awaitable, Callable, Optional

import pandas as pd

from .config import ReconcilerConfig
from .ohlc_fetcher import fetch_candles
from .reconciler import ReconciliationResult, reconcile

logger = logging.getLogger("runner")

Fetcher = Callable[[str, str, dt.datetime, dt.datetime], Awaitable[pd.DataFrame]]


def floor_to_bar(ts: dt.datetime | pd.Timestamp, bar: dt.timedelta) -> pd.Timestamp:
    """Round a timestamp down to the start of its bar, in UTC."""
    t = pd.Timestamp(ts)
    t = t.tz_localize("UTC") if t.tz is None else t.tz_convert("UTC")
    return t.floor(pd.Timedelta(bar))


def first_index_at_or_after(index: pd.Index, ts: pd.Timestamp) -> int:
    """Position of the first entry ``>= ts``; ``len(index)`` when there is none."""
    return int(index.searchsorted(ts, side="left"))


async def run_reconciliation(
    config: ReconcilerConfig,
    start: dt.datetime,
    end: Optional[dt.datetime] = None,
    fetch: Fetcher = fetch_candles,
) -> ReconciliationResult:
    """
    Fetch coarse and fine candles for ``config.symbol`` and reconcile every
    coarse bar from ``start`` onwards.  ``start`` is floored to the coarse
    bar; ``end`` defaults to now.  Errors from ``fetch`` and from EMA
    seeding propagate unchanged.
    """
    start_utc = floor_to_bar(start, config.coarse_bar)
    end_utc = pd.Timestamp(end) if end is not None else pd.Timestamp.now(tz="UTC")
    end_utc = end_utc.tz_localize("UTC") if end_utc.tz is None else end_utc.tz_convert("UTC")
    if start_utc >= end_utc:
        raise ValueError("start must be before end")
    seed_utc = start_utc - pd.Timedelta(config.lookback)

    coarse, fine = await asyncio.gather(
        fetch(config.symbol, config.coarse_resolution, seed_utc.to_pydatetime(), end_utc.to_pydatetime()),
        fetch(config.symbol, config.fine_resolution, seed_utc.to_pydatetime(), end_utc.to_pydatetime()),
    )
    logger.info(
        "Loaded %d coarse and %d fine candles for %s", len(coarse), len(fine), config.symbol
    )

    start_index = first_index_at_or_after(coarse.index, start_utc)
    return reconcile(coarse["close"], fine["close"], start_index=start_index, config=config)
