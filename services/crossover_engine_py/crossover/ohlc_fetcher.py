# crossover/ohlc_fetcher.py
"""Fetch historical candles from the Nobitex UDF history endpoint.

    GET {NOBITEX_BASE_URL}/market/udf/history?symbol=USDTIRT&resolution=60&from=..&to=..

The endpoint answers ``{"s": "ok", "t": [...], "o": [...], "h": [...],
"l": [...], "c": [...], "v": [...]}`` with unix-second timestamps.  Any
other status, a malformed body or an empty result raises
:class:`DataSourceError`.  Rate limits (429) and server errors (5xx) are
retried with exponential backoff before giving up.

All timestamps are UTC (datetime64[ns, UTC]). Prices/volumes are floats.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
import os
from typing import Any, Dict, List, Optional

import httpx
import pandas as pd

from .config import _env
from .errors import DataSourceError

# ──────────────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────────────

logger = logging.getLogger("ohlc_fetcher")
if not logger.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
    logger.addHandler(_h)
logger.setLevel(os.getenv("CROSSOVER_LOG_LEVEL", "INFO").upper())

# ──────────────────────────────────────────────────────────────────────────────
# Nobitex config (via env)
# ──────────────────────────────────────────────────────────────────────────────

NOBITEX_BASE_URL = (_env("NOBITEX_BASE_URL", "https://api.nobitex.ir") or "").rstrip("/")
NOBITEX_MAX_RETRIES = int(_env("NOBITEX_MAX_RETRIES", "3") or "3")
NOBITEX_BACKOFF_BASE_SECS = float(_env("NOBITEX_BACKOFF_BASE_SECS", "1.5") or "1.5")
NOBITEX_TIMEOUT_SECS = float(_env("NOBITEX_TIMEOUT_SECS", "30") or "30")

_COLUMNS = {"o": "open", "h": "high", "l": "low", "c": "close", "v": "volume"}

# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def _to_utc_ts(ts: dt.datetime | pd.Timestamp) -> pd.Timestamp:
    t = pd.Timestamp(ts)
    return t.tz_localize("UTC") if t.tz is None else t.tz_convert("UTC")

def _to_seconds(ts: dt.datetime | pd.Timestamp) -> int:
    return int(_to_utc_ts(ts).timestamp())

def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
        if isinstance(body, dict):
            return str(body.get("errmsg") or body.get("message") or body.get("detail") or resp.text)
    except ValueError:
        pass
    return resp.text

def _payload_to_frame(payload: Any, symbol: str, resolution: str) -> pd.DataFrame:
    if not isinstance(payload, dict):
        raise DataSourceError(f"Malformed response for {symbol}@{resolution}: expected an object")
    status = payload.get("s")
    if status != "ok":
        detail = payload.get("errmsg") or status
        raise DataSourceError(f"Nobitex returned status {detail!r} for {symbol}@{resolution}")

    times = payload.get("t")
    closes = payload.get("c")
    if not isinstance(times, list) or not isinstance(closes, list):
        raise DataSourceError(f"Malformed response for {symbol}@{resolution}: missing t/c arrays")
    if len(times) != len(closes):
        raise DataSourceError(
            f"Malformed response for {symbol}@{resolution}: {len(times)} timestamps vs {len(closes)} closes"
        )
    if not times:
        raise DataSourceError(f"No candles returned for {symbol}@{resolution}")

    data: Dict[str, List] = {}
    for key, column in _COLUMNS.items():
        values = payload.get(key)
        if isinstance(values, list) and len(values) == len(times):
            data[column] = values
    try:
        index = pd.DatetimeIndex(pd.to_datetime(times, unit="s", utc=True), name="date")
        df = pd.DataFrame(data, index=index).astype(float)
    except (TypeError, ValueError) as e:
        raise DataSourceError(f"Malformed response for {symbol}@{resolution}: {e}") from e
    if df["close"].isna().any():
        raise DataSourceError(f"Malformed response for {symbol}@{resolution}: missing close prices")

    df = df.sort_index(kind="mergesort")
    return df[~df.index.duplicated(keep="last")]

# ──────────────────────────────────────────────────────────────────────────────
# HTTP
# ──────────────────────────────────────────────────────────────────────────────

async def _udf_get_json(client: httpx.AsyncClient, params: dict) -> Any:
    url = f"{NOBITEX_BASE_URL}/market/udf/history"

    for attempt in range(1, NOBITEX_MAX_RETRIES + 1):
        try:
            resp = await client.get(url, params=params, timeout=NOBITEX_TIMEOUT_SECS)
        except httpx.TransportError as e:
            if attempt == NOBITEX_MAX_RETRIES:
                raise DataSourceError(f"Nobitex request failed: {e}") from e
            delay = NOBITEX_BACKOFF_BASE_SECS * (2 ** (attempt - 1))
            logger.warning("Nobitex transport error on attempt %s: %s (backoff %.2fs)", attempt, e, delay)
            await asyncio.sleep(delay)
            continue

        status = resp.status_code
        if status == 429 or 500 <= status < 600:
            msg = _error_message(resp)
            if attempt == NOBITEX_MAX_RETRIES:
                raise DataSourceError(f"Nobitex error {status}: {msg or 'rate limited/temporary error'}")
            delay = NOBITEX_BACKOFF_BASE_SECS * (2 ** (attempt - 1))
            logger.warning("Nobitex %s on attempt %s: %s (backoff %.2fs)", status, attempt, msg or "retrying", delay)
            await asyncio.sleep(delay)
            continue

        if status >= 400:
            raise DataSourceError(f"Nobitex error {status}: {_error_message(resp)}")

        try:
            return resp.json()
        except ValueError as e:
            raise DataSourceError(f"Nobitex returned invalid JSON: {e}") from e

    raise DataSourceError("Nobitex request failed after retries.")

# ──────────────────────────────────────────────────────────────────────────────
# Public entry
# ──────────────────────────────────────────────────────────────────────────────

async def fetch_candles(
    symbol: str,
    resolution: str,
    start: dt.datetime,
    end: dt.datetime,
    client: Optional[httpx.AsyncClient] = None,
) -> pd.DataFrame:
    """
    Return candles for ``symbol`` at ``resolution`` between ``start`` and
    ``end`` as a DataFrame indexed by UTC ``date``, sorted and free of
    duplicate timestamps.  Always contains a ``close`` column.
    """
    start_utc = _to_utc_ts(start)
    end_utc = _to_utc_ts(end)
    if start_utc >= end_utc:
        raise ValueError("start must be before end")

    params = {
        "symbol": symbol,
        "resolution": resolution,
        "from": _to_seconds(start_utc),
        "to": _to_seconds(end_utc),
    }
    logger.info("Fetching %s@%s from %s to %s", symbol, resolution, start_utc, end_utc)

    if client is None:
        async with httpx.AsyncClient() as own_client:
            payload = await _udf_get_json(own_client, params)
    else:
        payload = await _udf_get_json(client, params)

    df = _payload_to_frame(payload, symbol, resolution)
    logger.debug("Received %d candles for %s@%s", len(df), symbol, resolution)
    return df
