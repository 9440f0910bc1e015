import asyncio
import datetime as dt

import httpx
import pandas as pd
import pytest

from crossover import ohlc_fetcher
from crossover.errors import DataSourceError
from crossover.ohlc_fetcher import fetch_candles

START = dt.datetime(2024, 3, 1, tzinfo=dt.timezone.utc)
END = dt.datetime(2024, 3, 1, 3, tzinfo=dt.timezone.utc)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(ohlc_fetcher, "NOBITEX_BACKOFF_BASE_SECS", 0.0)


def _fetch(handler, **kwargs):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_candles("USDTIRT", "60", START, END, client=client, **kwargs)
    return asyncio.run(run())


def test_fetch_candles_parses_udf_payload():
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        seen["path"] = request.url.path
        return httpx.Response(200, json={
            "s": "ok",
            "t": [1709258400, 1709254800, 1709262000],
            "o": [2.0, 1.0, 3.0],
            "h": [2.5, 1.5, 3.5],
            "l": [1.5, 0.5, 2.5],
            "c": [2.25, 1.25, 3.25],
            "v": [10, 20, 30],
        })

    df = _fetch(handler)
    assert seen["path"] == "/market/udf/history"
    assert seen["symbol"] == "USDTIRT"
    assert seen["resolution"] == "60"
    assert seen["from"] == str(int(START.timestamp()))
    assert seen["to"] == str(int(END.timestamp()))

    assert list(df.columns) == ["open", "high", "low", "close", "volume"]
    assert df.index.name == "date"
    assert str(df.index.tz) == "UTC"
    assert df.index.is_monotonic_increasing
    assert df["close"].tolist() == [1.25, 2.25, 3.25]
    assert df.index[0] == pd.Timestamp("2024-03-01 01:00", tz="UTC")


def test_fetch_candles_drops_duplicate_timestamps():
    def handler(request):
        return httpx.Response(200, json={"s": "ok", "t": [100, 100, 160], "c": [1.0, 2.0, 3.0]})

    df = _fetch(handler)
    assert df["close"].tolist() == [2.0, 3.0]
    assert list(df.columns) == ["close"]


@pytest.mark.parametrize("payload", [
    {"s": "no_data"},
    {"s": "error", "errmsg": "Invalid symbol"},
    {"s": "ok", "t": [], "c": []},
    {"s": "ok", "t": [100, 160], "c": [1.0]},
    {"s": "ok", "c": [1.0]},
    {"s": "ok", "t": [100], "c": ["abc"]},
    {"s": "ok", "t": [100], "c": [None]},
    ["not", "an", "object"],
])
def test_fetch_candles_rejects_bad_payloads(payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    with pytest.raises(DataSourceError):
        _fetch(handler)


def test_fetch_candles_invalid_json():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(DataSourceError):
        _fetch(handler)


def test_fetch_candles_retries_server_errors():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, json={"message": "busy"})
        return httpx.Response(200, json={"s": "ok", "t": [100], "c": [1.0]})

    df = _fetch(handler)
    assert len(calls) == 3
    assert df["close"].tolist() == [1.0]


def test_fetch_candles_gives_up_after_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, json={"message": "rate limited"})

    with pytest.raises(DataSourceError, match="429"):
        _fetch(handler)
    assert len(calls) == ohlc_fetcher.NOBITEX_MAX_RETRIES


def test_fetch_candles_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"message": "bad resolution"})

    with pytest.raises(DataSourceError, match="bad resolution"):
        _fetch(handler)
    assert len(calls) == 1


def test_fetch_candles_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DataSourceError):
        _fetch(handler)


def test_fetch_candles_rejects_empty_range():
    with pytest.raises(ValueError):
        asyncio.run(fetch_candles("USDTIRT", "60", END, START))
