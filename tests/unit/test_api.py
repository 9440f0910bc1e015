import pandas as pd
import pytest
from fastapi.testclient import TestClient

from app import api
from crossover.errors import DataSourceError


@pytest.fixture
def client(monkeypatch, fake_fetch):
    monkeypatch.setattr(api, "fetch_candles", fake_fetch)
    return TestClient(api.app)


def test_get_candles(client):
    resp = client.get("/data/candles", params={
        "symbol": "USDTIRT",
        "resolution": "60",
        "start": "2024-03-01T00:00:00Z",
        "end": "2024-03-01T03:00:00Z",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 4
    assert body[0]["close"] == pytest.approx(100.0)
    assert body[0]["open"] is None


def test_reconcile_endpoint(client):
    resp = client.post("/reconcile", json={
        "symbol": "USDTIRT",
        "start": "2024-03-02T00:00:00Z",
        "end": "2024-03-02T05:00:00Z",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["symbol"] == "USDTIRT"
    assert len(body["rows"]) == 5
    row = body["rows"][0]
    assert pd.Timestamp(row["coarse_bar_start"]) == pd.Timestamp("2024-03-02 00:00", tz="UTC")
    assert row["hybrid_first_signal"] in {"BUY", "SELL", "NONE"}
    assert set(body["ema"]) == {"coarse_fast", "coarse_slow", "fine_fast", "fine_slow"}
    assert len(body["ema"]["coarse_fast"]) == 27


def test_reconcile_endpoint_rejects_bad_range(client):
    resp = client.post("/reconcile", json={
        "start": "2024-03-02T05:00:00Z",
        "end": "2024-03-02T00:00:00Z",
    })
    assert resp.status_code == 422


def test_reconcile_endpoint_rejects_bad_config(client):
    resp = client.post("/reconcile", json={
        "start": "2024-03-02T00:00:00Z",
        "end": "2024-03-02T05:00:00Z",
        "fast_period": 30,
    })
    assert resp.status_code == 400


def test_reconcile_endpoint_insufficient_data(client):
    resp = client.post("/reconcile", json={
        "start": "2024-03-02T00:00:00Z",
        "end": "2024-03-02T05:00:00Z",
        "seed_lookback": 1,
    })
    # only 7 coarse bars, fewer than the slow period
    assert resp.status_code == 422


def test_reconcile_endpoint_data_source_error(monkeypatch):
    async def failing(symbol, resolution, start, end, client=None):
        raise DataSourceError("Nobitex returned status 'no_data'")

    monkeypatch.setattr(api, "fetch_candles", failing)
    resp = TestClient(api.app).post("/reconcile", json={
        "start": "2024-03-02T00:00:00Z",
        "end": "2024-03-02T05:00:00Z",
    })
    assert resp.status_code == 502
    assert "no_data" in resp.json()["detail"]
