import pandas as pd
import pytest

from crossover.errors import InsufficientDataError
from crossover.indicators import compute_ema_pair, compute_seeded_ema, ema_step


def test_compute_seeded_ema_example():
    ema = compute_seeded_ema([1, 2, 3, 4, 5, 6, 7, 8, 9, 10], 3)
    # seed = mean(1, 2, 3) for the first three entries
    assert list(ema.iloc[:3]) == [2.0, 2.0, 2.0]
    assert ema.iloc[3] == 3.0
    assert ema.iloc[4] == 4.0


def test_compute_seeded_ema_length_and_seed():
    prices = [10.5, 11.25, 9.75, 12.0, 13.5, 12.25, 11.0, 14.75]
    for period in (1, 4, 8):
        ema = compute_seeded_ema(prices, period)
        assert len(ema) == len(prices)
        seed = sum(prices[:period]) / period
        assert all(v == pytest.approx(seed) for v in ema.iloc[:period])


def test_compute_seeded_ema_insufficient_data():
    with pytest.raises(InsufficientDataError) as exc:
        compute_seeded_ema([1.0, 2.0], 3)
    assert exc.value.period == 3
    assert exc.value.available == 2


def test_compute_seeded_ema_rejects_non_positive_period():
    with pytest.raises(ValueError):
        compute_seeded_ema([1.0, 2.0, 3.0], 0)


def test_compute_seeded_ema_keeps_index_and_input():
    idx = pd.date_range("2024-01-01", periods=6, freq="h", tz="UTC")
    close = pd.Series([5.0, 6.0, 7.0, 8.0, 7.0, 6.0], index=idx)
    before = close.copy()
    ema = compute_seeded_ema(close, 3)
    assert ema.index.equals(idx)
    pd.testing.assert_series_equal(close, before)


def test_ema_step_matches_full_series():
    prices = [3.0, 4.5, 2.0, 6.5, 7.25, 5.0, 8.0, 9.5, 4.0, 6.0]
    period = 4
    ema = compute_seeded_ema(prices, period)
    for i in range(period, len(prices)):
        assert ema_step(ema.iloc[i - 1], prices[i], period) == ema.iloc[i]


def test_compute_ema_pair_columns():
    pair = compute_ema_pair(list(range(1, 31)), 9, 21)
    assert list(pair.columns) == ["ema_fast", "ema_slow"]
    assert len(pair) == 30
    # rising prices keep the fast average above the slow one
    assert pair["ema_fast"].iloc[-1] > pair["ema_slow"].iloc[-1]
