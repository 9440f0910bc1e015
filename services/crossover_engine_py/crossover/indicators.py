"""SMA-seeded exponential moving averages.

The EMA here is not pandas' ``ewm``: the first ``period`` values are all set
to the simple average of the first ``period`` closes, and only later values
follow the recursion.  That makes the series independent of where the data
window happens to start, and it lets a coarse-resolution EMA be advanced
one fine tick at a time with :func:`ema_step`.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import pandas as pd

from .errors import InsufficientDataError

PriceInput = Union[pd.Series, Sequence[float]]


def smoothing_factor(period: int) -> float:
    """Return ``k = 2 / (period + 1)``."""
    if period <= 0:
        raise ValueError("period must be a positive integer")
    return 2.0 / (period + 1)


def compute_seeded_ema(close: PriceInput, period: int) -> pd.Series:
    """
    Compute an EMA series index-aligned with ``close``.

    Entries ``0 .. period-1`` hold the seed (mean of the first ``period``
    closes); entry ``i >= period`` is ``(close[i] - ema[i-1]) * k + ema[i-1]``.
    Raises :class:`InsufficientDataError` when fewer than ``period`` closes
    are given.  The input is never modified.
    """
    k = smoothing_factor(period)
    if isinstance(close, pd.Series):
        index = close.index
        values = close.to_numpy(dtype=float)
    else:
        values = np.asarray(close, dtype=float)
        index = pd.RangeIndex(len(values))
    n = len(values)
    if n < period:
        raise InsufficientDataError(period, n)

    ema = np.empty(n, dtype=float)
    ema[:period] = values[:period].mean()
    prev = ema[period - 1]
    for i in range(period, n):
        prev = (values[i] - prev) * k + prev
        ema[i] = prev
    return pd.Series(ema, index=index, name=f"ema{period}")


def ema_step(base: float, price: float, period: int) -> float:
    """Advance an EMA value by one observation, without any retained state."""
    return (price - base) * smoothing_factor(period) + base


def compute_ema_pair(close: PriceInput, fast: int, slow: int) -> pd.DataFrame:
    """
    Compute the fast and slow seeded EMAs of one series.
    Returns a DataFrame with columns ema_fast and ema_slow.
    """
    ema_fast = compute_seeded_ema(close, fast)
    ema_slow = compute_seeded_ema(close, slow)
    return pd.DataFrame({"ema_fast": ema_fast, "ema_slow": ema_slow})
