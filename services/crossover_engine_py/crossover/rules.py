"""
Crossover rules for a fast/slow moving-average pair.

``check_cross`` classifies a single step of the pair.  ``ema_cross_signal``
applies the same rule to every consecutive pair of two aligned series and
returns a pandas Series with +1 for a bullish crossover, -1 for a bearish
one and 0 otherwise.

A value equal to the other average counts as "not yet crossed" on the
previous side; a signal needs the current pair to be strictly apart.
"""
from __future__ import annotations

from enum import Enum

import pandas as pd


class CrossSignal(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NONE = "NONE"

    @property
    def sign(self) -> int:
        return {"BUY": 1, "SELL": -1, "NONE": 0}[self.value]

    @classmethod
    def from_sign(cls, value: int) -> "CrossSignal":
        if value > 0:
            return cls.BUY
        if value < 0:
            return cls.SELL
        return cls.NONE


def check_cross(
    prev_fast: float, prev_slow: float, cur_fast: float, cur_slow: float
) -> CrossSignal:
    """
    BUY when fast moves from at-or-below slow to strictly above it, SELL for
    the mirrored move, NONE otherwise.
    """
    if prev_fast <= prev_slow and cur_fast > cur_slow:
        return CrossSignal.BUY
    if prev_fast >= prev_slow and cur_fast < cur_slow:
        return CrossSignal.SELL
    return CrossSignal.NONE


def _cross_up(fast: pd.Series, slow: pd.Series) -> pd.Series:
    """Return True where fast crosses strictly above slow."""
    return (fast.shift(1) <= slow.shift(1)) & (fast > slow)


def _cross_down(fast: pd.Series, slow: pd.Series) -> pd.Series:
    """Return True where fast crosses strictly below slow."""
    return (fast.shift(1) >= slow.shift(1)) & (fast < slow)


def ema_cross_signal(fast: pd.Series, slow: pd.Series) -> pd.Series:
    """
    Generate +1 at index i when the pair (i-1, i) is a bullish crossover and
    -1 when it is a bearish one.  The first entry has no predecessor and is
    always 0.
    """
    if len(fast) != len(slow):
        raise ValueError("fast and slow series must have the same length")
    up = _cross_up(fast, slow)
    down = _cross_down(fast, slow)
    s = pd.Series(0, index=fast.index, dtype="int8")
    s.loc[up] = 1
    s.loc[down] = -1
    return s
