"""
Reconcile EMA crossover signals across a coarse and a fine resolution.

For every coarse bar ``h`` (except the last, which has no successor) three
readings are taken over the interval ``[coarse[h].time, coarse[h+1].time]``:

* hybrid: each fine close in the interval advances the coarse EMAs at ``h``
  by one step, and the projected pair is compared with the coarse pair.
  The bases stay fixed for the whole interval, so each tick answers "would
  this price have crossed the averages, given the trend at the start of
  the bar?".
* coarse: the crossover the coarse series itself shows between ``h`` and
  ``h+1``.
* fine: crossovers of the true, chained fine-resolution EMAs inside the
  interval.

Interval bounds are inclusive on both ends, so a fine bar stamped exactly
on a coarse boundary is counted in both neighbouring intervals.

Everything here is a pure function of its inputs; fetching data happens in
:mod:`crossover.runner`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .config import ReconcilerConfig
from .indicators import compute_seeded_ema, ema_step
from .rules import CrossSignal, check_cross, ema_cross_signal

logger = logging.getLogger("reconciler")


@dataclass(frozen=True)
class HybridReading:
    first_signal: CrossSignal = CrossSignal.NONE
    buy_count: int = 0
    sell_count: int = 0
    min_buy_price: Optional[float] = None
    max_sell_price: Optional[float] = None


@dataclass(frozen=True)
class CoarseReading:
    signal: CrossSignal
    close: float


@dataclass(frozen=True)
class FineReading:
    buy_count: int = 0
    sell_count: int = 0
    min_buy_price: Optional[float] = None
    max_sell_price: Optional[float] = None


@dataclass(frozen=True)
class ReconciledRow:
    """All three readings for one coarse bar."""
    coarse_bar_start: pd.Timestamp
    hybrid: HybridReading
    coarse: CoarseReading
    fine: FineReading

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coarse_bar_start": self.coarse_bar_start,
            "hybrid_first_signal": self.hybrid.first_signal.value,
            "hybrid_buy_count": self.hybrid.buy_count,
            "hybrid_sell_count": self.hybrid.sell_count,
            "hybrid_min_buy_price": self.hybrid.min_buy_price,
            "hybrid_max_sell_price": self.hybrid.max_sell_price,
            "coarse_signal": self.coarse.signal.value,
            "coarse_close": self.coarse.close,
            "fine_buy_count": self.fine.buy_count,
            "fine_sell_count": self.fine.sell_count,
            "fine_min_buy_price": self.fine.min_buy_price,
            "fine_max_sell_price": self.fine.max_sell_price,
        }


ROW_FIELDS = (
    "coarse_bar_start",
    "hybrid_first_signal",
    "hybrid_buy_count",
    "hybrid_sell_count",
    "hybrid_min_buy_price",
    "hybrid_max_sell_price",
    "coarse_signal",
    "coarse_close",
    "fine_buy_count",
    "fine_sell_count",
    "fine_min_buy_price",
    "fine_max_sell_price",
)


@dataclass
class ReconciliationResult:
    rows: List[ReconciledRow]
    coarse_fast: pd.Series
    coarse_slow: pd.Series
    fine_fast: pd.Series
    fine_slow: pd.Series


def fine_window(
    fine_index: pd.Index, start: pd.Timestamp, end: pd.Timestamp
) -> Tuple[int, int]:
    """
    Return ``(first, last)`` positions of the fine bars with
    ``start <= time <= end``.  ``first`` is ``len(fine_index)`` when no bar
    is at or after ``start``; the window is empty whenever ``last < first``.
    """
    first = int(fine_index.searchsorted(start, side="left"))
    last = int(fine_index.searchsorted(end, side="right")) - 1
    return first, last


def hybrid_reading(
    closes: pd.Series,
    base_fast: float,
    base_slow: float,
    fast_period: int,
    slow_period: int,
) -> HybridReading:
    """
    Project the coarse EMA pair ``(base_fast, base_slow)`` one step forward
    with every close in ``closes`` and count the crossovers.  Each close is
    measured against the same bases.
    """
    buy_count = sell_count = 0
    min_buy: Optional[float] = None
    max_sell: Optional[float] = None
    first = CrossSignal.NONE
    for price in closes.to_numpy(dtype=float):
        price = float(price)
        cur_fast = ema_step(base_fast, price, fast_period)
        cur_slow = ema_step(base_slow, price, slow_period)
        sig = check_cross(base_fast, base_slow, cur_fast, cur_slow)
        if sig is CrossSignal.NONE:
            continue
        if first is CrossSignal.NONE:
            first = sig
        if sig is CrossSignal.BUY:
            buy_count += 1
            min_buy = price if min_buy is None else min(min_buy, price)
        else:
            sell_count += 1
            max_sell = price if max_sell is None else max(max_sell, price)
    return HybridReading(first, buy_count, sell_count, min_buy, max_sell)


def coarse_reading(
    coarse_close: pd.Series, coarse_fast: pd.Series, coarse_slow: pd.Series, h: int
) -> CoarseReading:
    """Crossover between coarse bars ``h`` and ``h+1``, with the close at ``h``."""
    signal = check_cross(
        coarse_fast.iloc[h], coarse_slow.iloc[h],
        coarse_fast.iloc[h + 1], coarse_slow.iloc[h + 1],
    )
    return CoarseReading(signal, float(coarse_close.iloc[h]))


def fine_reading(
    fine_close: pd.Series,
    fine_fast: pd.Series,
    fine_slow: pd.Series,
    start: pd.Timestamp,
    end: pd.Timestamp,
) -> FineReading:
    """
    Count crossovers of the chained fine EMAs between consecutive fine bars
    inside ``[start, end]``.  Fewer than two bars in the window gives an
    empty reading.
    """
    first, last = fine_window(fine_close.index, start, end)
    if first >= len(fine_close) or last <= first:
        return FineReading()

    signal = ema_cross_signal(
        fine_fast.iloc[first:last + 1], fine_slow.iloc[first:last + 1]
    )
    closes = fine_close.iloc[first:last + 1]
    buys = closes[signal > 0]
    sells = closes[signal < 0]
    return FineReading(
        buy_count=len(buys),
        sell_count=len(sells),
        min_buy_price=float(buys.min()) if len(buys) else None,
        max_sell_price=float(sells.max()) if len(sells) else None,
    )


def reconcile(
    coarse_close: pd.Series,
    fine_close: pd.Series,
    start_index: int = 0,
    config: Optional[ReconcilerConfig] = None,
) -> ReconciliationResult:
    """
    Build one :class:`ReconciledRow` per coarse bar from ``start_index`` to
    ``len(coarse_close) - 2``.

    Both inputs are close prices on time-ordered, duplicate-free indexes of
    comparable timestamps.  Raises :class:`InsufficientDataError` when
    either series is shorter than the slow period; nothing is returned in
    that case.
    """
    config = config or ReconcilerConfig()
    if start_index < 0:
        raise ValueError("start_index must be non-negative")

    coarse_fast = compute_seeded_ema(coarse_close, config.fast_period)
    coarse_slow = compute_seeded_ema(coarse_close, config.slow_period)
    fine_fast = compute_seeded_ema(fine_close, config.fast_period)
    fine_slow = compute_seeded_ema(fine_close, config.slow_period)

    rows: List[ReconciledRow] = []
    times = coarse_close.index
    for h in range(start_index, len(coarse_close) - 1):
        start, end = times[h], times[h + 1]
        first, last = fine_window(fine_close.index, start, end)
        segment = fine_close.iloc[first:last + 1]
        rows.append(
            ReconciledRow(
                coarse_bar_start=start,
                hybrid=hybrid_reading(
                    segment,
                    float(coarse_fast.iloc[h]),
                    float(coarse_slow.iloc[h]),
                    config.fast_period,
                    config.slow_period,
                ),
                coarse=coarse_reading(coarse_close, coarse_fast, coarse_slow, h),
                fine=fine_reading(fine_close, fine_fast, fine_slow, start, end),
            )
        )

    logger.debug(
        "Reconciled %d coarse bars (%d coarse, %d fine closes, start index %d)",
        len(rows), len(coarse_close), len(fine_close), start_index,
    )
    return ReconciliationResult(rows, coarse_fast, coarse_slow, fine_fast, fine_slow)


def rows_to_frame(result: ReconciliationResult) -> pd.DataFrame:
    """Flatten the reconciled rows into a DataFrame indexed by coarse bar start."""
    frame = pd.DataFrame.from_records(
        [row.to_dict() for row in result.rows], columns=list(ROW_FIELDS)
    )
    return frame.set_index("coarse_bar_start")
