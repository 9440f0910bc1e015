"""
Presentation helpers for reconciliation results.

Rows are rendered as a fixed-width console table with Solar Hijri
(Shamsi) timestamps in a local timezone, or drawn as a chart of the
coarse EMAs with the coarse crossovers marked.
"""
from __future__ import annotations

import os
from typing import Iterable, List, Optional

import jdatetime
import matplotlib
matplotlib.use("Agg")  # allow headless environments
import matplotlib.pyplot as plt
import pandas as pd

from .reconciler import ReconciledRow, ReconciliationResult
from .rules import CrossSignal

DEFAULT_TIMEZONE = "Asia/Tehran"
SHAMSI_FORMAT = "%Y/%m/%d %H:%M"

TABLE_HEADER = (
    "Time (Shamsi)   | Hybrid   | HBuy/Hsell Prices | Hourly  | HrPrice | PM Buy/Sell | PM Prices"
)
TABLE_RULE = (
    "---------------|----------|-------------------|---------|---------|-------------|-----------"
)


def parse_shamsi(text: str, tz: str = DEFAULT_TIMEZONE) -> pd.Timestamp:
    """Parse a Shamsi local time such as ``1404/02/29 00:00`` into UTC."""
    try:
        local = jdatetime.datetime.strptime(text.strip(), SHAMSI_FORMAT).togregorian()
    except ValueError as e:
        raise ValueError(f"Invalid Shamsi datetime {text!r}, expected YYYY/MM/DD HH:MM") from e
    return pd.Timestamp(local).tz_localize(tz).tz_convert("UTC")


def shamsi_label(ts: pd.Timestamp, tz: str = DEFAULT_TIMEZONE) -> str:
    """Render a UTC timestamp as ``YYYY/MM/DD HH:00`` in Shamsi local time."""
    t = pd.Timestamp(ts)
    t = t.tz_localize("UTC") if t.tz is None else t
    local = t.tz_convert(tz).to_pydatetime().replace(tzinfo=None)
    j = jdatetime.datetime.fromgregorian(datetime=local)
    return f"{j.year:04d}/{j.month:02d}/{j.day:02d} {local.hour:02d}:00"


def _price(label: str, value: Optional[float]) -> str:
    return f"{label}:{value:.2f}" if value is not None else f"{label}:-"


def format_row(row: ReconciledRow, tz: str = DEFAULT_TIMEZONE) -> str:
    hybrid_prices = (
        _price("B", row.hybrid.min_buy_price if row.hybrid.buy_count else None)
        + "/"
        + _price("S", row.hybrid.max_sell_price if row.hybrid.sell_count else None)
    )
    fine_count = f"B:{row.fine.buy_count}/S:{row.fine.sell_count}"
    fine_prices = (
        _price("MinB", row.fine.min_buy_price if row.fine.buy_count else None)
        + "/"
        + _price("MaxS", row.fine.max_sell_price if row.fine.sell_count else None)
    )
    return (
        f"{shamsi_label(row.coarse_bar_start, tz)} | "
        f"{row.hybrid.first_signal.value:<8} | "
        f"{hybrid_prices:<17} | "
        f"{row.coarse.signal.value:<7} | "
        f"{row.coarse.close:7.2f} | "
        f"{fine_count:<11} | "
        f"{fine_prices}"
    )


def format_table(rows: Iterable[ReconciledRow], tz: str = DEFAULT_TIMEZONE) -> str:
    lines: List[str] = [TABLE_HEADER, TABLE_RULE]
    lines.extend(format_row(row, tz) for row in rows)
    return "\n".join(lines)


def _naive_utc(ts):
    """Convert to UTC and drop the timezone."""
    return ts.tz_convert("UTC").tz_localize(None) if ts.tz is not None else ts


def plot_reconciliation(
    result: ReconciliationResult,
    output_path: str,
    symbol: str = "",
) -> str:
    """
    Save a PNG with the coarse fast/slow EMAs and markers at the coarse
    bars whose crossover reading is BUY or SELL.  Returns the file path.
    """
    fig, ax = plt.subplots(figsize=(10, 5))
    times = _naive_utc(result.coarse_fast.index)
    ax.plot(times, result.coarse_fast.values, color="blue", label="Fast EMA")
    ax.plot(times, result.coarse_slow.values, color="orange", label="Slow EMA")

    buys = [r for r in result.rows if r.coarse.signal is CrossSignal.BUY]
    sells = [r for r in result.rows if r.coarse.signal is CrossSignal.SELL]
    if buys:
        ax.scatter([_naive_utc(r.coarse_bar_start) for r in buys], [r.coarse.close for r in buys],
                   marker="^", color="green", label="BUY", zorder=3)
    if sells:
        ax.scatter([_naive_utc(r.coarse_bar_start) for r in sells], [r.coarse.close for r in sells],
                   marker="v", color="red", label="SELL", zorder=3)

    ax.set_title(f"{symbol} EMA crossovers".strip())
    ax.set_ylabel("Price")
    ax.legend(loc="upper left", fontsize=7)

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)
    return output_path
