"""Core of the multi-resolution EMA crossover engine.

This package provides a Nobitex candle fetcher, SMA-seeded EMA helpers,
fast/slow crossover rules, and the reconciler that compares hourly-only,
minute-only and hybrid crossover detection bar by bar.  Apart from the
fetcher, all functions are side-effect free and deterministic when given
the same inputs.
"""

from .errors import CrossoverError, DataSourceError, InsufficientDataError
from .config import ReconcilerConfig
from .ohlc_fetcher import fetch_candles
from .indicators import compute_seeded_ema, compute_ema_pair, ema_step
from .rules import CrossSignal, check_cross, ema_cross_signal
from .reconciler import (
    CoarseReading,
    FineReading,
    HybridReading,
    ReconciledRow,
    ReconciliationResult,
    coarse_reading,
    fine_reading,
    hybrid_reading,
    reconcile,
    rows_to_frame,
)
from .runner import run_reconciliation

__all__ = [
    "CrossoverError",
    "DataSourceError",
    "InsufficientDataError",
    "ReconcilerConfig",
    "fetch_candles",
    "compute_seeded_ema",
    "compute_ema_pair",
    "ema_step",
    "CrossSignal",
    "check_cross",
    "ema_cross_signal",
    "CoarseReading",
    "FineReading",
    "HybridReading",
    "ReconciledRow",
    "ReconciliationResult",
    "coarse_reading",
    "fine_reading",
    "hybrid_reading",
    "reconcile",
    "rows_to_frame",
    "run_reconciliation",
]
