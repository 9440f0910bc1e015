"""Run configuration for the crossover reconciler.

Values can be passed explicitly or read from the environment with
:meth:`ReconcilerConfig.from_env`.
"""
from __future__ import annotations

import datetime as dt
import os
from dataclasses import dataclass
from typing import Dict, Optional

# Nobitex UDF resolutions
RESOLUTIONS: Dict[str, dt.timedelta] = {
    "1": dt.timedelta(minutes=1),
    "5": dt.timedelta(minutes=5),
    "15": dt.timedelta(minutes=15),
    "30": dt.timedelta(minutes=30),
    "60": dt.timedelta(hours=1),
    "180": dt.timedelta(hours=3),
    "240": dt.timedelta(hours=4),
    "360": dt.timedelta(hours=6),
    "720": dt.timedelta(hours=12),
    "D": dt.timedelta(days=1),
    "2D": dt.timedelta(days=2),
    "3D": dt.timedelta(days=3),
}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read an env var, stripping whitespace and surrounding quotes."""
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
        v = v[1:-1].strip()
    return v or default


def resolution_to_timedelta(resolution: str) -> dt.timedelta:
    try:
        return RESOLUTIONS[resolution.upper()]
    except KeyError:
        raise ValueError(f"Unknown resolution {resolution!r}") from None


@dataclass(frozen=True)
class ReconcilerConfig:
    symbol: str = "USDTIRT"
    coarse_resolution: str = "60"
    fine_resolution: str = "1"
    fast_period: int = 9
    slow_period: int = 21
    seed_lookback: int = 21

    def __post_init__(self):
        if not self.symbol:
            raise ValueError("symbol must not be empty")
        for name in ("fast_period", "slow_period", "seed_lookback"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be a positive integer")
        if self.fast_period >= self.slow_period:
            raise ValueError("fast_period must be smaller than slow_period")
        coarse = resolution_to_timedelta(self.coarse_resolution)
        fine = resolution_to_timedelta(self.fine_resolution)
        if fine >= coarse:
            raise ValueError("fine_resolution must be finer than coarse_resolution")

    @property
    def coarse_bar(self) -> dt.timedelta:
        return resolution_to_timedelta(self.coarse_resolution)

    @property
    def fine_bar(self) -> dt.timedelta:
        return resolution_to_timedelta(self.fine_resolution)

    @property
    def lookback(self) -> dt.timedelta:
        """How far before the report start both series must reach."""
        return self.coarse_bar * self.seed_lookback

    @classmethod
    def from_env(cls) -> "ReconcilerConfig":
        defaults = cls()
        return cls(
            symbol=_env("CROSSOVER_SYMBOL", defaults.symbol),
            coarse_resolution=_env("CROSSOVER_COARSE_RESOLUTION", defaults.coarse_resolution),
            fine_resolution=_env("CROSSOVER_FINE_RESOLUTION", defaults.fine_resolution),
            fast_period=int(_env("CROSSOVER_FAST_PERIOD", str(defaults.fast_period))),
            slow_period=int(_env("CROSSOVER_SLOW_PERIOD", str(defaults.slow_period))),
            seed_lookback=int(_env("CROSSOVER_SEED_LOOKBACK", str(defaults.seed_lookback))),
        )
