"""
Print the hourly / minute / hybrid crossover table for one instrument.

Environment variables:

* CROSSOVER_SYMBOL, CROSSOVER_COARSE_RESOLUTION, CROSSOVER_FINE_RESOLUTION,
  CROSSOVER_FAST_PERIOD, CROSSOVER_SLOW_PERIOD, CROSSOVER_SEED_LOOKBACK:
  see :class:`crossover.config.ReconcilerConfig`
* REPORT_START_SHAMSI: first bar to report, Shamsi local time
  (default: 1404/02/29 00:00)
* REPORT_TIMEZONE: timezone of the start time and the table (default: Asia/Tehran)
* REPORT_CHART_PATH: also save a PNG chart there when set

Run with ``python -m crossover`` or the ``crossover-report`` script.
"""
from __future__ import annotations

import asyncio
import sys

from .config import ReconcilerConfig, _env
from .errors import DataSourceError, InsufficientDataError
from .report import DEFAULT_TIMEZONE, format_table, parse_shamsi, plot_reconciliation
from .runner import run_reconciliation


def main() -> int:
    tz = _env("REPORT_TIMEZONE", DEFAULT_TIMEZONE)
    try:
        config = ReconcilerConfig.from_env()
        start = parse_shamsi(_env("REPORT_START_SHAMSI", "1404/02/29 00:00"), tz)
    except ValueError as e:
        print(f"[crossover] Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        result = asyncio.run(run_reconciliation(config, start.to_pydatetime()))
    except (DataSourceError, InsufficientDataError) as e:
        print(f"[crossover] Failed: {e}", file=sys.stderr)
        return 1

    print(format_table(result.rows, tz))
    chart_path = _env("REPORT_CHART_PATH")
    if chart_path:
        plot_reconciliation(result, chart_path, symbol=config.symbol)
        print(f"[crossover] Chart saved to {chart_path}")
    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
