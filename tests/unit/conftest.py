import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def fake_fetch():
    """
    Stand-in for ``fetch_candles`` producing a deterministic sine-shaped
    series for any range.  Calls are recorded on ``fake_fetch.calls``.
    """
    calls = []

    async def fetch(symbol, resolution, start, end, client=None):
        calls.append((symbol, resolution, start, end))
        freq = "60min" if resolution == "60" else "1min"
        idx = pd.date_range(pd.Timestamp(start).ceil(freq), end, freq=freq, name="date")
        minutes = (idx - idx[0]).total_seconds().to_numpy() / 60.0
        close = 100.0 + 5.0 * np.sin(minutes / 45.0)
        return pd.DataFrame({"close": close}, index=idx)

    fetch.calls = calls
    return fetch
