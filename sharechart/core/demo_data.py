from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import numpy as np

_DEMO_PERIODS = {"1w": 168, "1d": 24, "4h": 24}


def demo_periods(timeframe: str, limit: int = 100) -> int:
    return min(_DEMO_PERIODS.get(timeframe, 60), int(limit))


def generate_demo_ohlc(
    base_price: float,
    periods: int,
    volatility: float = 0.05,
    now: Optional[datetime] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[Dict[str, Any]]:
    """
    Hourly random-walk rows in the same shape the market API returns.

    Used when no price history is available, and by the demo entry point.
    """
    if periods <= 0:
        return []
    if rng is None:
        rng = np.random.default_rng()
    if now is None:
        now = datetime.now(timezone.utc)
    now = now.replace(minute=0, second=0, microsecond=0)

    changes = (rng.random(periods) - 0.5) * 2 * volatility
    wick_up = rng.random(periods) * volatility * 0.5
    wick_down = rng.random(periods) * volatility * 0.5
    volumes = rng.integers(50, 550, size=periods)

    rows = []
    price = float(base_price)
    for i in range(periods):
        period_start = now - timedelta(hours=periods - 1 - i)
        open_price = round(price, 4)
        close_price = round(price * (1 + changes[i]), 4)
        high = round(max(open_price, close_price) * (1 + wick_up[i]), 4)
        low = round(min(open_price, close_price) * (1 - wick_down[i]), 4)
        rows.append(
            {
                "period_start": period_start.isoformat().replace("+00:00", "Z"),
                "open": open_price,
                "high": max(high, open_price, close_price),
                "low": min(low, open_price, close_price),
                "close": close_price,
                "volume": int(volumes[i]),
            }
        )
        price = close_price
    return rows
