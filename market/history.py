"""Synthetic daily OHLCV history for the demo dataset.

The walk is intentionally skewed: each day's change is drawn from
`(U(0,1) - drift_bias) * price * amplitude`, so with the default bias of 0.48
prices drift slightly upward on average. A close can never fall below half of
the previous close.
"""

from __future__ import annotations

import math
from datetime import date, timedelta

from core.models.market import HistoricalBar
from core.protocols import RandomSource

DEFAULT_DAYS = 30
DEFAULT_DRIFT_BIAS = 0.48
DEFAULT_AMPLITUDE = 0.03
WICK_JITTER = 0.015
FLOOR_RATIO = 0.5
MIN_VOLUME = 10_000_000
VOLUME_RANGE = 50_000_000


def generate_history(
    base_price: float,
    rng: RandomSource,
    days: int = DEFAULT_DAYS,
    end: date | None = None,
    drift_bias: float = DEFAULT_DRIFT_BIAS,
    amplitude: float = DEFAULT_AMPLITUDE,
) -> tuple[HistoricalBar, ...]:
    """Generate `days + 1` bars, oldest first, the last one dated `end`.

    Args:
        base_price: Opening price of the oldest bar.
        rng: Source of uniform draws.
        days: Number of days before `end` to start from.
        end: Date of the newest bar (defaults to today).
        drift_bias: Subtracted from each unit draw before scaling.
        amplitude: Maximum relative daily move.
    """
    if days < 0:
        raise ValueError(f"days must be >= 0, got {days}")

    end = end or date.today()
    bars: list[HistoricalBar] = []
    price = float(base_price)

    for offset in range(days, -1, -1):
        change = (rng.uniform(0.0, 1.0) - drift_bias) * price * amplitude
        open_ = price
        price = max(price + change, price * FLOOR_RATIO)
        high = max(open_, price) * (1 + rng.uniform(0.0, 1.0) * WICK_JITTER)
        low = min(open_, price) * (1 - rng.uniform(0.0, 1.0) * WICK_JITTER)
        volume = math.floor(rng.uniform(0.0, 1.0) * VOLUME_RANGE + MIN_VOLUME)

        bars.append(HistoricalBar(
            date=end - timedelta(days=offset),
            open=round(open_, 2),
            high=round(high, 2),
            low=round(low, 2),
            close=round(price, 2),
            volume=volume,
        ))

    return tuple(bars)
