"""Simulated live prices -- a bounded random walk per symbol.

The first price for a symbol is its last historical close (or the default
seed for symbols outside the dataset). Every later call moves the price by a
uniform relative step in [-max_step, +max_step] and rounds to cents.

State is shared by every caller in the process: two consumers polling the
same symbol extend one drifting series.
"""

from __future__ import annotations

import logging
import threading

from core.protocols import RandomSource
from market.dataset import MarketDataset, normalize_symbol
from market.random_source import SystemRandomSource

logger = logging.getLogger(__name__)

DEFAULT_SEED_PRICE = 100.0
MAX_STEP = 0.005


class PriceStateStore:
    """Process-wide map of symbol -> last emitted price.

    Guarded by a lock so the walk stays consistent if a generator is ever
    shared with worker threads.
    """

    def __init__(self) -> None:
        self._prices: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    def get(self, symbol: str) -> float | None:
        return self._prices.get(symbol)

    def set(self, symbol: str, price: float) -> None:
        self._prices[symbol] = price

    def pop(self, symbol: str) -> float | None:
        return self._prices.pop(symbol, None)

    def clear(self) -> None:
        self._prices.clear()

    def snapshot(self) -> dict[str, float]:
        with self._lock:
            return dict(self._prices)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._prices


class LivePriceGenerator:
    """Produces the next simulated price for a symbol.

    Never raises for a string symbol: unknown tickers start from
    `default_price`.
    """

    def __init__(
        self,
        dataset: MarketDataset,
        rng: RandomSource | None = None,
        store: PriceStateStore | None = None,
        default_price: float = DEFAULT_SEED_PRICE,
        max_step: float = MAX_STEP,
    ) -> None:
        self._dataset = dataset
        self._rng = rng or SystemRandomSource()
        self._store = store or PriceStateStore()
        self._default_price = default_price
        self._max_step = max_step

    @property
    def dataset(self) -> MarketDataset:
        return self._dataset

    @property
    def max_step(self) -> float:
        return self._max_step

    def seed_price(self, symbol: str) -> float:
        """Price a symbol starts from before any step is applied."""
        last_close = self._dataset.last_close(symbol)
        base = last_close if last_close is not None else self._default_price
        return round(base, 2)

    def next_price(self, symbol: str) -> float:
        """Advance the symbol's walk by one step and return the new price."""
        key = normalize_symbol(symbol)
        with self._store.lock:
            prev = self._store.get(key)
            if prev is None:
                price = self.seed_price(key)
                logger.debug("Seeded live price for %s at %.2f", key, price)
            else:
                step = self._rng.uniform(-self._max_step, self._max_step)
                price = round(prev + prev * step, 2)
            self._store.set(key, price)
            return price

    def peek(self, symbol: str) -> float | None:
        """Last emitted price without advancing the walk."""
        with self._store.lock:
            return self._store.get(normalize_symbol(symbol))

    def reseed(self, symbol: str, price: float | None = None) -> None:
        """Restart a symbol's walk.

        With a price, the next step starts from it; without one, the next
        call seeds from the historical close again.
        """
        key = normalize_symbol(symbol)
        with self._store.lock:
            if price is None:
                self._store.pop(key)
            else:
                self._store.set(key, round(price, 2))
        logger.info("Reseeded live price for %s", key)

    def reset(self) -> None:
        """Forget every symbol's walk."""
        with self._store.lock:
            self._store.clear()
