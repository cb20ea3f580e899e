"""Static demo market: seed quotes plus a generated 30-day history per symbol.

The history is generated once, when the dataset is built, and never
regenerated for the life of the process.
"""

from __future__ import annotations

import logging
from datetime import date

from core.models.market import MockStock, StockSummary
from core.protocols import RandomSource
from market.history import (
    DEFAULT_AMPLITUDE,
    DEFAULT_DAYS,
    DEFAULT_DRIFT_BIAS,
    generate_history,
)
from market.random_source import SystemRandomSource

logger = logging.getLogger(__name__)

# symbol, name, sector, current price, previous close, change, change %, market cap
SEED_STOCKS: tuple[tuple[str, str, str, float, float, float, float, str], ...] = (
    ("AAPL", "Apple Inc.", "Technology", 189.45, 187.20, 2.25, 1.20, "$2.94T"),
    ("MSFT", "Microsoft Corporation", "Technology", 415.32, 412.10, 3.22, 0.78, "$3.08T"),
    ("GOOGL", "Alphabet Inc.", "Technology", 175.68, 173.90, 1.78, 1.02, "$2.18T"),
    ("AMZN", "Amazon.com Inc.", "Consumer Discretionary", 198.12, 195.40, 2.72, 1.39, "$2.07T"),
    ("NVDA", "NVIDIA Corporation", "Technology", 875.40, 862.15, 13.25, 1.54, "$2.15T"),
    ("TSLA", "Tesla Inc.", "Consumer Discretionary", 248.50, 252.30, -3.80, -1.51, "$792B"),
    ("META", "Meta Platforms Inc.", "Communication Services", 512.75, 508.20, 4.55, 0.90, "$1.31T"),
    ("JPM", "JPMorgan Chase & Co.", "Financials", 198.30, 196.80, 1.50, 0.76, "$572B"),
    ("JNJ", "Johnson & Johnson", "Healthcare", 152.40, 153.10, -0.70, -0.46, "$367B"),
    ("XOM", "Exxon Mobil Corporation", "Energy", 112.85, 111.20, 1.65, 1.48, "$449B"),
    ("BRK", "Berkshire Hathaway", "Financials", 358.90, 356.40, 2.50, 0.70, "$782B"),
    ("V", "Visa Inc.", "Financials", 278.60, 276.90, 1.70, 0.61, "$572B"),
)


def normalize_symbol(symbol: str) -> str:
    """Map user input to the dataset's uppercase ticker form."""
    return str(symbol or "").strip().upper()


class MarketDataset:
    """Immutable set of demo stocks keyed by symbol.

    Usage:
        dataset = MarketDataset(rng=SystemRandomSource())
        dataset.get("AAPL").history[-1].close
    """

    def __init__(
        self,
        rng: RandomSource | None = None,
        days: int = DEFAULT_DAYS,
        drift_bias: float = DEFAULT_DRIFT_BIAS,
        amplitude: float = DEFAULT_AMPLITUDE,
        end: date | None = None,
        seeds: tuple[tuple[str, str, str, float, float, float, float, str], ...] = SEED_STOCKS,
    ) -> None:
        rng = rng or SystemRandomSource()
        self._stocks: dict[str, MockStock] = {}

        for symbol, name, sector, price, prev_close, change, change_pct, cap in seeds:
            history = generate_history(
                price,
                rng,
                days=days,
                end=end,
                drift_bias=drift_bias,
                amplitude=amplitude,
            )
            self._stocks[symbol] = MockStock(
                symbol=symbol,
                name=name,
                sector=sector,
                current_price=price,
                previous_close=prev_close,
                change=change,
                change_percent=change_pct,
                market_cap=cap,
                history=history,
            )

        logger.info("Market dataset built: %d symbols, %d bars each", len(self._stocks), days + 1)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and normalize_symbol(symbol) in self._stocks

    def __len__(self) -> int:
        return len(self._stocks)

    @property
    def symbols(self) -> list[str]:
        return list(self._stocks)

    def get(self, symbol: str) -> MockStock | None:
        """Look up a stock; None for symbols outside the dataset."""
        return self._stocks.get(normalize_symbol(symbol))

    def all(self) -> list[MockStock]:
        return list(self._stocks.values())

    def last_close(self, symbol: str) -> float | None:
        stock = self.get(symbol)
        return stock.last_close if stock else None

    def sector_of(self, symbol: str) -> str | None:
        stock = self.get(symbol)
        return stock.sector if stock else None

    def summaries(self) -> list[StockSummary]:
        return [
            StockSummary(
                symbol=s.symbol,
                name=s.name,
                sector=s.sector,
                current_price=s.current_price,
                change_percent=s.change_percent,
                market_cap=s.market_cap,
                last_close=s.last_close,
            )
            for s in self._stocks.values()
        ]
