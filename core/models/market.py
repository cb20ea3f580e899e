"""Market data models -- seed stocks, daily bars and live quotes."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class HistoricalBar(BaseModel):
    """One synthetic trading day. Immutable once generated."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    open: float
    high: float
    low: float
    close: float
    volume: int


class MockStock(BaseModel):
    """A stock in the static demo dataset, with its generated history."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    sector: str
    current_price: float
    previous_close: float
    change: float
    change_percent: float
    market_cap: str
    history: tuple[HistoricalBar, ...] = ()

    @property
    def last_close(self) -> float:
        """Close of the most recent bar, or the quoted price without history."""
        if self.history:
            return self.history[-1].close
        return self.current_price


class LiveQuote(BaseModel):
    """Snapshot emitted by a live price subscription on every tick.

    `session_open_price` is the first price seen by the subscription for the
    current symbol; percentage change is measured against it.
    """

    symbol: str
    price: float
    previous_price: float
    session_open_price: float
    change_percent: float = 0.0
    absolute_change: float = 0.0
    is_up: bool = True

    @classmethod
    def from_session(
        cls,
        symbol: str,
        price: float,
        previous_price: float,
        session_open_price: float,
    ) -> LiveQuote:
        absolute_change = price - session_open_price
        change_percent = (
            absolute_change / session_open_price * 100 if session_open_price != 0 else 0.0
        )
        return cls(
            symbol=symbol,
            price=price,
            previous_price=previous_price,
            session_open_price=session_open_price,
            change_percent=change_percent,
            absolute_change=absolute_change,
            is_up=price >= previous_price,
        )


class StockSummary(BaseModel):
    """Dataset row without history, as listed by the API."""

    symbol: str
    name: str
    sector: str
    current_price: float
    change_percent: float
    market_cap: str
    last_close: float = Field(default=0.0)
