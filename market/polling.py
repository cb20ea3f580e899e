"""Live price subscription -- turns the pull-based generator into a push feed.

Each subscription owns one live session: the price it opened at, the previous
tick and the current tick. Every `interval_ms` it asks the shared generator
for a fresh price and hands a LiveQuote to its callback.

1. start(): fetch one price, use it as price, previous price and session open
2. every tick: previous <- price, price <- next generated price
3. set_symbol(): a different symbol opens a new session immediately
4. stop(): cancel the timer; nothing is generated for this subscription after
"""

from __future__ import annotations

import asyncio
import logging
from inspect import isawaitable
from typing import Any, Awaitable, Callable

from core.models.market import LiveQuote
from market.dataset import normalize_symbol
from market.live_price import LivePriceGenerator

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 3000

TickCallback = Callable[[LiveQuote], Awaitable[Any] | Any]


class LivePriceSubscription:
    """Timer-driven consumer of the live price generator.

    Usage:
        sub = LivePriceSubscription(generator, "AAPL", on_tick=print)
        sub.start()
        ...
        sub.stop()

    or as an async context manager:
        async with LivePriceSubscription(generator, "AAPL") as sub:
            await asyncio.sleep(10)
            print(sub.quote)
    """

    def __init__(
        self,
        generator: LivePriceGenerator,
        symbol: str,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        on_tick: TickCallback | None = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._generator = generator
        self._symbol = normalize_symbol(symbol)
        self._interval_ms = interval_ms
        self._on_tick = on_tick
        self._running = False
        self._task: asyncio.Task | None = None

        self._price = 0.0
        self._previous_price = 0.0
        self._session_open_price = 0.0
        self._ticks = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ticks(self) -> int:
        """Number of ticks taken in the current session."""
        return self._ticks

    @property
    def quote(self) -> LiveQuote:
        return LiveQuote.from_session(
            symbol=self._symbol,
            price=self._price,
            previous_price=self._previous_price,
            session_open_price=self._session_open_price,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> LiveQuote:
        """Open a fresh session and start the timer.

        Must be called from a running event loop. Starting an already running
        subscription is a no-op that returns the current quote.
        """
        if self._running:
            return self.quote
        self._open_session()
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.debug("Live price subscription started: %s every %dms", self._symbol, self._interval_ms)
        return self.quote

    def stop(self) -> None:
        """Cancel the timer. Synchronous: no tick runs after this returns."""
        if not self._running and self._task is None:
            return
        self._running = False
        if self._task is not None:
            self._task.cancel()
        logger.debug("Live price subscription stopped: %s", self._symbol)

    async def aclose(self) -> None:
        """Stop and wait for the timer task to finish unwinding."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def __aenter__(self) -> LivePriceSubscription:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def set_symbol(self, symbol: str) -> LiveQuote:
        """Switch symbols. A different symbol always opens a new session."""
        key = normalize_symbol(symbol)
        if key == self._symbol:
            return self.quote
        self._symbol = key
        if self._running:
            self._restart_timer()
            self._open_session()
        return self.quote

    def set_interval(self, interval_ms: int) -> None:
        """Change the polling interval, keeping the current session."""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        if interval_ms == self._interval_ms:
            return
        self._interval_ms = interval_ms
        if self._running:
            self._restart_timer()

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def tick(self) -> LiveQuote:
        """Advance one step immediately (the timer calls this too)."""
        next_price = self._generator.next_price(self._symbol)
        self._previous_price = self._price
        self._price = next_price
        self._ticks += 1
        return self.quote

    def _open_session(self) -> None:
        initial = self._generator.next_price(self._symbol)
        self._price = initial
        self._previous_price = initial
        self._session_open_price = initial
        self._ticks = 0

    def _restart_timer(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def _loop(self) -> None:
        """Tick every interval until stopped."""
        while self._running:
            await asyncio.sleep(self._interval_ms / 1000)
            if not self._running:
                break
            try:
                quote = self.tick()
                await self._emit(quote)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error in live price tick for %s", self._symbol)

    async def _emit(self, quote: LiveQuote) -> None:
        if self._on_tick is None:
            return
        result = self._on_tick(quote)
        if isawaitable(result):
            await result
