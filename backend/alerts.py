"""Market alert watcher."""

from __future__ import annotations

import asyncio
import logging

from backend.queries import DataAccess
from core.bus import AsyncIOBus
from core.errors import BackendUnavailableError
from core.models.backend import Alert
from core.models.events import Event, EventTypes

logger = logging.getLogger(__name__)


class MarketAlertWatcher:
    """Announce newly triggered high/critical market alerts.

    The first successful fetch only records the alerts already present;
    after that every poll that turns up unseen urgent alerts publishes one
    `alert.triggered` event carrying them.
    """

    def __init__(
        self,
        bus: AsyncIOBus,
        data: DataAccess,
        check_interval_seconds: float = 30,
    ) -> None:
        self._bus = bus
        self._data = data
        self._check_interval_seconds = max(1.0, float(check_interval_seconds))
        self._seen_ids: set[int] = set()
        self._primed = False
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def primed(self) -> bool:
        return self._primed

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Market alert watcher started (check every %ds)",
            self._check_interval_seconds,
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Market alert watcher stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.check_once()
            except BackendUnavailableError:
                logger.debug("Market alert check skipped: backend unavailable")
            except Exception:
                logger.exception("Market alert check failed")
            await asyncio.sleep(self._check_interval_seconds)

    async def check_once(self) -> list[Alert]:
        """Fetch alerts once; return the urgent alerts that are new."""
        alerts = await self._data.get_market_alerts(refresh=True)
        urgent = [alert for alert in alerts if alert.is_urgent]

        if not self._primed:
            self._seen_ids.update(alert.id for alert in urgent)
            self._primed = True
            logger.debug("Market alert watcher primed with %d urgent alerts", len(urgent))
            return []

        fresh = [alert for alert in urgent if alert.id not in self._seen_ids]
        if not fresh:
            return []

        self._seen_ids.update(alert.id for alert in fresh)
        logger.info("%d new urgent market alert(s)", len(fresh))
        await self._bus.publish(Event(
            type=EventTypes.ALERT_TRIGGERED,
            source="market_alerts",
            payload={
                "count": len(fresh),
                "alerts": [alert.model_dump(mode="json") for alert in fresh],
            },
        ))
        return fresh
