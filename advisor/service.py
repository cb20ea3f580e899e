"""Advisor chat service -- answers a message and records it with the backend."""

from __future__ import annotations

import logging

from advisor.context import build_advisor_context
from advisor.engine import AdvisorEngine
from backend.queries import DataAccess
from core.errors import BackendCallError, BackendUnavailableError
from core.models.advisor import AdvisorReply
from core.models.events import Event, EventTypes
from core.protocols import EventBus

logger = logging.getLogger(__name__)


class AdvisorService:
    """Chat entry point used by the HTTP API and the CLI."""

    def __init__(
        self,
        engine: AdvisorEngine | None = None,
        data: DataAccess | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._engine = engine or AdvisorEngine()
        self._data = data
        self._bus = bus

    @property
    def engine(self) -> AdvisorEngine:
        return self._engine

    async def handle_message(self, content: str) -> AdvisorReply:
        """Reply to `content`.

        The reply never depends on the backend write: if sendMessage fails
        the reply is still returned with `recorded=False`.
        """
        context = await build_advisor_context(self._data)
        rule = self._engine.select(content)
        reply = rule.respond(content, context)

        recorded = False
        if self._data is not None and self._data.available:
            try:
                await self._data.send_message(content)
                recorded = True
            except (BackendUnavailableError, BackendCallError) as exc:
                logger.warning("Could not record chat message: %s", exc)

        if self._bus is not None:
            await self._bus.publish(Event(
                type=EventTypes.ADVISOR_REPLIED,
                source="advisor",
                payload={"category": rule.name, "recorded": recorded},
            ))

        logger.info("Advisor answered with category %s", rule.name)
        return AdvisorReply(
            message=content,
            category=rule.name,
            reply=reply,
            context=context,
            recorded=recorded,
        )
