"""Prediction playground service -- plays one round and records it."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from backend.queries import DataAccess
from core.errors import BackendCallError, BackendUnavailableError, UnknownSymbolError
from core.models.backend import Prediction
from core.models.events import Event, EventTypes
from core.protocols import EventBus, RandomSource
from market.dataset import MarketDataset
from market.predictions import (
    AIPrediction,
    Outcome,
    explain_round,
    generate_ai_prediction,
    normalize_direction,
    simulate_outcome,
)
from market.random_source import SystemRandomSource

logger = logging.getLogger(__name__)


@dataclass
class PlaygroundRound:
    symbol: str
    direction: str
    ai_prediction: AIPrediction
    outcome: Outcome
    user_correct: bool
    ai_correct: bool
    explanation: str
    recorded: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class PlaygroundService:
    """Plays rounds against the momentum AI.

    A round is returned even when it cannot be recorded with the backend.
    """

    def __init__(
        self,
        dataset: MarketDataset,
        rng: RandomSource | None = None,
        data: DataAccess | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._dataset = dataset
        self._rng = rng or SystemRandomSource()
        self._data = data
        self._bus = bus

    async def play(self, symbol: str, direction: str) -> PlaygroundRound:
        """Play one round; raises UnknownSymbolError or ValueError on bad input."""
        stock = self._dataset.get(symbol)
        if stock is None:
            raise UnknownSymbolError(symbol)
        user_direction = normalize_direction(direction)

        ai = generate_ai_prediction(stock, self._rng)
        outcome = simulate_outcome(stock, self._rng)
        explanation = explain_round(user_direction, ai, outcome)

        played = PlaygroundRound(
            symbol=stock.symbol,
            direction=user_direction,
            ai_prediction=ai,
            outcome=outcome,
            user_correct=user_direction == outcome.outcome,
            ai_correct=ai.direction == outcome.outcome,
            explanation=explanation,
        )

        if self._data is not None and self._data.available:
            prediction = Prediction(
                user=self._data.session.principal,
                stock_symbol=stock.symbol,
                direction=user_direction,
                ai_prediction=ai.direction,
                actual_outcome=outcome.outcome,
                result=explanation,
            )
            try:
                await self._data.submit_prediction(prediction)
                played.recorded = True
            except (BackendUnavailableError, BackendCallError) as exc:
                logger.warning("Could not record prediction for %s: %s", stock.symbol, exc)

        if self._bus is not None:
            await self._bus.publish(Event(
                type=EventTypes.PREDICTION_PLAYED,
                source="playground",
                payload={
                    "symbol": played.symbol,
                    "direction": played.direction,
                    "outcome": outcome.outcome,
                    "user_correct": played.user_correct,
                },
            ))

        logger.info(
            "Playground round %s: user %s, AI %s, outcome %s",
            played.symbol, user_direction, ai.direction, outcome.outcome,
        )
        return played
