"""Prediction playground -- momentum-based AI call and a simulated outcome.

Pure Python math over the demo history. The outcome of a round is drawn at
random; it is a game, not a forecast.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Literal

from core.models.backend import Prediction
from core.models.market import MockStock
from core.protocols import RandomSource

Direction = Literal["Up", "Down", "Flat"]
DIRECTIONS: tuple[str, ...] = ("Up", "Down", "Flat")

MOMENTUM_THRESHOLD = 0.02
MAX_CONFIDENCE = 85
HIGH_VOLUME = 30_000_000


@dataclass
class AIPrediction:
    direction: Direction
    confidence: int
    reasoning: str


@dataclass
class Outcome:
    outcome: Direction
    explanation: str


def normalize_direction(value: str) -> Direction:
    """Accept 'up', 'UP', ' Up ' etc.; raise ValueError for anything else."""
    cleaned = str(value or "").strip().capitalize()
    if cleaned not in DIRECTIONS:
        raise ValueError(f"direction must be one of {list(DIRECTIONS)}, got {value!r}")
    return cleaned  # type: ignore[return-value]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def generate_ai_prediction(stock: MockStock, rng: RandomSource) -> AIPrediction:
    """Call the next move from 10-day momentum.

    momentum = (3-day average - 10-day average) / 10-day average
    volatility = population stdev of the 10 closes / 10-day average
    """
    prices = [bar.close for bar in stock.history[-10:]] or [stock.current_price]
    avg_price = _mean(prices)
    recent_avg = _mean(prices[-3:])
    momentum = (recent_avg - avg_price) / avg_price if avg_price else 0.0
    variance = _mean([(p - avg_price) ** 2 for p in prices])
    volatility = math.sqrt(variance) / avg_price if avg_price else 0.0

    if momentum > MOMENTUM_THRESHOLD:
        direction: Direction = "Up"
        confidence = min(MAX_CONFIDENCE, 60 + momentum * 500)
        reasoning = (
            f"Strong upward momentum detected. Recent 3-day average (${recent_avg:.2f}) "
            f"is {momentum * 100:.1f}% above the 10-day average. "
            f"Low volatility ({volatility * 100:.1f}%) supports continuation."
        )
    elif momentum < -MOMENTUM_THRESHOLD:
        direction = "Down"
        confidence = min(MAX_CONFIDENCE, 60 + abs(momentum) * 500)
        reasoning = (
            f"Downward pressure observed. Recent prices are {abs(momentum) * 100:.1f}% "
            f"below the 10-day average. Elevated volatility ({volatility * 100:.1f}%) "
            "suggests continued selling pressure."
        )
    else:
        direction = "Flat"
        confidence = 55 + rng.uniform(0.0, 1.0) * 15
        reasoning = (
            "Consolidation pattern detected. Price is trading near the 10-day average "
            f"with {volatility * 100:.1f}% volatility. "
            "Market appears to be in a wait-and-see mode."
        )

    return AIPrediction(direction=direction, confidence=round(confidence), reasoning=reasoning)


def simulate_outcome(stock: MockStock, rng: RandomSource) -> Outcome:
    """Draw the session outcome: 40% Up, 30% Down, 30% Flat."""
    roll = rng.uniform(0.0, 1.0)
    recent = list(stock.history[-5:])
    avg_volume = _mean([bar.volume for bar in recent])
    first_open = recent[0].open if recent else stock.current_price
    price_change = (stock.current_price - first_open) / first_open * 100 if first_open else 0.0

    if roll < 0.4:
        volume_side = "above" if avg_volume > HIGH_VOLUME else "below"
        trend = "positive" if price_change > 0 else "mixed"
        return Outcome(
            outcome="Up",
            explanation=(
                f"{stock.symbol} gained ground as buying pressure increased. "
                f"Volume was {volume_side} average at {avg_volume / 1_000_000:.1f}M shares. "
                f"The {trend} recent trend contributed to the upward movement."
            ),
        )
    if roll < 0.7:
        driver = (
            "Continued weakness from recent sessions"
            if price_change < 0
            else "Profit-taking after recent gains"
        )
        return Outcome(
            outcome="Down",
            explanation=(
                f"{stock.symbol} faced selling pressure during the session. "
                f"{driver} drove prices lower. "
                "Volume patterns suggested institutional distribution."
            ),
        )
    return Outcome(
        outcome="Flat",
        explanation=(
            f"{stock.symbol} traded in a tight range with minimal directional conviction. "
            "Buyers and sellers were evenly matched, resulting in a consolidation session. "
            "This often precedes a significant move in either direction."
        ),
    )


def explain_round(user_direction: str, ai: AIPrediction, outcome: Outcome) -> str:
    """Human-readable summary stored as the prediction's result."""
    user_correct = user_direction == outcome.outcome
    ai_correct = ai.direction == outcome.outcome
    also = "also " if user_correct == ai_correct else ""
    return (
        f"{outcome.explanation} "
        f"Your prediction was {'correct ✓' if user_correct else 'incorrect ✗'}. "
        f"The AI predicted {ai.direction} ({also}{'correct' if ai_correct else 'incorrect'}). "
        f"{ai.reasoning}"
    )


def prediction_accuracy(predictions: Iterable[Prediction]) -> int:
    """Percentage of rounds where the user's call matched the outcome."""
    rounds = list(predictions)
    if not rounds:
        return 0
    correct = sum(1 for p in rounds if p.is_correct)
    return round(correct / len(rounds) * 100)
