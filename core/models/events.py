"""Event model -- the message format carried by the in-process event bus."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


class Event(BaseModel):
    """A typed event that flows through the EventBus.

    Events are not persisted; they only fan out to live subscribers such as
    the `/events` stream.
    """

    id: str = Field(default_factory=lambda: f"evt_{uuid4().hex[:12]}")
    type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str
    payload: dict = Field(default_factory=dict)


# -- Event type constants --

class EventTypes:
    """Well-known event type strings."""

    # Data-access layer
    CACHE_INVALIDATED = "cache.invalidated"

    # Alerts
    ALERT_TRIGGERED = "alert.triggered"

    # Advisor
    ADVISOR_REPLIED = "advisor.replied"

    # Playground
    PREDICTION_PLAYED = "prediction.played"
