"""RandomSource implementations for the price and history generators."""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator


class SystemRandomSource:
    """Entropy-seeded source used in production.

    Pass a `seed` to get reproducible demo data across restarts.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def uniform(self, lo: float, hi: float) -> float:
        return self._rng.uniform(lo, hi)


class ScriptedRandomSource:
    """Replays a fixed sequence of unit draws, scaled into [lo, hi].

    Each value in `draws` is a position in [0, 1]; the sequence cycles when
    exhausted. Used by tests that need exact price paths.
    """

    def __init__(self, draws: Iterable[float]) -> None:
        values = list(draws)
        if not values:
            raise ValueError("ScriptedRandomSource needs at least one draw")
        for value in values:
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Draw {value!r} outside [0, 1]")
        self._values = values
        self._iter: Iterator[float] = iter(())
        self.calls = 0

    def uniform(self, lo: float, hi: float) -> float:
        try:
            unit = next(self._iter)
        except StopIteration:
            self._iter = iter(self._values)
            unit = next(self._iter)
        self.calls += 1
        return lo + (hi - lo) * unit
