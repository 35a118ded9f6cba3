"""Shared fakes for the scheduler and API tests."""

import asyncio
from collections.abc import Callable

import numpy as np
import pytest

from banditry.models.outcome import Outcome


class ScriptedRunner:
    """Replays queued outcomes per command, then falls back to ``default``."""

    def __init__(
        self,
        outcomes: dict[str, list[Outcome]] | None = None,
        default: Outcome | Callable[[str], Outcome] = Outcome.uninteresting(),
    ) -> None:
        self.outcomes = {cmd: list(seq) for cmd, seq in (outcomes or {}).items()}
        self.default = default
        self.calls: list[str] = []

    async def run(self, command: str) -> Outcome:
        self.calls.append(command)
        queue = self.outcomes.get(command)
        if queue:
            return queue.pop(0)
        if callable(self.default):
            return self.default(command)
        return self.default


class BernoulliRunner:
    """Interesting with a fixed probability per command, from a seeded RNG."""

    def __init__(self, probabilities: dict[str, float], seed: int = 0) -> None:
        self.probabilities = probabilities
        self.rng = np.random.default_rng(seed)

    async def run(self, command: str) -> Outcome:
        if self.rng.random() <= self.probabilities[command]:
            return Outcome.interesting()
        return Outcome.uninteresting()


class SlowRunner:
    """Sleeps before answering and records the peak number of concurrent runs."""

    def __init__(self, outcome: Outcome = Outcome.interesting(), delay: float = 0.01) -> None:
        self.outcome = outcome
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.calls = 0

    async def run(self, command: str) -> Outcome:
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return self.outcome


@pytest.fixture
def rng():
    return np.random.default_rng(42)
