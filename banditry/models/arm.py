"""Arm records and the arena that holds them.

An ``Arm`` owns its counters and guards them with its own lock, so
completions for unrelated arms never serialize on each other.  Readers take
an ``ArmSnapshot``: an immutable point-in-time copy made under that lock.
"""

from __future__ import annotations

import enum
import logging
import math
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from banditry.core.errors import InvalidConfiguration, UnknownArm
from banditry.models.outcome import Outcome, OutcomeKind
from banditry.stats.posterior import BetaPosterior

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0


class ArmState(str, enum.Enum):
    active = "active"
    limit_reached = "limit-reached"
    broken = "broken"


def _validate(name, weight, limit, successes, failures) -> None:
    if not isinstance(name, str) or not name.strip():
        raise InvalidConfiguration("Arm name must be a non-empty string")
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise InvalidConfiguration(f"{name}: weight must be a number")
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidConfiguration(f"{name}: weight must be positive, got {weight}")
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
        raise InvalidConfiguration(f"{name}: limit must be a non-negative integer or absent")
    for label, value in (("successes", successes), ("failures", failures)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidConfiguration(f"{name}: {label} must be a non-negative integer")
    if limit is not None and successes > limit:
        raise InvalidConfiguration(f"{name}: successes ({successes}) exceed limit ({limit})")


@dataclass(frozen=True)
class ArmSnapshot:
    """Immutable copy of an arm's state at one instant."""

    name: str
    command: str
    weight: float
    limit: int | None
    successes: int
    failures: int
    broken: bool
    avg_runtime_ms: float | None
    runtime_samples: int

    @property
    def total(self) -> int:
        return self.successes + self.failures

    @property
    def limit_reached(self) -> bool:
        return self.limit is not None and self.successes >= self.limit

    @property
    def state(self) -> ArmState:
        if self.broken:
            return ArmState.broken
        if self.limit_reached:
            return ArmState.limit_reached
        return ArmState.active

    @property
    def active(self) -> bool:
        return self.state == ArmState.active

    @property
    def posterior(self) -> BetaPosterior:
        return BetaPosterior(self.successes, self.failures)

    @property
    def observed_rate(self) -> float:
        return self.successes / max(1, self.total)

    def snapshot(self) -> ArmSnapshot:
        return self


class Arm:
    """One competing probe and its accumulated evidence.

    Parameters
    ----------
    name : str
        Unique identifier within an arm set.
    command : str
        Opaque probe descriptor, interpreted only by the runner.
    weight : float
        Selection bias, strictly positive.  Default 1.0.
    limit : int | None
        Cap on interesting outcomes to collect; ``None`` is unbounded.
    """

    __slots__ = (
        "name",
        "command",
        "weight",
        "limit",
        "successes",
        "failures",
        "broken",
        "avg_runtime_ms",
        "runtime_samples",
        "_lock",
    )

    def __init__(
        self,
        name: str,
        command: str,
        weight: float = DEFAULT_WEIGHT,
        limit: int | None = None,
        successes: int = 0,
        failures: int = 0,
        broken: bool = False,
        avg_runtime_ms: float | None = None,
        runtime_samples: int = 0,
    ) -> None:
        _validate(name, weight, limit, successes, failures)
        self.name = name
        self.command = command
        self.weight = float(weight)
        self.limit = limit
        self.successes = successes
        self.failures = failures
        self.broken = broken
        self.avg_runtime_ms = avg_runtime_ms
        self.runtime_samples = runtime_samples
        self._lock = threading.Lock()

    @classmethod
    def new(
        cls,
        name: str,
        command: str,
        weight: float = DEFAULT_WEIGHT,
        limit: int | None = None,
    ) -> Arm:
        """Create an arm with zeroed counters."""
        return cls(name, command, weight=weight, limit=limit)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def total(self) -> int:
        return self.successes + self.failures

    @property
    def limit_reached(self) -> bool:
        return self.limit is not None and self.successes >= self.limit

    @property
    def state(self) -> ArmState:
        if self.broken:
            return ArmState.broken
        if self.limit_reached:
            return ArmState.limit_reached
        return ArmState.active

    @property
    def active(self) -> bool:
        return self.state == ArmState.active

    @property
    def posterior(self) -> BetaPosterior:
        return BetaPosterior(self.successes, self.failures)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def record(self, outcome: Outcome) -> bool:
        """Apply one probe outcome atomically.

        Interesting and uninteresting outcomes bump the matching counter and
        fold ``runtime_ms`` into the running average.  A fatal outcome marks
        the arm broken and leaves the counters alone.

        Returns
        -------
        bool
            True when this call moved the arm out of the active state.
        """
        with self._lock:
            was_active = self.state == ArmState.active
            if outcome.kind == OutcomeKind.fatal:
                self.broken = True
            else:
                if outcome.kind == OutcomeKind.interesting:
                    self.successes += 1
                else:
                    self.failures += 1
                if outcome.runtime_ms is not None:
                    total_ms = (self.avg_runtime_ms or 0.0) * self.runtime_samples
                    self.runtime_samples += 1
                    self.avg_runtime_ms = (total_ms + outcome.runtime_ms) / self.runtime_samples
            return was_active and self.state != ArmState.active

    def reset(self, command: str | None = None) -> None:
        """Zero the counters, clear runtime and broken flag, optionally swap the command."""
        with self._lock:
            self.successes = 0
            self.failures = 0
            self.broken = False
            self.avg_runtime_ms = None
            self.runtime_samples = 0
            if command is not None:
                self.command = command

    def snapshot(self) -> ArmSnapshot:
        with self._lock:
            return ArmSnapshot(
                name=self.name,
                command=self.command,
                weight=self.weight,
                limit=self.limit,
                successes=self.successes,
                failures=self.failures,
                broken=self.broken,
                avg_runtime_ms=self.avg_runtime_ms,
                runtime_samples=self.runtime_samples,
            )

    def __repr__(self) -> str:
        return (
            f"Arm(name={self.name!r}, weight={self.weight}, limit={self.limit}, "
            f"successes={self.successes}, failures={self.failures}, state={self.state.value})"
        )


class ArmSet:
    """Arena of arms keyed by name.

    Iteration is always in name order, which is what makes Thompson draws
    reproducible for a given random seed.
    """

    def __init__(self, arms: Iterable[Arm] = ()) -> None:
        self._arms: dict[str, Arm] = {}
        for arm in arms:
            self.add(arm)

    def add(self, arm: Arm) -> Arm:
        if arm.name in self._arms:
            raise InvalidConfiguration(f"Duplicate arm name: {arm.name!r}")
        self._arms[arm.name] = arm
        return arm

    def new(
        self,
        name: str,
        command: str,
        weight: float = DEFAULT_WEIGHT,
        limit: int | None = None,
    ) -> Arm:
        return self.add(Arm.new(name, command, weight=weight, limit=limit))

    def get(self, name: str) -> Arm:
        try:
            return self._arms[name]
        except KeyError:
            raise UnknownArm(name) from None

    def remove(self, name: str) -> Arm:
        arm = self.get(name)
        del self._arms[name]
        return arm

    def reset(self, name: str | None = None, command: str | None = None) -> list[Arm]:
        """Reset one arm (optionally replacing its command) or, with no name, every arm."""
        if name is None:
            if command is not None:
                raise ValueError("A replacement command requires an arm name")
            targets = list(self)
        else:
            targets = [self.get(name)]
        for arm in targets:
            arm.reset(command=command)
            logger.info("Reset arm %s", arm.name)
        return targets

    def active(self) -> list[Arm]:
        return [arm for arm in self if arm.active]

    def snapshot(self) -> list[ArmSnapshot]:
        return [arm.snapshot() for arm in self]

    def names(self) -> list[str]:
        return sorted(self._arms)

    def __contains__(self, name: object) -> bool:
        return name in self._arms

    def __iter__(self) -> Iterator[Arm]:
        return iter([self._arms[name] for name in sorted(self._arms)])

    def __len__(self) -> int:
        return len(self._arms)
