"""Scheduler: choose an arm, run its probe, learn from the outcome.

Each free execution slot performs a selection round:

1. Collect the arms that are active and may still be dispatched
2. Draw a weighted Thompson sample per arm and take the argmax
3. Reserve the arm and hand its command to the ``ArmRunner``
4. When the runner answers, apply the outcome to the arm's counters and
   deactivate it when it hits its limit or turns out broken

Selection is synchronous and only reads arm state; the runner call is the
only place a slot waits.  A limited arm is only dispatched while
``successes + in_flight < limit``, so concurrent completions can never push
it past its cap.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from banditry.models.arm import Arm, ArmSet
from banditry.models.outcome import Outcome, OutcomeKind
from banditry.services.runner import ArmRunner
from banditry.stats.bandits import ThompsonSelector

logger = logging.getLogger(__name__)


class StopReason(str, enum.Enum):
    exhausted = "exhausted"
    stopped = "stopped"
    budget = "budget"


@dataclass
class RunReport:
    """What happened during one ``Scheduler.run`` call."""

    dispatched: int = 0
    selections: list[str] = field(default_factory=list)
    interesting: int = 0
    uninteresting: int = 0
    fatal: dict[str, str] = field(default_factory=dict)
    deactivated: list[str] = field(default_factory=list)
    stop_reason: StopReason | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "dispatched": self.dispatched,
            "selections": list(self.selections),
            "interesting": self.interesting,
            "uninteresting": self.uninteresting,
            "fatal": dict(self.fatal),
            "deactivated": list(self.deactivated),
            "stop_reason": self.stop_reason.value if self.stop_reason else None,
        }


class Scheduler:
    """Drive an arm set with weighted Thompson Sampling.

    Parameters
    ----------
    arms : ArmSet | Iterable[Arm]
        Arms to schedule.  They are mutated in place.
    runner : ArmRunner
        Executes commands and reports outcomes.
    concurrency : int
        Number of execution slots; 1 runs strictly sequential rounds.
    seed : int | None
        Seed for the selection RNG.
    rng : np.random.Generator | None
        Explicit selection RNG; takes precedence over ``seed``.
    bias_runtime : bool
        Prefer arms with shorter average runtime.
    on_outcome : Callable[[Arm, Outcome], None] | None
        Called after every applied outcome, fatal ones included.
    """

    def __init__(
        self,
        arms: ArmSet | Iterable[Arm],
        runner: ArmRunner,
        *,
        concurrency: int = 1,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
        bias_runtime: bool = False,
        on_outcome: Callable[[Arm, Outcome], None] | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.arms = arms if isinstance(arms, ArmSet) else ArmSet(arms)
        self.runner = runner
        self.concurrency = concurrency
        self.selector = ThompsonSelector(rng=rng, seed=seed, bias_runtime=bias_runtime)
        self.on_outcome = on_outcome
        self._in_flight: dict[str, int] = {}
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def in_flight(self, name: str) -> int:
        return self._in_flight.get(name, 0)

    def eligible(self) -> list[Arm]:
        """Active arms that still have room under their limit."""
        return [arm for arm in self.arms if arm.active and self._has_room(arm)]

    def select(self) -> Arm | None:
        """Run steps 1-2 of a round; None means nothing can be dispatched."""
        return self.selector.select(self.eligible())

    def _has_room(self, arm: Arm) -> bool:
        if arm.limit is None:
            return True
        return arm.successes + self.in_flight(arm.name) < arm.limit

    def _reserve(self, arm: Arm) -> None:
        self._in_flight[arm.name] = self.in_flight(arm.name) + 1

    def _release(self, arm: Arm) -> None:
        remaining = self.in_flight(arm.name) - 1
        if remaining > 0:
            self._in_flight[arm.name] = remaining
        else:
            self._in_flight.pop(arm.name, None)

    # ------------------------------------------------------------------
    # Dispatch and update
    # ------------------------------------------------------------------

    async def _dispatch(self, arm: Arm) -> tuple[Arm, Outcome]:
        logger.debug("Running arm %s: %s", arm.name, arm.command)
        try:
            outcome = await self.runner.run(arm.command)
        except Exception as exc:
            logger.exception("Runner raised while running arm %s", arm.name)
            outcome = Outcome.fatal(f"runner error: {exc}")
        return arm, outcome

    def apply(self, arm: Arm, outcome: Outcome, report: RunReport | None = None) -> None:
        """Apply a finished probe's outcome to its arm (step 4)."""
        self._release(arm)
        deactivated = arm.record(outcome)

        if outcome.kind == OutcomeKind.fatal:
            logger.warning("Arm %s is broken: %s", arm.name, outcome.reason)
        elif deactivated:
            logger.info("Arm %s reached its limit of %s", arm.name, arm.limit)

        if report is not None:
            if outcome.kind == OutcomeKind.interesting:
                report.interesting += 1
            elif outcome.kind == OutcomeKind.uninteresting:
                report.uninteresting += 1
            else:
                report.fatal[arm.name] = outcome.reason or "fatal"
            if deactivated:
                report.deactivated.append(arm.name)

        if self.on_outcome is not None:
            self.on_outcome(arm, outcome)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Request a graceful stop: in-flight probes finish, nothing new starts.

        A request made before ``run()`` starts stops that run before its first
        dispatch.  The flag clears when the run ends.
        """
        if not self._stop_requested:
            logger.info("Stop requested; waiting for in-flight probes")
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    async def step(self) -> Outcome | None:
        """Run one sequential round.  Returns None when no arm is eligible."""
        arm = self.select()
        if arm is None:
            return None
        self._reserve(arm)
        arm, outcome = await self._dispatch(arm)
        self.apply(arm, outcome)
        return outcome

    async def run(self, max_steps: int | None = None) -> RunReport:
        """Schedule arms until exhaustion, a stop request, or ``max_steps`` dispatches.

        Parameters
        ----------
        max_steps : int | None
            Dispatch budget.  None runs until no active arm remains or
            ``stop()`` is called.

        Returns
        -------
        RunReport
            Dispatch counts, selection order, fatal reasons and why the run
            ended.
        """
        if max_steps is not None and max_steps < 0:
            raise ValueError("max_steps must be non-negative")
        report = RunReport()
        pending: set[asyncio.Task] = set()

        while True:
            while (
                len(pending) < self.concurrency
                and not self._stop_requested
                and (max_steps is None or report.dispatched < max_steps)
            ):
                arm = self.select()
                if arm is None:
                    break
                self._reserve(arm)
                report.dispatched += 1
                report.selections.append(arm.name)
                pending.add(asyncio.create_task(self._dispatch(arm)))

            if not pending:
                break

            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                arm, outcome = task.result()
                self.apply(arm, outcome, report)

        if not self.arms.active():
            report.stop_reason = StopReason.exhausted
        elif self._stop_requested:
            report.stop_reason = StopReason.stopped
        else:
            report.stop_reason = StopReason.budget
        # A stop applies to one run only
        self._stop_requested = False
        logger.info(
            "Run finished (%s) after %d dispatches: %d interesting, %d uninteresting, %d broken",
            report.stop_reason.value,
            report.dispatched,
            report.interesting,
            report.uninteresting,
            len(report.fatal),
        )
        return report
