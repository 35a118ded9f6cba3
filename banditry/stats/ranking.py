"""Deterministic ranking of arms by weighted posterior mean.

Unlike selection, ranking never samples: ``score = mean * weight`` is a
fixed function of the counters, so re-ranking an unchanged arm set always
yields the same order.  With the runtime bias the score is further scaled
by ``100 / avg_runtime_ms``, matching how selection compares arms.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from banditry.stats.bandits import biased_score

if TYPE_CHECKING:
    from banditry.models.arm import Arm, ArmSnapshot


@dataclass(frozen=True)
class RankedArm:
    rank: int
    name: str
    score: float
    posterior_mean: float
    weight: float
    total: int
    state: str


def rank_score(arm: Arm | ArmSnapshot, bias_runtime: bool = False) -> float:
    """Posterior mean scaled by weight, and by inverse runtime when biased.

    An arm with no recorded runtime scores ``inf`` under the bias.
    """
    return biased_score(arm.posterior.mean(), arm.weight, arm.avg_runtime_ms, bias_runtime)


def rank_arms(
    arms: Iterable[Arm | ArmSnapshot],
    bias_runtime: bool = False,
) -> list[RankedArm]:
    """Order arms from most to least promising.

    Sort key, in priority order:

    1. broken arms last
    2. higher score first (``mean * weight``, divided by runtime when biased)
    3. more total observations first
    4. lexical name

    Parameters
    ----------
    arms : Iterable[Arm | ArmSnapshot]
        Active and inactive arms alike.  Each is snapshotted once so the
        ranking reflects a single point in time per arm.
    bias_runtime : bool
        Rank by ``mean * weight * 100 / avg_runtime_ms``.  Untimed arms rank
        ahead of every timed arm.

    Returns
    -------
    list[RankedArm]
        One entry per arm, ``rank`` starting at 1.
    """
    snapshots = [arm.snapshot() for arm in arms]
    scored = [(s, rank_score(s, bias_runtime)) for s in snapshots]
    ordered = sorted(
        scored,
        key=lambda pair: (pair[0].broken, -pair[1], -pair[0].total, pair[0].name),
    )
    return [
        RankedArm(
            rank=position,
            name=s.name,
            score=score,
            posterior_mean=s.posterior.mean(),
            weight=s.weight,
            total=s.total,
            state=s.state.value,
        )
        for position, (s, score) in enumerate(ordered, start=1)
    ]
