"""Weighted Thompson Sampling over arm posteriors.

On each round every eligible arm draws one sample from its Beta posterior;
the sample is multiplied by the arm's weight and the highest biased score
wins.  Weight only scales the comparison value, never the posterior, so the
posterior mean stays an honest estimate of the arm's interestingness rate.

Optionally the score is also divided by the arm's average runtime, so a
probe that finishes ten times faster competes as if it were ten times as
likely to be interesting.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

from banditry.stats.ibeta import inverse_sample_matrix

if TYPE_CHECKING:
    from banditry.models.arm import Arm, ArmSnapshot

logger = logging.getLogger(__name__)

# A weight-1 arm averaging this many milliseconds is scored unscaled.
RUNTIME_REFERENCE_MS = 100.0


def biased_score(
    sample: float,
    weight: float,
    avg_runtime_ms: float | None = None,
    bias_runtime: bool = False,
) -> float:
    """Turn a raw posterior draw into the value compared across arms.

    Parameters
    ----------
    sample : float
        Draw from the arm's posterior, in [0, 1].
    weight : float
        Arm weight (> 0).
    avg_runtime_ms : float | None
        Average probe runtime; only used when ``bias_runtime`` is set.
    bias_runtime : bool
        Prefer fast arms.  An arm with no recorded runtime scores ``inf``
        so that every arm gets timed at least once.

    Returns
    -------
    float
        The biased score.
    """
    score = sample * weight
    if not bias_runtime:
        return score
    if avg_runtime_ms is None:
        return math.inf
    return score * RUNTIME_REFERENCE_MS / max(avg_runtime_ms, 1e-3)


class ThompsonSelector:
    """Select arms by weighted Thompson Sampling.

    Parameters
    ----------
    rng : np.random.Generator | None
        Random source for posterior draws.  Built from ``seed`` when absent.
    seed : int | None
        Seed for a fresh generator; ignored when ``rng`` is given.
    bias_runtime : bool
        Scale scores by inverse average runtime.
    """

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        bias_runtime: bool = False,
    ) -> None:
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.bias_runtime = bias_runtime

    # ------------------------------------------------------------------
    # Single-draw helpers
    # ------------------------------------------------------------------

    def scores(self, arms: Sequence[Arm | ArmSnapshot]) -> list[float]:
        """Draw one biased score per arm, in the order given."""
        return [
            biased_score(
                arm.posterior.sample(self.rng),
                arm.weight,
                arm.avg_runtime_ms,
                self.bias_runtime,
            )
            for arm in arms
        ]

    def select(self, arms: Sequence[Arm | ArmSnapshot]) -> Arm | ArmSnapshot | None:
        """Pick the arm with the highest biased sample.

        Arms are drawn in name order and the first maximum wins, so equal
        scores go to the lexically lowest name and a seeded generator always
        reproduces the same choice.

        Returns
        -------
        Arm | ArmSnapshot | None
            The winner, or None when ``arms`` is empty.
        """
        if not arms:
            return None
        ordered = sorted(arms, key=lambda arm: arm.name)
        draws = self.scores(ordered)
        winner = ordered[int(np.argmax(draws))]
        logger.debug(
            "Selected %s from %s",
            winner.name,
            ", ".join(f"{arm.name}={score:.4f}" for arm, score in zip(ordered, draws)),
        )
        return winner

    # ------------------------------------------------------------------
    # Allocation estimation
    # ------------------------------------------------------------------

    def get_allocation(
        self,
        arms: Sequence[Arm | ArmSnapshot],
        n_samples: int = 10_000,
        seed: int = 42,
    ) -> dict[str, float]:
        """Estimate how often each arm would be selected.

        Runs ``n_samples`` independent selection rounds against the current
        posteriors (no updates in between) and returns the fraction of rounds
        each arm wins.

        Parameters
        ----------
        arms : Sequence
            Candidate arms.
        n_samples : int
            Number of simulated rounds.
        seed : int
            RNG seed; uses its own generator so the selector's stream is
            left untouched.

        Returns
        -------
        dict[str, float]
            Selection share per arm name, summing to ~1.0.
        """
        if not arms:
            return {}
        ordered = sorted(arms, key=lambda arm: arm.name)
        rng = np.random.default_rng(seed)
        alphas = np.array([arm.posterior.alpha for arm in ordered])
        betas = np.array([arm.posterior.beta for arm in ordered])

        # Vectorised: (n_samples, n_arms) matrix in one go
        samples = inverse_sample_matrix(alphas, betas, n_samples, rng)
        weights = np.array([arm.weight for arm in ordered])
        scores = samples * weights
        if self.bias_runtime:
            runtimes = [arm.avg_runtime_ms for arm in ordered]
            scale = np.array(
                [
                    math.inf if rt is None else RUNTIME_REFERENCE_MS / max(rt, 1e-3)
                    for rt in runtimes
                ]
            )
            # inf * 0 would be nan; untimed arms always win anyway
            scores = np.where(np.isinf(scale), math.inf, scores * np.where(np.isinf(scale), 1.0, scale))

        winners = np.argmax(scores, axis=1)
        counts = np.bincount(winners, minlength=len(ordered))
        return {arm.name: float(count / n_samples) for arm, count in zip(ordered, counts)}
