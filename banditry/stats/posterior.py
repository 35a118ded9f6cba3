"""Beta-Bernoulli posterior over an arm's interestingness rate.

Every arm starts from the uniform Beta(1, 1) prior; after ``s`` interesting
and ``f`` uninteresting runs its belief is Beta(1 + s, 1 + f).  The model is
immutable: ``update()`` returns a *new* ``BetaPosterior`` so callers can
compare pre- and post-update beliefs.  The mutable counters live on ``Arm``.
"""

from __future__ import annotations

import numpy as np

from banditry.models.outcome import OutcomeKind
from banditry.stats.ibeta import beta_mean, beta_quantiles, beta_sample, inv_ibeta

PRIOR_ALPHA = 1.0
PRIOR_BETA = 1.0


class BetaPosterior:
    """Immutable Beta(1 + successes, 1 + failures) posterior.

    Parameters
    ----------
    successes : int
        Interesting outcomes observed.
    failures : int
        Uninteresting outcomes observed.
    """

    __slots__ = ("successes", "failures")

    def __init__(self, successes: int = 0, failures: int = 0) -> None:
        if successes < 0 or failures < 0:
            raise ValueError("successes and failures must be non-negative")
        self.successes = successes
        self.failures = failures

    @property
    def alpha(self) -> float:
        return PRIOR_ALPHA + self.successes

    @property
    def beta(self) -> float:
        return PRIOR_BETA + self.failures

    # ------------------------------------------------------------------
    # Posterior update (returns new instance)
    # ------------------------------------------------------------------

    def update(self, outcome: OutcomeKind) -> BetaPosterior:
        """Return a **new** posterior after one more binary observation.

        Fatal outcomes carry no evidence and are rejected.
        """
        if outcome == OutcomeKind.interesting:
            return BetaPosterior(self.successes + 1, self.failures)
        if outcome == OutcomeKind.uninteresting:
            return BetaPosterior(self.successes, self.failures + 1)
        raise ValueError(f"Cannot update a posterior with a {outcome.value} outcome")

    # ------------------------------------------------------------------
    # Posterior summaries
    # ------------------------------------------------------------------

    def mean(self) -> float:
        """Posterior mean: (1 + s) / (2 + s + f)."""
        return beta_mean(self.alpha, self.beta)

    def variance(self) -> float:
        """Variance of the posterior Beta distribution.

        Var = alpha * beta / ((alpha + beta)^2 * (alpha + beta + 1))
        """
        ab = self.alpha + self.beta
        return (self.alpha * self.beta) / (ab * ab * (ab + 1))

    def quantile(self, p: float) -> float:
        """Value below which the posterior places probability ``p``."""
        return inv_ibeta(self.alpha, self.beta, p)

    def credible_interval(self, width: float = 0.95) -> tuple[float, float]:
        """Equal-tailed credible interval for the interestingness rate.

        Parameters
        ----------
        width : float
            Width of the interval, e.g. 0.95 for 95%.

        Returns
        -------
        tuple[float, float]
            (lower_bound, upper_bound)
        """
        if not 0 < width < 1:
            raise ValueError("width must be between 0 and 1 exclusive")
        lower_tail = (1 - width) / 2
        low, high = beta_quantiles(self.alpha, self.beta, [lower_tail, 1 - lower_tail])
        return (float(low), float(high))

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def sample(self, rng: np.random.Generator) -> float:
        """Draw one Thompson sample by inverse-CDF from a fresh uniform draw."""
        return beta_sample(self.alpha, self.beta, rng)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BetaPosterior):
            return NotImplemented
        return self.successes == other.successes and self.failures == other.failures

    def __hash__(self) -> int:
        return hash((self.successes, self.failures))

    def __repr__(self) -> str:
        return f"BetaPosterior(alpha={self.alpha:.0f}, beta={self.beta:.0f})"
