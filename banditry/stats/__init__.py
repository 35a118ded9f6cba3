"""Bayesian machinery behind arm selection.

Public API:
- ibeta / inv_ibeta: regularized incomplete beta function and its inverse
- BetaPosterior: Beta(1 + s, 1 + f) belief over an arm's interestingness
- ThompsonSelector: weighted Thompson Sampling selection
- rank_arms: deterministic ranking by mean * weight
- summarize: read-only report over all arms
"""

from banditry.stats.bandits import ThompsonSelector, biased_score
from banditry.stats.ibeta import beta_mean, beta_sample, ibeta, inv_ibeta
from banditry.stats.posterior import BetaPosterior
from banditry.stats.ranking import RankedArm, rank_arms
from banditry.stats.summary import summarize

__all__ = [
    "ibeta",
    "inv_ibeta",
    "beta_mean",
    "beta_sample",
    "BetaPosterior",
    "ThompsonSelector",
    "biased_score",
    "RankedArm",
    "rank_arms",
    "summarize",
]
