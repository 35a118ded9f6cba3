"""Read-only report over every arm's accumulated evidence."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from banditry.stats.bandits import ThompsonSelector

if TYPE_CHECKING:
    from banditry.models.arm import Arm, ArmSnapshot

UNBOUNDED = "unbounded"


def summarize(
    arms: Iterable[Arm | ArmSnapshot],
    credible_width: float = 0.95,
    allocation_samples: int = 10_000,
    seed: int = 42,
    bias_runtime: bool = False,
) -> dict[str, Any]:
    """Summarize all arms.

    Steps:
    1. Snapshot every arm once
    2. Per arm: counters, observed rate, posterior mean and credible
       interval, weight, limit, state, average runtime
    3. Estimate each active arm's Thompson selection share (inactive arms
       get 0.0)
    4. Aggregate totals

    Parameters
    ----------
    arms : Iterable[Arm | ArmSnapshot]
        Arm collection; never mutated.
    credible_width : float
        Width of the equal-tailed posterior interval.
    allocation_samples : int
        Monte Carlo rounds for the selection share estimate.
    seed : int
        RNG seed for the selection share estimate.
    bias_runtime : bool
        Estimate shares under runtime-biased selection.

    Returns
    -------
    dict
        ``{"arms": [...], "total_successes", "total_runs", "active_arms",
        "broken_arms"}``.
    """
    snapshots = sorted((arm.snapshot() for arm in arms), key=lambda s: s.name)

    active = [s for s in snapshots if s.active]
    allocation = ThompsonSelector(bias_runtime=bias_runtime).get_allocation(
        active, n_samples=allocation_samples, seed=seed
    )

    rows: list[dict[str, Any]] = []
    for s in snapshots:
        posterior = s.posterior
        rows.append(
            {
                "name": s.name,
                "successes": s.successes,
                "failures": s.failures,
                "total": s.total,
                "observed_rate": round(s.observed_rate, 6),
                "posterior_mean": round(posterior.mean(), 6),
                "credible_interval": tuple(
                    round(x, 6) for x in posterior.credible_interval(credible_width)
                ),
                "weight": s.weight,
                "limit": s.limit if s.limit is not None else UNBOUNDED,
                "state": s.state.value,
                "avg_runtime_ms": (
                    round(s.avg_runtime_ms, 3) if s.avg_runtime_ms is not None else None
                ),
                "selection_share": round(allocation.get(s.name, 0.0), 4),
            }
        )

    return {
        "arms": rows,
        "total_successes": sum(s.successes for s in snapshots),
        "total_runs": sum(s.total for s in snapshots),
        "active_arms": len(active),
        "broken_arms": sum(1 for s in snapshots if s.broken),
    }
