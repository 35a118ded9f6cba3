"""Tests for the numeric primitive, posteriors, selection, ranking and summary.

Tests cover:
- ibeta / inv_ibeta against closed forms and each other
- BetaPosterior mean, update, credible interval
- Weighted Thompson selection: preference, exploration, weights, runtime bias
- Deterministic ranking and its tie-breaks
- Summary rows and aggregates
"""

import math

import numpy as np
import pytest

from banditry.models.arm import Arm
from banditry.models.outcome import OutcomeKind
from banditry.stats.bandits import ThompsonSelector, biased_score
from banditry.stats.ibeta import (
    beta_mean,
    beta_quantiles,
    beta_sample,
    ibeta,
    inv_ibeta,
    inverse_sample_matrix,
)
from banditry.stats.posterior import BetaPosterior
from banditry.stats.ranking import rank_arms
from banditry.stats.summary import summarize


def make_arm(name, successes=0, failures=0, **kwargs):
    return Arm(name, f"./{name}.sh", successes=successes, failures=failures, **kwargs)


# ======================================================================
# Regularized incomplete beta
# ======================================================================


class TestIncompleteBeta:
    """ibeta and its inverse against known values."""

    def test_uniform_is_identity(self):
        for x in (0.0, 0.1, 0.5, 0.9, 1.0):
            assert ibeta(1, 1, x) == pytest.approx(x, abs=1e-12)

    def test_beta_2_1_is_x_squared(self):
        assert ibeta(2, 1, 0.3) == pytest.approx(0.09, rel=1e-9)

    def test_beta_1_b_closed_form(self):
        # I_x(1, b) = 1 - (1 - x)^b
        assert ibeta(1, 50, 0.02) == pytest.approx(1 - 0.98**50, rel=1e-9)

    def test_inverse_beta_2_1_median(self):
        """Median of Beta(2, 1) is sqrt(0.5)."""
        assert inv_ibeta(2, 1, 0.5) == pytest.approx(0.707106781186548, rel=1e-9)

    def test_inverse_symmetric_large_counts(self):
        """1000 successes and 1000 failures: median is exactly one half."""
        x = inv_ibeta(1001, 1001, 0.5)
        assert x == pytest.approx(0.5, abs=1e-9)
        assert ibeta(1001, 1001, x) == pytest.approx(0.5, abs=1e-9)

    @pytest.mark.parametrize(
        "a,b,x",
        [
            (1.0, 1.0, 0.3),
            (2.0, 5.0, 0.1),
            (51.0, 201.0, 0.2),
            (1001.0, 4.0, 0.997),
            (100_001.0, 100_001.0, 0.5),
            (1.0, 1_000_001.0, 1e-6),
        ],
    )
    def test_round_trip(self, a, b, x):
        assert inv_ibeta(a, b, ibeta(a, b, x)) == pytest.approx(x, rel=1e-6)

    def test_monotone(self):
        probs = np.linspace(0.0, 1.0, 201)
        for a, b in [(1, 1), (3, 40), (400, 12), (1, 5000)]:
            quantiles = beta_quantiles(a, b, probs)
            assert np.all(np.diff(quantiles) >= 0)
            assert quantiles[0] == 0.0
            assert quantiles[-1] == 1.0

    def test_endpoints_exact(self):
        assert inv_ibeta(1, 1, 0.0) == 0.0
        assert inv_ibeta(1, 1, 1.0) == 1.0
        assert inv_ibeta(7, 3, 0.0) == 0.0

    def test_invalid_inputs_raise(self):
        with pytest.raises(ValueError):
            ibeta(0, 1, 0.5)
        with pytest.raises(ValueError):
            ibeta(1, 1, 1.5)
        with pytest.raises(ValueError):
            inv_ibeta(1, -2, 0.5)
        with pytest.raises(ValueError):
            inv_ibeta(1, 1, -0.1)
        with pytest.raises(ValueError):
            beta_quantiles(1, 1, [0.5, 2.0])

    def test_beta_mean_closed_form(self):
        assert beta_mean(3, 7) == pytest.approx(0.3)


class TestInverseSampling:
    """Beta draws by inversion have the right moments."""

    def test_samples_in_unit_interval(self, rng):
        draws = [beta_sample(1, 1, rng) for _ in range(500)]
        assert all(0.0 <= d <= 1.0 for d in draws)

    def test_sample_mean_matches(self, rng):
        draws = np.array([beta_sample(3, 7, rng) for _ in range(20_000)])
        assert draws.mean() == pytest.approx(0.3, abs=0.01)

    def test_sample_matrix_shape_and_means(self, rng):
        samples = inverse_sample_matrix(np.array([2.0, 30.0]), np.array([8.0, 10.0]), 20_000, rng)
        assert samples.shape == (20_000, 2)
        assert samples[:, 0].mean() == pytest.approx(0.2, abs=0.01)
        assert samples[:, 1].mean() == pytest.approx(0.75, abs=0.01)

    def test_sample_matrix_rejects_bad_shapes(self, rng):
        with pytest.raises(ValueError):
            inverse_sample_matrix(np.array([1.0]), np.array([1.0, 2.0]), 10, rng)
        with pytest.raises(ValueError):
            inverse_sample_matrix(np.array([0.0]), np.array([1.0]), 10, rng)


# ======================================================================
# BetaPosterior
# ======================================================================


class TestBetaPosterior:
    """Beta(1 + s, 1 + f) posterior summaries."""

    def test_no_data_is_uniform(self):
        posterior = BetaPosterior()
        assert posterior.alpha == 1.0
        assert posterior.beta == 1.0
        assert posterior.mean() == pytest.approx(0.5)

    def test_mean_formula(self):
        posterior = BetaPosterior(successes=3, failures=7)
        assert posterior.mean() == pytest.approx(4 / 12)

    def test_update_returns_new_instance(self):
        prior = BetaPosterior()
        after = prior.update(OutcomeKind.interesting)
        assert prior.successes == 0
        assert after.successes == 1
        assert after.failures == 0
        assert after is not prior
        assert after.update(OutcomeKind.uninteresting) == BetaPosterior(1, 1)

    def test_update_rejects_fatal(self):
        with pytest.raises(ValueError):
            BetaPosterior().update(OutcomeKind.fatal)

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            BetaPosterior(-1, 0)

    def test_credible_interval_contains_mean(self):
        posterior = BetaPosterior(successes=5, failures=45)
        low, high = posterior.credible_interval(0.95)
        assert low < posterior.mean() < high

    def test_credible_interval_width_validation(self):
        with pytest.raises(ValueError):
            BetaPosterior().credible_interval(1.0)

    def test_variance_shrinks_with_data(self):
        assert BetaPosterior(1, 9).variance() > BetaPosterior(10, 90).variance()
        assert BetaPosterior(10, 90).variance() > BetaPosterior(100, 900).variance()

    def test_quantile_uses_inverse(self):
        posterior = BetaPosterior(successes=1, failures=0)
        # Beta(2, 1): median sqrt(0.5)
        assert posterior.quantile(0.5) == pytest.approx(math.sqrt(0.5), rel=1e-9)


# ======================================================================
# Weighted Thompson selection
# ======================================================================


class TestThompsonSelector:
    """Selection by weighted posterior draws."""

    def test_empty_returns_none(self):
        assert ThompsonSelector(seed=1).select([]) is None

    def test_single_arm(self):
        arm = make_arm("only")
        assert ThompsonSelector(seed=1).select([arm]) is arm

    def test_prefers_interesting(self):
        dull = make_arm("dull", successes=0, failures=100)
        hot = make_arm("hot", successes=100, failures=0)
        assert ThompsonSelector(seed=3).select([dull, hot]) is hot

    def test_ties_go_to_lowest_name(self):
        """Untimed arms all score inf under runtime bias: the lowest name wins."""
        arms = [make_arm("zeta"), make_arm("alpha"), make_arm("mid")]
        selector = ThompsonSelector(seed=5, bias_runtime=True)
        for _ in range(10):
            assert selector.select(arms).name == "alpha"

    def test_exploration_persists(self):
        """A proven arm wins most rounds but the unexplored arm still gets picked."""
        fresh = make_arm("fresh")
        proven = make_arm("proven", successes=100, failures=0)
        selector = ThompsonSelector(seed=11)
        picks = [selector.select([fresh, proven]).name for _ in range(2000)]
        assert picks.count("proven") > picks.count("fresh")
        assert picks.count("fresh") > 0

    def test_seeded_selection_is_reproducible(self):
        arms = [make_arm("a", 3, 4), make_arm("b", 2, 2), make_arm("c", 0, 1)]
        first = ThompsonSelector(seed=99)
        second = ThompsonSelector(seed=99)
        assert [first.select(arms).name for _ in range(50)] == [
            second.select(arms).name for _ in range(50)
        ]

    def test_weight_biases_selection(self):
        """Weight 10 against weight 1 with identical posteriors wins the vast majority."""
        light = make_arm("light")
        heavy = make_arm("heavy", weight=10.0)
        alloc = ThompsonSelector().get_allocation([light, heavy], n_samples=20_000, seed=7)
        assert alloc["heavy"] > 0.9
        assert alloc["heavy"] / alloc["light"] > 5
        assert sum(alloc.values()) == pytest.approx(1.0)

    def test_weight_does_not_touch_posterior(self):
        heavy = make_arm("heavy", successes=2, failures=8, weight=10.0)
        assert heavy.posterior.mean() == pytest.approx(3 / 12)

    def test_runtime_bias_prefers_fast(self):
        fast = make_arm("fast", 100, 100, avg_runtime_ms=1.0, runtime_samples=200)
        slow = make_arm("slow", 100, 100, avg_runtime_ms=100.0, runtime_samples=200)
        assert ThompsonSelector(seed=2, bias_runtime=True).select([slow, fast]) is fast

    def test_runtime_bias_prefers_untimed(self):
        timed = make_arm("timed", 100, 0, avg_runtime_ms=1.0, runtime_samples=100)
        untimed = make_arm("untimed")
        assert ThompsonSelector(seed=2, bias_runtime=True).select([timed, untimed]) is untimed

    def test_runtime_allocation_handles_untimed(self):
        timed = make_arm("timed", 10, 0, avg_runtime_ms=5.0, runtime_samples=10)
        untimed = make_arm("untimed")
        alloc = ThompsonSelector(bias_runtime=True).get_allocation([timed, untimed], n_samples=1000)
        assert alloc == {"timed": 0.0, "untimed": 1.0}

    def test_biased_score(self):
        assert biased_score(0.5, 4.0) == pytest.approx(2.0)
        assert biased_score(0.5, 1.0, avg_runtime_ms=50.0, bias_runtime=True) == pytest.approx(1.0)
        assert biased_score(0.5, 1.0, avg_runtime_ms=None, bias_runtime=True) == math.inf

    def test_allocation_empty(self):
        assert ThompsonSelector().get_allocation([]) == {}


# ======================================================================
# Ranking
# ======================================================================


class TestRanking:
    """Deterministic ranking by mean * weight."""

    def test_orders_by_weighted_mean(self):
        # weighted: 3/12 * 2 = 0.5 ; plain: 4/10 = 0.4
        weighted = make_arm("weighted", successes=2, failures=8, weight=2.0)
        plain = make_arm("plain", successes=3, failures=5)
        ranking = rank_arms([plain, weighted])
        assert [r.name for r in ranking] == ["weighted", "plain"]
        assert ranking[0].rank == 1
        assert ranking[0].score == pytest.approx(0.5)

    def test_tie_prefers_more_observations(self):
        observed = make_arm("observed", successes=1, failures=1)
        fresh = make_arm("aaa-fresh")
        assert [r.name for r in rank_arms([fresh, observed])] == ["observed", "aaa-fresh"]

    def test_tie_then_name(self):
        assert [r.name for r in rank_arms([make_arm("beta"), make_arm("alpha")])] == [
            "alpha",
            "beta",
        ]

    def test_broken_sorts_last(self):
        broken = make_arm("broken", successes=50, failures=0, broken=True)
        weak = make_arm("weak", successes=0, failures=50)
        ranking = rank_arms([broken, weak])
        assert [r.name for r in ranking] == ["weak", "broken"]
        assert ranking[-1].state == "broken"

    def test_stable_and_pure(self):
        arms = [make_arm("a", 1, 3), make_arm("b", 4, 4, weight=0.5), make_arm("c", 0, 0)]
        before = [arm.snapshot() for arm in arms]
        assert rank_arms(arms) == rank_arms(arms)
        assert [arm.snapshot() for arm in arms] == before

    def test_higher_score_never_below_lower(self):
        rng = np.random.default_rng(0)
        arms = [
            make_arm(f"arm{i}", int(rng.integers(0, 30)), int(rng.integers(0, 30)), weight=float(rng.uniform(0.1, 5)))
            for i in range(25)
        ]
        scores = [r.score for r in rank_arms(arms)]
        assert scores == sorted(scores, reverse=True)

    def test_runtime_bias_reorders(self):
        # slow: 5/6 * 100 / 1000 ~ 0.083 ; fast: 1/6 * 100 / 10 ~ 1.67
        slow = make_arm("slow", successes=4, failures=0, avg_runtime_ms=1000.0, runtime_samples=4)
        fast = make_arm("fast", successes=0, failures=4, avg_runtime_ms=10.0, runtime_samples=4)
        untimed = make_arm("untimed")

        plain = rank_arms([slow, fast, untimed])
        assert [r.name for r in plain] == ["slow", "untimed", "fast"]

        biased = rank_arms([slow, fast, untimed], bias_runtime=True)
        assert [r.name for r in biased] == ["untimed", "fast", "slow"]
        assert math.isinf(biased[0].score)
        assert biased[1].score == pytest.approx(1 / 6 * 100 / 10)

    def test_runtime_bias_keeps_broken_last(self):
        broken = make_arm("broken", broken=True)
        timed = make_arm("timed", failures=3, avg_runtime_ms=500.0, runtime_samples=3)
        ranking = rank_arms([broken, timed], bias_runtime=True)
        assert [r.name for r in ranking] == ["timed", "broken"]


# ======================================================================
# Summary
# ======================================================================


class TestSummary:
    """Per-arm report and aggregate totals."""

    def test_rows_and_totals(self):
        arms = [
            make_arm("capped", successes=3, failures=1, limit=3),
            make_arm("open", successes=2, failures=6, weight=2.0),
            make_arm("dead", broken=True),
        ]
        report = summarize(arms)
        rows = {row["name"]: row for row in report["arms"]}

        assert [row["name"] for row in report["arms"]] == ["capped", "dead", "open"]
        assert rows["capped"]["state"] == "limit-reached"
        assert rows["capped"]["limit"] == 3
        assert rows["open"]["limit"] == "unbounded"
        assert rows["open"]["state"] == "active"
        assert rows["dead"]["state"] == "broken"

        assert rows["open"]["total"] == 8
        assert rows["open"]["observed_rate"] == pytest.approx(0.25)
        assert rows["open"]["posterior_mean"] == pytest.approx(0.3)
        assert rows["open"]["weight"] == 2.0
        assert rows["dead"]["observed_rate"] == 0.0

        assert report["total_successes"] == 5
        assert report["total_runs"] == 12
        assert report["active_arms"] == 1
        assert report["broken_arms"] == 1

    def test_selection_share_only_for_active(self):
        arms = [make_arm("a"), make_arm("b", 5, 5), make_arm("gone", limit=0)]
        rows = {row["name"]: row for row in summarize(arms)["arms"]}
        assert rows["gone"]["selection_share"] == 0.0
        assert rows["a"]["selection_share"] + rows["b"]["selection_share"] == pytest.approx(1.0, abs=1e-3)

    def test_credible_interval_brackets_mean(self):
        row = summarize([make_arm("x", 4, 16)])["arms"][0]
        low, high = row["credible_interval"]
        assert low < row["posterior_mean"] < high

    def test_empty(self):
        report = summarize([])
        assert report["arms"] == []
        assert report["total_runs"] == 0
