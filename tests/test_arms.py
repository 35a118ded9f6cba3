"""Tests for Arm records and the ArmSet arena."""

import threading

import pytest

from banditry.core.errors import InvalidConfiguration, UnknownArm
from banditry.models.arm import Arm, ArmSet, ArmState
from banditry.models.outcome import Outcome


class TestArmLifecycle:
    """Creation, validation, recording and reset."""

    def test_new_has_default_counters(self):
        arm = Arm.new("fuzz", "./fuzz.sh")
        assert arm.successes == 0
        assert arm.failures == 0
        assert arm.weight == 1.0
        assert arm.limit is None
        assert arm.active
        assert not arm.broken
        assert arm.state == ArmState.active

    @pytest.mark.parametrize("weight", [0, -1.5, float("nan"), float("inf")])
    def test_rejects_bad_weight(self, weight):
        with pytest.raises(InvalidConfiguration):
            Arm.new("fuzz", "./fuzz.sh", weight=weight)

    def test_rejects_bad_limit_and_name(self):
        with pytest.raises(InvalidConfiguration):
            Arm.new("fuzz", "./fuzz.sh", limit=-1)
        with pytest.raises(InvalidConfiguration):
            Arm.new("fuzz", "./fuzz.sh", limit=2.5)
        with pytest.raises(InvalidConfiguration):
            Arm.new("", "./fuzz.sh")

    def test_invalid_configuration_is_value_error(self):
        with pytest.raises(ValueError):
            Arm.new("fuzz", "./fuzz.sh", weight=0)

    def test_successes_cannot_start_above_limit(self):
        with pytest.raises(InvalidConfiguration):
            Arm("fuzz", "./fuzz.sh", limit=2, successes=3)

    def test_record_counts(self):
        arm = Arm.new("fuzz", "./fuzz.sh")
        arm.record(Outcome.interesting())
        arm.record(Outcome.uninteresting())
        arm.record(Outcome.uninteresting())
        assert (arm.successes, arm.failures, arm.total) == (1, 2, 3)
        assert arm.posterior.mean() == pytest.approx(2 / 5)

    def test_record_reports_limit_transition_once(self):
        arm = Arm.new("fuzz", "./fuzz.sh", limit=2)
        assert arm.record(Outcome.interesting()) is False
        assert arm.record(Outcome.interesting()) is True
        assert arm.state == ArmState.limit_reached
        assert not arm.active

    def test_limit_zero_is_never_active(self):
        arm = Arm.new("fuzz", "./fuzz.sh", limit=0)
        assert arm.state == ArmState.limit_reached

    def test_fatal_marks_broken_without_counting(self):
        arm = Arm.new("fuzz", "./fuzz.sh")
        assert arm.record(Outcome.fatal("bad invocation")) is True
        assert arm.broken
        assert arm.state == ArmState.broken
        assert arm.total == 0

    def test_runtime_average(self):
        arm = Arm.new("fuzz", "./fuzz.sh")
        arm.record(Outcome.uninteresting(runtime_ms=10.0))
        arm.record(Outcome.interesting(runtime_ms=30.0))
        arm.record(Outcome.uninteresting())
        assert arm.avg_runtime_ms == pytest.approx(20.0)
        assert arm.runtime_samples == 2

    def test_reset_restores_defaults(self):
        arm = Arm("fuzz", "./old.sh", limit=1, successes=1, failures=4, broken=True,
                  avg_runtime_ms=12.0, runtime_samples=5)
        arm.reset(command="./new.sh")
        assert (arm.successes, arm.failures) == (0, 0)
        assert arm.active
        assert not arm.broken
        assert arm.avg_runtime_ms is None
        assert arm.runtime_samples == 0
        assert arm.command == "./new.sh"
        assert arm.limit == 1

    def test_reset_keeps_command_by_default(self):
        arm = Arm("fuzz", "./old.sh", successes=2)
        arm.reset()
        assert arm.command == "./old.sh"

    def test_snapshot_is_detached(self):
        arm = Arm.new("fuzz", "./fuzz.sh")
        snap = arm.snapshot()
        arm.record(Outcome.interesting())
        assert snap.successes == 0
        assert arm.snapshot().successes == 1
        assert snap.snapshot() is snap

    def test_concurrent_records_are_atomic(self):
        arm = Arm.new("fuzz", "./fuzz.sh")

        def hammer():
            for _ in range(1000):
                arm.record(Outcome.uninteresting(runtime_ms=1.0))

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert arm.failures == 8000
        assert arm.runtime_samples == 8000


class TestArmSet:
    """Arena keyed by name."""

    def test_iterates_in_name_order(self):
        arms = ArmSet([Arm.new("c", "c"), Arm.new("a", "a"), Arm.new("b", "b")])
        assert [arm.name for arm in arms] == ["a", "b", "c"]
        assert arms.names() == ["a", "b", "c"]
        assert len(arms) == 3

    def test_duplicate_name_rejected(self):
        arms = ArmSet([Arm.new("a", "a")])
        with pytest.raises(InvalidConfiguration):
            arms.new("a", "other")

    def test_unknown_arm(self):
        arms = ArmSet()
        with pytest.raises(UnknownArm):
            arms.get("missing")
        with pytest.raises(KeyError):
            arms.reset("missing")

    def test_remove(self):
        arms = ArmSet([Arm.new("a", "a")])
        arms.remove("a")
        assert "a" not in arms

    def test_reset_all(self):
        arms = ArmSet([Arm("a", "a", successes=3), Arm("b", "b", failures=2, broken=True)])
        arms.reset()
        assert all(arm.total == 0 and arm.active for arm in arms)

    def test_reset_all_rejects_command(self):
        with pytest.raises(ValueError):
            ArmSet([Arm.new("a", "a")]).reset(command="./x.sh")

    def test_active_excludes_inactive(self):
        arms = ArmSet([
            Arm.new("live", "x"),
            Arm("done", "x", limit=1, successes=1),
            Arm("dead", "x", broken=True),
        ])
        assert [arm.name for arm in arms.active()] == ["live"]
