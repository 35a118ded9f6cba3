"""Banditry: biased Thompson Sampling over competing probe commands.

Public API:
- Arm / ArmSet: arms and the arena that holds them (``Arm.new``, ``ArmSet.reset``)
- Scheduler: selection, dispatch and posterior updates (``Scheduler.run``)
- SubprocessArmRunner: run probe commands as child processes
- rank_arms: deterministic ranking by posterior mean times weight
- summarize: read-only report over all arms
- ArmStore: JSON persistence and lint for arm files
"""

from banditry.core.errors import BanditError, InvalidConfiguration, RunInProgress, UnknownArm
from banditry.models.arm import Arm, ArmSet, ArmSnapshot, ArmState
from banditry.models.outcome import Outcome, OutcomeKind
from banditry.services.registry import RunRegistry
from banditry.services.runner import ArmRunner, SubprocessArmRunner
from banditry.services.scheduler import RunReport, Scheduler, StopReason
from banditry.services.store import ArmStore, LintIssue, lint_config
from banditry.stats.bandits import ThompsonSelector
from banditry.stats.ibeta import ibeta, inv_ibeta
from banditry.stats.posterior import BetaPosterior
from banditry.stats.ranking import RankedArm, rank_arms
from banditry.stats.summary import summarize

__all__ = [
    "BanditError",
    "InvalidConfiguration",
    "UnknownArm",
    "RunInProgress",
    "Arm",
    "ArmSet",
    "ArmSnapshot",
    "ArmState",
    "Outcome",
    "OutcomeKind",
    "ArmRunner",
    "SubprocessArmRunner",
    "RunRegistry",
    "RunReport",
    "Scheduler",
    "StopReason",
    "ArmStore",
    "LintIssue",
    "lint_config",
    "ThompsonSelector",
    "ibeta",
    "inv_ibeta",
    "BetaPosterior",
    "RankedArm",
    "rank_arms",
    "summarize",
]
