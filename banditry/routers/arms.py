"""Arms router: create, reset, rank, summarize and lint arms."""

import logging
import math
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from banditry.core.dependencies import edit_arms, get_registry, get_store, load_arms
from banditry.core.errors import InvalidConfiguration, UnknownArm
from banditry.services.registry import RunRegistry
from banditry.services.store import ArmStore
from banditry.stats.ranking import rank_arms
from banditry.stats.summary import summarize

logger = logging.getLogger(__name__)

router = APIRouter(tags=["arms"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ArmCreate(BaseModel):
    name: str = Field(min_length=1)
    command: str = Field(min_length=1)
    weight: float = Field(default=1.0, gt=0)
    limit: int | None = Field(default=None, ge=0)


class ArmReset(BaseModel):
    command: str | None = None


class ArmOut(BaseModel):
    name: str
    command: str
    weight: float
    limit: int | None
    successes: int
    failures: int
    broken: bool
    state: str
    avg_runtime_ms: float | None = None


class RankedArmOut(BaseModel):
    rank: int
    name: str
    score: float | None
    posterior_mean: float
    weight: float
    total: int
    state: str


class ArmSummary(BaseModel):
    name: str
    successes: int
    failures: int
    total: int
    observed_rate: float
    posterior_mean: float
    credible_interval: tuple[float, float]
    weight: float
    limit: int | str
    state: str
    avg_runtime_ms: float | None = None
    selection_share: float


class SummaryOut(BaseModel):
    arms: list[ArmSummary]
    total_successes: int
    total_runs: int
    active_arms: int
    broken_arms: int


class LintIssueOut(BaseModel):
    severity: str
    arm: str | None
    message: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _arm_out(arm) -> dict[str, Any]:
    s = arm.snapshot()
    return {
        "name": s.name,
        "command": s.command,
        "weight": s.weight,
        "limit": s.limit,
        "successes": s.successes,
        "failures": s.failures,
        "broken": s.broken,
        "state": s.state.value,
        "avg_runtime_ms": s.avg_runtime_ms,
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/arms", response_model=list[ArmOut])
async def list_arms(store: ArmStore = Depends(get_store)) -> list[ArmOut]:
    """List every arm in name order."""
    arms = load_arms(store)
    return [_arm_out(arm) for arm in arms]


@router.post("/arms", response_model=ArmOut, status_code=status.HTTP_201_CREATED)
async def create_arm(
    body: ArmCreate,
    store: ArmStore = Depends(get_store),
    runs: RunRegistry = Depends(get_registry),
) -> ArmOut:
    """Add a new arm with zeroed counters, creating the arm file if needed."""
    with edit_arms(store, runs, missing_ok=True) as arms:
        if body.name in arms:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Arm already exists")
        try:
            arm = arms.new(body.name, body.command, weight=body.weight, limit=body.limit)
        except InvalidConfiguration as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.info("Created arm %s", arm.name)
    return _arm_out(arm)


@router.post("/arms/reset", response_model=list[ArmOut])
async def reset_all_arms(
    store: ArmStore = Depends(get_store),
    runs: RunRegistry = Depends(get_registry),
) -> list[ArmOut]:
    """Zero every arm's counters and reactivate it."""
    with edit_arms(store, runs) as arms:
        arms.reset()
    return [_arm_out(arm) for arm in arms]


@router.post("/arms/{name}/reset", response_model=ArmOut)
async def reset_arm(
    name: str,
    body: ArmReset | None = None,
    store: ArmStore = Depends(get_store),
    runs: RunRegistry = Depends(get_registry),
) -> ArmOut:
    """Zero one arm's counters and reactivate it, optionally replacing its command."""
    with edit_arms(store, runs) as arms:
        try:
            (arm,) = arms.reset(name, command=body.command if body else None)
        except UnknownArm:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Arm not found")
    return _arm_out(arm)


@router.get("/arms/ranking", response_model=list[RankedArmOut])
async def get_ranking(
    bias_runtime: bool = False,
    store: ArmStore = Depends(get_store),
) -> list[RankedArmOut]:
    """Arms ordered by posterior mean times weight, broken arms last.

    With ``bias_runtime`` the score is also divided by average runtime and
    untimed arms come first, reported with a null score.
    """
    arms = load_arms(store)
    rows = []
    for ranked in rank_arms(arms, bias_runtime=bias_runtime):
        row = asdict(ranked)
        if not math.isfinite(row["score"]):
            row["score"] = None
        rows.append(row)
    return rows


@router.get("/arms/summary", response_model=SummaryOut)
async def get_summary(
    bias_runtime: bool = False,
    store: ArmStore = Depends(get_store),
) -> SummaryOut:
    """Per-arm statistics plus aggregate totals."""
    arms = load_arms(store)
    return SummaryOut(**summarize(arms, bias_runtime=bias_runtime))


@router.get("/arms/lint", response_model=list[LintIssueOut])
async def lint_arms(store: ArmStore = Depends(get_store)) -> list[LintIssueOut]:
    """Report problems in the arm file without loading it."""
    if not store.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Arm file not found")
    try:
        issues = store.lint()
    except InvalidConfiguration as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return [asdict(issue) for issue in issues]
