"""Runs router: drive the scheduler over the stored arm set."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from banditry.core.config import settings
from banditry.core.dependencies import get_registry, get_runner, get_store, load_arms
from banditry.core.errors import RunInProgress
from banditry.services.registry import RunRegistry
from banditry.services.runner import ArmRunner
from banditry.services.scheduler import Scheduler
from banditry.services.store import ArmStore

router = APIRouter(tags=["runs"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class RunRequest(BaseModel):
    steps: int | None = Field(default=settings.DEFAULT_STEPS, ge=0)
    concurrency: int = Field(default=settings.CONCURRENCY, ge=1)
    seed: int | None = settings.RANDOM_SEED
    bias_runtime: bool = settings.BIAS_RUNTIME


class RunOut(BaseModel):
    dispatched: int
    selections: list[str]
    interesting: int
    uninteresting: int
    fatal: dict[str, str]
    deactivated: list[str]
    stop_reason: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/runs", response_model=RunOut)
async def start_run(
    body: RunRequest | None = None,
    store: ArmStore = Depends(get_store),
    runner: ArmRunner = Depends(get_runner),
    runs: RunRegistry = Depends(get_registry),
) -> RunOut:
    """Run up to ``steps`` probes and persist the updated counters.

    ``steps: null`` keeps going until every arm is exhausted or
    ``POST /runs/stop`` is called.  Only one run may be active; arm edits
    are refused with 409 until it ends.  The arm file is written once the
    run ends, including any arms that broke on the way.
    """
    body = body or RunRequest()
    arms = load_arms(store)
    scheduler = Scheduler(
        arms,
        runner,
        concurrency=body.concurrency,
        seed=body.seed,
        bias_runtime=body.bias_runtime,
    )
    try:
        runs.start(scheduler)
    except RunInProgress as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    try:
        report = await scheduler.run(max_steps=body.steps)
    finally:
        with store.lock:
            store.save(arms)
        runs.finish(scheduler)
    return RunOut(**report.to_dict())


@router.post("/runs/stop")
async def stop_run(runs: RunRegistry = Depends(get_registry)) -> dict:
    """Stop the active run after its in-flight probes finish."""
    if not runs.stop():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No run in progress")
    return {"status": "stopping"}
