from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from fastapi import HTTPException, status

from banditry.core.config import settings
from banditry.core.errors import InvalidConfiguration
from banditry.models.arm import ArmSet
from banditry.services.registry import RunRegistry, registry
from banditry.services.runner import ArmRunner, SubprocessArmRunner
from banditry.services.store import ArmStore


@lru_cache
def _store_for(path: str) -> ArmStore:
    return ArmStore(path)


def get_store() -> ArmStore:
    # One store per path so every request shares its lock
    return _store_for(settings.CONFIG_PATH)


def get_runner() -> ArmRunner:
    return SubprocessArmRunner(timeout=settings.PROBE_TIMEOUT_SECONDS)


def get_registry() -> RunRegistry:
    return registry


def load_arms(store: ArmStore, missing_ok: bool = False) -> ArmSet:
    """Load the arm set, translating store errors into HTTP errors.

    Raises HTTP 404 when the arm file is missing (unless ``missing_ok``)
    and HTTP 400 when it fails validation.
    """
    if not store.exists():
        if missing_ok:
            return ArmSet()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Arm file not found")
    try:
        return store.load()
    except InvalidConfiguration as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@contextmanager
def edit_arms(
    store: ArmStore,
    runs: RunRegistry,
    missing_ok: bool = False,
) -> Iterator[ArmSet]:
    """Load, modify and save the arm set under the store lock.

    Raises HTTP 409 while a run owns the arm file.  Nothing is saved when
    the body raises.
    """
    if runs.busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A run is in progress; try again when it finishes",
        )
    with store.lock:
        arms = load_arms(store, missing_ok=missing_ok)
        yield arms
        store.save(arms)
