"""Exception types raised by the bandit engine.

Probe failures are not exceptions: they travel as ``Outcome`` values so a
single broken arm never aborts a run.  Running out of active arms is a
normal stop reason, not an error.
"""


class BanditError(Exception):
    """Base class for all banditry errors."""


class InvalidConfiguration(BanditError, ValueError):
    """An arm or arm file failed validation (name, weight, limit, counters)."""


class UnknownArm(BanditError, KeyError):
    """No arm with the requested name exists."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown arm: {self.name!r}"


class RunInProgress(BanditError):
    """A run already owns the arm file."""
