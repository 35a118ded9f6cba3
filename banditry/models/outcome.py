import enum
from dataclasses import dataclass


class OutcomeKind(str, enum.Enum):
    interesting = "interesting"
    uninteresting = "uninteresting"
    fatal = "fatal"


@dataclass(frozen=True)
class Outcome:
    """Result of running an arm's probe once.

    ``reason`` is only set for fatal outcomes.  ``runtime_ms`` is the
    wall-clock duration of the probe when the runner measured it.
    """

    kind: OutcomeKind
    reason: str | None = None
    runtime_ms: float | None = None

    @classmethod
    def interesting(cls, runtime_ms: float | None = None) -> "Outcome":
        return cls(OutcomeKind.interesting, runtime_ms=runtime_ms)

    @classmethod
    def uninteresting(cls, runtime_ms: float | None = None) -> "Outcome":
        return cls(OutcomeKind.uninteresting, runtime_ms=runtime_ms)

    @classmethod
    def fatal(cls, reason: str, runtime_ms: float | None = None) -> "Outcome":
        return cls(OutcomeKind.fatal, reason=reason, runtime_ms=runtime_ms)

    @property
    def is_fatal(self) -> bool:
        return self.kind == OutcomeKind.fatal
