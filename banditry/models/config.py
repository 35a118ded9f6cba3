"""On-disk arm file schema.

The arm file is plain JSON so it can be written by hand::

    {"arms": [{"name": "fuzz-a", "command": "./probe.sh 0.1 0", "weight": 2.0}]}

Counters and runtime fields are optional and default to a fresh arm.
"""

from pydantic import BaseModel, Field

from banditry.models.arm import Arm, ArmSet, ArmSnapshot


class ArmConfig(BaseModel):
    name: str = Field(min_length=1)
    command: str
    weight: float = Field(default=1.0, gt=0)
    limit: int | None = Field(default=None, ge=0)
    successes: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)
    broken: bool = False
    avg_runtime_ms: float | None = None
    runtime_samples: int = Field(default=0, ge=0)

    model_config = {"from_attributes": True}

    def to_arm(self) -> Arm:
        return Arm(**self.model_dump())

    @classmethod
    def from_arm(cls, arm: Arm | ArmSnapshot) -> "ArmConfig":
        return cls.model_validate(arm.snapshot())


class BanditConfig(BaseModel):
    arms: list[ArmConfig] = []

    def to_arm_set(self) -> ArmSet:
        return ArmSet(entry.to_arm() for entry in self.arms)

    @classmethod
    def from_arm_set(cls, arms: ArmSet) -> "BanditConfig":
        return cls(arms=[ArmConfig.from_arm(arm) for arm in arms])
