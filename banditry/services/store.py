"""Persist arm sets to a JSON arm file, and lint arm files.

``load()`` lints the raw document first so a bad file is rejected with every
problem listed at once, then validates it into an ``ArmSet``.  Writes go
through a temporary file and an atomic rename.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from banditry.core.errors import InvalidConfiguration
from banditry.models.arm import Arm, ArmSet
from banditry.models.config import BanditConfig

logger = logging.getLogger(__name__)


# ======================================================================
# Lint
# ======================================================================

@dataclass(frozen=True)
class LintIssue:
    severity: str  # "error" | "warning"
    arm: str | None
    message: str

    def __str__(self) -> str:
        prefix = f"{self.arm} " if self.arm else ""
        return f"{prefix}{self.severity.upper()}: {self.message}"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def lint_config(raw: Any) -> list[LintIssue]:
    """Check a decoded arm file for problems without building any arms.

    Errors make the file unusable; warnings flag settings that are legal but
    probably unintended.

    Parameters
    ----------
    raw : Any
        Decoded JSON document.

    Returns
    -------
    list[LintIssue]
        Issues in file order; empty when the file is clean.
    """
    if not isinstance(raw, Mapping) or not isinstance(raw.get("arms", []), list):
        return [LintIssue("error", None, 'Arm file must be an object with an "arms" list')]

    issues: list[LintIssue] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw.get("arms", [])):
        if not isinstance(entry, Mapping):
            issues.append(LintIssue("error", None, f"Entry {index} is not an object"))
            continue

        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            issues.append(LintIssue("error", None, f"Entry {index} has no name"))
            name = None
        elif name in seen:
            issues.append(LintIssue("error", name, "Duplicate arm name"))
        else:
            seen.add(name)

        command = entry.get("command")
        if not isinstance(command, str) or not command.strip():
            issues.append(LintIssue("error", name, "Missing or empty command"))

        weight = entry.get("weight", 1.0)
        if not _is_number(weight):
            issues.append(LintIssue("error", name, "Weight must be a number"))
        elif weight <= 0:
            issues.append(
                LintIssue("error", name, f"Weight must be positive, got {weight}")
            )

        limit = entry.get("limit")
        if limit is not None:
            if not isinstance(limit, int) or isinstance(limit, bool):
                issues.append(LintIssue("error", name, "Limit must be an integer"))
            elif limit < 0:
                issues.append(LintIssue("error", name, f"Limit must be non-negative, got {limit}"))
            else:
                if limit == 0:
                    issues.append(
                        LintIssue(
                            "warning",
                            name,
                            "Limit of 0 stops this arm from ever running. Leave it unset for no limit.",
                        )
                    )
                if _is_number(entry.get("successes", 0)) and entry.get("successes", 0) > limit:
                    issues.append(LintIssue("error", name, "Successes exceed the limit"))

        for counter in ("successes", "failures", "runtime_samples"):
            value = entry.get(counter, 0)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                issues.append(LintIssue("error", name, f"{counter} must be a non-negative integer"))

    return issues


# ======================================================================
# Store
# ======================================================================

class ArmStore:
    """Arm set persisted to a JSON file.

    Hold ``lock`` across a load, change and save so concurrent editors do
    not overwrite each other.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        # Reentrant: callers hold it around load() and save()
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def read_raw(self) -> Any:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise InvalidConfiguration(f"Arm file not found: {self.path}") from None
        except json.JSONDecodeError as exc:
            raise InvalidConfiguration(f"Arm file {self.path} is not valid JSON: {exc}") from exc

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> ArmSet:
        """Read, lint and validate the arm file."""
        with self.lock:
            raw = self.read_raw()
        issues = lint_config(raw)
        for issue in issues:
            if issue.severity == "warning":
                logger.warning("%s", issue)
        errors = [issue for issue in issues if issue.severity == "error"]
        if errors:
            raise InvalidConfiguration("; ".join(str(issue) for issue in errors))
        try:
            return BanditConfig.model_validate(raw).to_arm_set()
        except ValidationError as exc:
            raise InvalidConfiguration(str(exc)) from exc

    def save(self, arms: ArmSet) -> None:
        """Write the arm set atomically."""
        document = BanditConfig.from_arm_set(arms).model_dump(mode="json")
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = f"{self.path}.tmp"
        with self.lock:
            os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        logger.debug("Saved %d arms to %s", len(arms), self.path)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def create(self, commands: Mapping[str, str]) -> ArmSet:
        """Write a fresh arm file with one default arm per name -> command entry."""
        arms = ArmSet(Arm.new(name, command) for name, command in commands.items())
        self.save(arms)
        return arms

    def lint(self) -> list[LintIssue]:
        with self.lock:
            raw = self.read_raw()
        return lint_config(raw)

    def reset(self, name: str | None = None, command: str | None = None) -> ArmSet:
        """Reset one arm (or all) in the file and persist the result."""
        with self.lock:
            arms = self.load()
            arms.reset(name, command=command)
            self.save(arms)
        return arms
