"""Arm runners: execute a probe command and classify its exit.

Probe protocol: exit status 1 means *interesting*, 0 means
*uninteresting*.  Any other status, a command that cannot be launched, or a
timeout is a fatal result for that arm.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shlex
import time
from typing import Protocol

from banditry.models.outcome import Outcome

logger = logging.getLogger(__name__)

EXIT_UNINTERESTING = 0
EXIT_INTERESTING = 1


class ArmRunner(Protocol):
    async def run(self, command: str) -> Outcome:
        ...


def classify_exit(returncode: int | None, runtime_ms: float | None = None) -> Outcome:
    """Map a probe exit status to an outcome."""
    if returncode == EXIT_INTERESTING:
        return Outcome.interesting(runtime_ms=runtime_ms)
    if returncode == EXIT_UNINTERESTING:
        return Outcome.uninteresting(runtime_ms=runtime_ms)
    return Outcome.fatal(f"exit status {returncode}", runtime_ms=runtime_ms)


class SubprocessArmRunner:
    """Run each command as a child process.

    Parameters
    ----------
    timeout : float | None
        Seconds to wait before killing the probe and reporting
        ``Fatal("timeout")``.  None waits indefinitely.
    cwd : str | None
        Working directory for the probes.
    """

    def __init__(self, timeout: float | None = None, cwd: str | None = None) -> None:
        self.timeout = timeout
        self.cwd = cwd

    async def run(self, command: str) -> Outcome:
        try:
            argv = shlex.split(command)
        except ValueError as exc:
            return Outcome.fatal(f"invalid command: {exc}")
        if not argv:
            return Outcome.fatal("empty command")

        start = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return Outcome.fatal(f"could not launch {argv[0]}: {exc}")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            # The child may exit between the timeout and the kill
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            return Outcome.fatal("timeout", runtime_ms=(time.perf_counter() - start) * 1000)

        runtime_ms = (time.perf_counter() - start) * 1000
        outcome = classify_exit(proc.returncode, runtime_ms)
        if outcome.is_fatal:
            logger.warning(
                "Command %r failed with unrecognized exit status %s: %s",
                command,
                proc.returncode,
                stderr.decode("utf-8", "replace").strip(),
            )
        else:
            logger.debug(
                "Command %r finished as %s in %.1f ms: %s",
                command,
                outcome.kind.value,
                runtime_ms,
                stdout.decode("utf-8", "replace").strip(),
            )
        return outcome
