"""Async child-process execution with a hard timeout."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass

from harbormaster.infrastructure.logger import logger


class CommandTimeoutError(TimeoutError):
    """Raised when a child process does not finish within its timeout."""

    def __init__(self, argv: list[str], timeout_s: float) -> None:
        super().__init__(f"Command timed out after {timeout_s:g}s: {' '.join(argv)}")
        self.argv = argv
        self.timeout_s = timeout_s


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(argv: list[str], timeout_s: float) -> CommandResult:
    """Run argv to completion and capture its output.

    Spawn failures propagate as OSError. If the process outlives timeout_s,
    CommandTimeoutError is raised and the process is left to finish on its
    own; a background task reaps it and discards whatever it prints late.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.debug("Command timed out, detaching", argv=argv, timeout_s=timeout_s)
        _detach(proc, argv)
        raise CommandTimeoutError(argv, timeout_s) from None
    except asyncio.CancelledError:
        _detach(proc, argv)
        raise

    return CommandResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


_detached: set[asyncio.Task[None]] = set()


def _detach(proc: asyncio.subprocess.Process, argv: list[str]) -> None:
    task = asyncio.create_task(_reap(proc, argv))
    _detached.add(task)
    task.add_done_callback(_detached.discard)


async def _reap(proc: asyncio.subprocess.Process, argv: list[str]) -> None:
    with contextlib.suppress(ProcessLookupError, asyncio.CancelledError):
        await proc.communicate()
        logger.debug("Detached command exited", argv=argv, code=proc.returncode)
