"""Execution of a single phase as a child process."""

from __future__ import annotations

import asyncio
import shutil
import sys

from planter.model import Phase

_SCRIPT = "print('Executing phase')"


class ExecutionError(RuntimeError):
    """Raised when a phase could not be executed successfully."""


def _interpreter() -> str:
    return shutil.which("python3") or sys.executable


async def execute(phase: Phase) -> str:
    """Run the phase's script and return what it printed."""
    print(f"(Simulating Python execution for '{phase.spec.description}')")
    try:
        process = await asyncio.create_subprocess_exec(
            _interpreter(),
            "-c",
            _SCRIPT,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except OSError as exc:
        raise ExecutionError(str(exc)) from exc

    if process.returncode != 0:
        raise ExecutionError(f"Script failed: {stderr.decode('utf-8', 'replace')}")

    output = stdout.decode("utf-8", "replace")
    print(output)
    return output