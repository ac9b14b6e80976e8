"""Execution of a whole plan."""

from __future__ import annotations

import sys
from typing import Any

from planter.executor.driver import ExecutionError
from planter.executor.runner import run_phase
from planter.model import Phase
from planter.tracker import store_applied_plan


async def execute_plan(client: Any, phases: list[Phase]) -> None:
    """Run every phase in order, then record the plan as applied."""
    for phase in phases:
        try:
            await run_phase(client, phase)
        except ExecutionError as err:
            print(f"Phase {phase.id} failed: {err}", file=sys.stderr)
    await store_applied_plan(client, phases)