"""Running one phase: optional delay, retries and handlers."""

from __future__ import annotations

import asyncio
import re
import sys
from datetime import timedelta
from typing import Any

from planter.executor import driver, hooks
from planter.executor.driver import ExecutionError
from planter.model import Phase

_SECOND = 1.0
_UNITS: dict[str, float] = {}
for _names, _seconds in (
    (("nsec", "ns"), 1e-9),
    (("usec", "us"), 1e-6),
    (("msec", "ms"), 1e-3),
    (("seconds", "second", "sec", "s"), _SECOND),
    (("minutes", "minute", "min", "m"), 60.0),
    (("hours", "hour", "hr", "h"), 3600.0),
    (("days", "day", "d"), 86400.0),
    (("weeks", "week", "w"), 604800.0),
    (("months", "month", "M"), 2630016.0),
    (("years", "year", "y"), 31557600.0),
):
    for _name in _names:
        _UNITS[_name] = _seconds

_PIECE_RE = re.compile(r"\s*(\d+)\s*([A-Za-z]+)\s*")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "30s", "1m" or "1h 30m"."""
    if not text.strip():
        raise ValueError("empty duration")
    total = 0.0
    pos = 0
    while pos < len(text):
        match = _PIECE_RE.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        unit = match.group(2)
        if unit not in _UNITS:
            raise ValueError(f"unknown time unit {unit!r}")
        total += int(match.group(1)) * _UNITS[unit]
        pos = match.end()
    return timedelta(seconds=total)


async def run_phase(client: Any, phase: Phase) -> None:
    """Run a phase with its retry policy; raise ExecutionError if it fails."""
    print(f"Running phase: {phase.id}")

    wait = phase.spec.wait_for
    if wait is not None and wait.timeout is not None:
        try:
            delay = parse_duration(wait.timeout)
        except ValueError:
            delay = None
        if delay is not None:
            print(f"Waiting {delay} before executing {phase.id}")
            await asyncio.sleep(delay.total_seconds())

    retry = phase.spec.retry
    max_attempts = 1 if retry is None or retry.max_attempts is None else retry.max_attempts

    for attempt in range(1, max_attempts + 1):
        print(f"Attempt {attempt} of {max_attempts} for phase {phase.id}")
        try:
            await driver.execute(phase)
        except ExecutionError as err:
            print(f"Phase {phase.id} attempt {attempt} failed: {err}", file=sys.stderr)
            if attempt == max_attempts:
                await hooks.handle_failure(phase)
                raise
        else:
            await hooks.handle_success(phase)
            return

    raise ExecutionError(f"Phase {phase.id} failed after {max_attempts} attempts")