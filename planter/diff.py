"""Comparison of two plans, phase by phase."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from planter.model import Phase


@dataclass(frozen=True)
class Add:
    """A phase present only in the incoming plan."""

    phase: Phase


@dataclass(frozen=True)
class Update:
    """A phase present in both plans with a changed spec."""

    old: Phase
    new: Phase


@dataclass(frozen=True)
class Delete:
    """A phase present only in the current plan."""

    phase: Phase


DiffResult = Union[Add, Update, Delete]


def diff_plans(current: list[Phase], incoming: list[Phase]) -> list[DiffResult]:
    """Compare the applied plan with an incoming one, keyed by (kind, id).

    Additions and updates come first in incoming order, then deletions in
    current order. When a key repeats within a plan, the last phase wins.
    """
    current_map = {(p.kind, p.id): p for p in current}
    incoming_map = {(p.kind, p.id): p for p in incoming}

    results: list[DiffResult] = []
    for key, new_phase in incoming_map.items():
        old_phase = current_map.get(key)
        if old_phase is None:
            results.append(Add(new_phase))
        elif old_phase.spec != new_phase.spec:
            results.append(Update(old=old_phase, new=new_phase))

    results.extend(Delete(old) for key, old in current_map.items() if key not in incoming_map)
    return results