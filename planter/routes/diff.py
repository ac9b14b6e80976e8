"""The endpoint reporting differences against the applied plan."""

from __future__ import annotations

from collections import Counter
from contextlib import suppress

from redis.exceptions import RedisError
from starlette.requests import Request
from starlette.responses import JSONResponse

from planter.diff import Add, Delete, Update, diff_plans
from planter.events import Event, EventKind
from planter.tracker import load_applied_plan

_STATELESS_REPLY = {
    "status": "stateless",
    "message": "No persistent storage configured - diff requires stored state",
    "diff": None,
}

_NO_BASELINE_REPLY = {
    "status": "no_baseline",
    "message": "No baseline plan found for comparison",
    "diff": None,
}


def _describe(change: Add | Update | Delete) -> dict:
    """Render one change as the JSON object the endpoint reports."""
    match change:
        case Add(phase=phase):
            return {"type": "add", "phase_id": phase.id, "description": phase.spec.description}
        case Update(old=old, new=new):
            return {
                "type": "update",
                "phase_id": new.id,
                "old_description": old.spec.description,
                "new_description": new.spec.description,
            }
        case Delete(phase=phase):
            return {"type": "delete", "phase_id": phase.id, "description": phase.spec.description}
    raise TypeError(f"unknown change: {change!r}")


async def get_diff(request: Request) -> JSONResponse:
    """Handle GET /diff."""
    app_state = request.app.state.app_state
    client = app_state.redis_client
    if client is None:
        return JSONResponse(_STATELESS_REPLY)

    baseline = await load_applied_plan(client) or []
    if not baseline:
        return JSONResponse(_NO_BASELINE_REPLY)

    current = await load_applied_plan(client) or []
    changes = [_describe(change) for change in diff_plans(baseline, current)]
    tally = Counter(change["type"] for change in changes)
    counts = {"adds": tally["add"], "updates": tally["update"], "deletes": tally["delete"]}

    with suppress(RedisError, OSError):
        await app_state.logging_service.log_event_with_context(
            Event(EventKind.DIFF_COMPUTED, dict(counts)),
            request.query_params.get("plan_id"),
            None,
            {},
        )

    summary = {**counts, "total_changes": sum(counts.values())}
    return JSONResponse(
        {
            "status": "ok",
            "diff": {"summary": summary, "changes": changes},
            "baseline_phases": len(baseline),
            "current_phases": len(current),
        }
    )