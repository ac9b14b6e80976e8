"""The endpoint returning the currently stored plan."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse

from planter.model import dump_phases
from planter.tracker import load_current_plan


async def get_state(request: Request) -> JSONResponse:
    """Handle GET /state."""
    client = request.app.state.app_state.redis_client
    if client is None:
        return JSONResponse(
            {
                "status": "stateless",
                "message": "No persistent storage configured - running in stateless mode",
                "plan": None,
            }
        )
    plan = await load_current_plan(client)
    if plan is None:
        return JSONResponse(
            {"status": "not_found", "message": "No plan currently stored"}, status_code=404
        )
    return JSONResponse({"status": "ok", "plan": dump_phases(plan), "source": "redis"})