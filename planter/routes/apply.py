"""The endpoint that commits the staged plan."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse

_WITH_STORAGE = ("success", "Plan application not yet implemented")
_WITHOUT_STORAGE = (
    "stateless",
    "Plan application requires persistent storage - running in stateless mode",
)


async def apply_plan(request: Request) -> JSONResponse:
    """Handle POST /apply."""
    has_storage = request.app.state.app_state.redis_client is not None
    status, message = _WITH_STORAGE if has_storage else _WITHOUT_STORAGE
    return JSONResponse({"status": status, "message": message, "action": "apply"})