"""The endpoint reporting the recorded activity of one phase."""

from __future__ import annotations

from redis.exceptions import RedisError
from starlette.requests import Request
from starlette.responses import JSONResponse

_STATELESS_MESSAGE = (
    "No persistent storage configured - phase history not available in stateless mode"
)


def _phase_summary(phase_id: str, entries: list[dict]) -> dict:
    """Describe a phase from its log entries, most recent first."""
    if not entries:
        return {
            "id": phase_id,
            "status": "not_found",
            "logs_count": 0,
            "logs": [],
            "message": "No logs found for this phase",
        }
    return {
        "id": phase_id,
        "status": "found",
        "logs_count": len(entries),
        "logs": entries,
        "last_activity": entries[0]["timestamp"],
    }


async def get_phase(request: Request) -> JSONResponse:
    """Handle GET /phases/{id}: the logs recorded for the phase."""
    phase_id = request.path_params["id"]
    app_state = request.app.state.app_state
    try:
        logs = await app_state.logging_service.get_phase_logs(phase_id)
    except (RedisError, OSError, ValueError) as exc:
        if app_state.redis_client is None:
            reply = {"status": "stateless", "phase_id": phase_id, "message": _STATELESS_MESSAGE}
            return JSONResponse(reply)
        reply = {
            "status": "error",
            "phase_id": phase_id,
            "message": f"Failed to retrieve phase information: {exc}",
        }
        return JSONResponse(reply, status_code=500)

    summary = _phase_summary(phase_id, [entry.to_dict() for entry in logs])
    return JSONResponse({"status": "ok", "phase": summary})