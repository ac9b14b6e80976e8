"""The endpoint listing stored log entries."""

from __future__ import annotations

from redis.exceptions import RedisError
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from planter.logstorage import DEFAULT_LIMIT


def _parse_limit(text: str | None) -> int | None:
    if text is None:
        return None
    if not text.isascii() or not text.isdigit():
        raise ValueError(f"limit: invalid digit found in string {text!r}")
    return int(text)


async def get_logs(request: Request) -> Response:
    """Handle GET /logs with optional plan_id, phase_id and limit filters."""
    params = request.query_params
    plan_id = params.get("plan_id")
    phase_id = params.get("phase_id")
    try:
        limit = _parse_limit(params.get("limit"))
    except ValueError as exc:
        return PlainTextResponse(f"Failed to deserialize query string: {exc}", status_code=400)

    app_state = request.app.state.app_state
    if app_state.redis_client is None:
        return JSONResponse(
            {
                "status": "stateless",
                "message": "No persistent storage configured - logs are ephemeral in stateless mode",
                "logs": [],
            }
        )

    try:
        logs = await app_state.logging_service.get_logs(plan_id, phase_id, limit)
    except (RedisError, OSError, ValueError) as exc:
        return JSONResponse(
            {"status": "error", "message": f"Failed to retrieve logs: {exc}", "logs": []},
            status_code=500,
        )

    return JSONResponse(
        {
            "status": "ok",
            "logs": [entry.to_dict() for entry in logs],
            "count": len(logs),
            "filters": {
                "plan_id": plan_id,
                "phase_id": phase_id,
                "limit": DEFAULT_LIMIT if limit is None else limit,
            },
        }
    )