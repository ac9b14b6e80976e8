"""The plan submission endpoint and the state shared by all routes."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from redis.exceptions import RedisError
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from planter.diff import Add, Delete, Update, diff_plans
from planter.events import Event, EventKind, log_event
from planter.executor.execution import execute_plan
from planter.logservice import LoggingService
from planter.model import ModelError, Phase, parse_phases
from planter.tracker import load_applied_plan, store_current_plan


@dataclass
class AppState:
    """Clients and services the routes work with; found at ``app.state.app_state``."""

    redis_client: Any = None
    nats_client: Any = None
    logging_service: LoggingService = field(default_factory=LoggingService)
    tenant_key: str = "global"


def _is_json(content_type: str) -> bool:
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime == "application/json" or (mime.startswith("application/") and mime.endswith("+json"))


async def _record(
    service: LoggingService,
    event: Event,
    plan_id: str | None,
    phase_id: str | None,
    context: dict[str, str] | None = None,
) -> None:
    try:
        await service.log_event_with_context(event, plan_id, phase_id, context or {})
    except (RedisError, OSError):
        pass


def _describe(change: Any) -> tuple[str, str]:
    match change:
        case Add(phase=phase):
            return "+", f"Add: {phase.id} ({phase.spec.description})"
        case Update(old=old, new=new):
            return "~", f"Update: {new.id} ({old.spec.description} -> {new.spec.description})"
        case Delete(phase=phase):
            return "-", f"Delete: {phase.id} ({phase.spec.description})"
    raise TypeError(f"unknown change: {change!r}")


async def _handle_plan(app_state: AppState, phases: list[Phase]) -> JSONResponse:
    plan_id = str(uuid.uuid4())
    service = app_state.logging_service

    log_event(Event(EventKind.PHASE_RECEIVED, f"Received plan with {len(phases)} phases"))
    await _record(
        service,
        Event(EventKind.PLAN_SUBMITTED, {"plan_id": plan_id, "phases_count": len(phases)}),
        plan_id,
        None,
    )

    for phase in phases:
        print(f"- {phase.id}: {phase.spec.description}")
        await _record(
            service,
            Event(EventKind.PHASE_RECEIVED, f"Phase: {phase.id}"),
            plan_id,
            phase.id,
            {"description": phase.spec.description},
        )

    if app_state.nats_client is not None:
        session = app_state.nats_client.new_session()
        try:
            await session.start_session(list(phases), False)
        except (OSError, ConnectionError) as exc:
            return JSONResponse({"error": f"NATS session start failed: {exc}"}, status_code=500)
        return JSONResponse({"sessionId": session.session_id}, status_code=202)

    client = app_state.redis_client
    if client is not None:
        previous = await load_applied_plan(client) or []
        changes = diff_plans(previous, phases)

        descriptions = []
        if changes:
            print("Plan differences detected:")
            for change in changes:
                marker, text = _describe(change)
                print(f"  {marker} {text}")
                descriptions.append(text)
        else:
            print("No changes detected in plan")

        await _record(
            service,
            Event(EventKind.DIFF_RESULT, {"plan_id": plan_id, "changes": list(descriptions)}),
            plan_id,
            None,
        )

        await store_current_plan(client, phases)
        await execute_plan(client, phases)

        return JSONResponse(
            {
                "status": "success",
                "message": "Plan received and executed",
                "plan_id": plan_id,
                "phases_count": len(phases),
                "changes_count": len(changes),
                "changes": descriptions,
            }
        )

    print("No Redis configured - simulating execution")
    for phase in phases:
        print(f"Simulating execution of phase: {phase.id}")
        await _record(
            service,
            Event(EventKind.PHASE_EXECUTED, {"id": phase.id, "success": True}),
            plan_id,
            phase.id,
            {"mode": "simulation"},
        )

    return JSONResponse(
        {
            "status": "success",
            "message": "Plan received and simulated",
            "plan_id": plan_id,
            "phases_count": len(phases),
        }
    )


async def submit_plan(request: Request) -> Response:
    """Handle POST /plan: record, diff and run (or dispatch) a list of phases."""
    if not _is_json(request.headers.get("content-type", "")):
        return PlainTextResponse(
            "Expected request with `Content-Type: application/json`", status_code=415
        )
    body = await request.body()
    try:
        data = json.loads(body)
    except ValueError as exc:
        return PlainTextResponse(f"Failed to parse the request body as JSON: {exc}", status_code=400)
    try:
        phases = parse_phases(data)
    except ModelError as exc:
        return PlainTextResponse(
            f"Failed to deserialize the JSON body into the target type: {exc}", status_code=422
        )
    return await _handle_plan(request.app.state.app_state, phases)