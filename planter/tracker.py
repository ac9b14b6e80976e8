"""Persistence of the current and applied plans, in Redis and in the state file."""

from __future__ import annotations

import json
import os
import sys
from typing import Any

from redis.exceptions import RedisError

from planter.config import state_file_path
from planter.model import ModelError, Phase, dump_phases, parse_phases
from planter.store import get_json, set_json

PLAN_CURRENT_KEY = "plan:current"
PLAN_APPLIED_KEY = "plan:applied"
DEFAULT_TENANT = "global"

_CLIENT_ERRORS = (RedisError, OSError)


def tenant_key() -> str:
    """Return the tenant namespace from TENANT_KEY, or "global"."""
    return os.environ.get("TENANT_KEY", DEFAULT_TENANT)


def _key(suffix: str) -> str:
    return f"{tenant_key()}:{suffix}"


def save_state_file(phases: list[Phase]) -> None:
    """Write the phases as pretty JSON to the state file."""
    path = state_file_path()
    path.write_text(json.dumps(dump_phases(phases), indent=2), encoding="utf-8")


def load_state_file() -> list[Phase] | None:
    """Read the phases from the state file, or None if it is missing or invalid."""
    try:
        text = state_file_path().read_text(encoding="utf-8")
    except (OSError, ValueError):
        return None
    try:
        return parse_phases(json.loads(text))
    except ValueError:
        return None


async def _store(client: Any, suffix: str, phases: list[Phase], what: str) -> None:
    try:
        await set_json(client, _key(suffix), dump_phases(phases))
    except _CLIENT_ERRORS as exc:
        print(f"Failed to store {what}: {exc}", file=sys.stderr)


async def _load(client: Any, suffix: str) -> list[Phase] | None:
    try:
        data = await get_json(client, _key(suffix))
    except _CLIENT_ERRORS:
        return None
    if data is None:
        return None
    try:
        return parse_phases(data)
    except ModelError:
        return None


async def store_current_plan(client: Any, phases: list[Phase]) -> None:
    """Store the submitted plan; failures are reported on stderr."""
    await _store(client, PLAN_CURRENT_KEY, phases, "current plan")


async def store_applied_plan(client: Any, phases: list[Phase]) -> None:
    """Store the executed plan; failures are reported on stderr."""
    await _store(client, PLAN_APPLIED_KEY, phases, "applied plan")


async def load_current_plan(client: Any) -> list[Phase] | None:
    """Return the stored current plan, or None."""
    return await _load(client, PLAN_CURRENT_KEY)


async def load_applied_plan(client: Any) -> list[Phase] | None:
    """Return the stored applied plan, or None."""
    return await _load(client, PLAN_APPLIED_KEY)