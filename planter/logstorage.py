"""Log entries and their storage in Redis with a chronological index."""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from redis.exceptions import RedisError

from planter.events import Event
from planter.store import get_json, set_json
from planter.tracker import tenant_key

LOGS_KEY_PREFIX = "logs:"
LOGS_INDEX_KEY = "logs:index"
INDEX_CAPACITY = 1000
DEFAULT_LIMIT = 100
PHASE_LOGS_LIMIT = 50
PLAN_LOGS_LIMIT = 200

_TIMESTAMP_RE = re.compile(
    r"(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|z|[+-]\d{2}:\d{2})$"
)


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(text: Any) -> datetime:
    if not isinstance(text, str):
        raise ValueError("log entry: timestamp must be a string")
    match = _TIMESTAMP_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"log entry: invalid timestamp {text!r}")
    frac = (match["frac"] or "")[:6].ljust(6, "0")
    tz = "+00:00" if match["tz"] in ("Z", "z") else match["tz"]
    return datetime.fromisoformat(f"{match['base']}.{frac}{tz}").astimezone(timezone.utc)


def _optional_str(data: Mapping, key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"log entry: {key} must be a string or null")
    return value


@dataclass
class LogEntry:
    """One stored event with the plan, phase and context it concerns."""

    id: str
    timestamp: datetime
    event: Event
    plan_id: str | None = None
    phase_id: str | None = None
    context: dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(cls, event: Event) -> "LogEntry":
        """Make a new entry with a fresh id and the current time."""
        return cls(id=str(uuid.uuid4()), timestamp=datetime.now(timezone.utc), event=event)

    def with_plan_id(self, plan_id: str) -> "LogEntry":
        return replace(self, plan_id=plan_id, context=dict(self.context))

    def with_phase_id(self, phase_id: str) -> "LogEntry":
        return replace(self, phase_id=phase_id, context=dict(self.context))

    def with_context(self, key: str, value: str) -> "LogEntry":
        return replace(self, context={**self.context, key: value})

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": _format_timestamp(self.timestamp),
            "event": self.event.to_dict(),
            "plan_id": self.plan_id,
            "phase_id": self.phase_id,
            "context": dict(self.context),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "LogEntry":
        if not isinstance(data, Mapping):
            raise ValueError("log entry: expected an object")
        entry_id = data.get("id")
        if not isinstance(entry_id, str):
            raise ValueError("log entry: id must be a string")
        context = data.get("context")
        if not isinstance(context, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in context.items()
        ):
            raise ValueError("log entry: context must map strings to strings")
        return cls(
            id=entry_id,
            timestamp=_parse_timestamp(data.get("timestamp")),
            event=Event.from_dict(data.get("event")),
            plan_id=_optional_str(data, "plan_id"),
            phase_id=_optional_str(data, "phase_id"),
            context=dict(context),
        )


class LogStorage:
    """Stores log entries in Redis, keeping an index of the most recent ones."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @staticmethod
    def _entry_key(log_id: str) -> str:
        return f"{tenant_key()}:{LOGS_KEY_PREFIX}{log_id}"

    async def store_log(self, entry: LogEntry) -> None:
        """Store the entry and append it to the index."""
        await set_json(self.client, self._entry_key(entry.id), entry.to_dict())
        await self._add_to_index(entry.id)

    async def get_logs(
        self,
        plan_id: str | None = None,
        phase_id: str | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]:
        """Return recent entries, newest first, matching the given plan and phase."""
        ids = await self._recent_ids(DEFAULT_LIMIT if limit is None else limit)
        logs = []
        for log_id in ids:
            try:
                data = await get_json(self.client, self._entry_key(log_id))
            except (RedisError, OSError):
                continue
            if data is None:
                continue
            try:
                entry = LogEntry.from_dict(data)
            except ValueError:
                continue
            if plan_id is not None and entry.plan_id != plan_id:
                continue
            if phase_id is not None and entry.phase_id != phase_id:
                continue
            logs.append(entry)
        return logs

    async def get_phase_logs(self, phase_id: str) -> list[LogEntry]:
        """Return recent entries for one phase."""
        return await self.get_logs(None, phase_id, PHASE_LOGS_LIMIT)

    async def get_plan_logs(self, plan_id: str) -> list[LogEntry]:
        """Return recent entries for one plan."""
        return await self.get_logs(plan_id, None, PLAN_LOGS_LIMIT)

    async def _read_index(self) -> list[str]:
        index = await get_json(self.client, LOGS_INDEX_KEY)
        if not isinstance(index, list) or not all(isinstance(i, str) for i in index):
            return []
        return index

    async def _add_to_index(self, log_id: str) -> None:
        index = await self._read_index()
        index.append(log_id)
        await set_json(self.client, LOGS_INDEX_KEY, index[-INDEX_CAPACITY:])

    async def _recent_ids(self, limit: int) -> list[str]:
        if limit < 0:
            raise ValueError("limit must not be negative")
        index = await self._read_index()
        start = max(len(index) - limit, 0)
        return list(reversed(index[start:]))