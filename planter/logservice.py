"""Logging that persists events to Redis when storage is configured."""

from __future__ import annotations

import asyncio
import sys
from typing import Any

from planter.events import Event, EventBus
from planter.logstorage import LogEntry, LogStorage


class RedisEventBus(EventBus):
    """An event bus that prints events and stores them in the background."""

    def __init__(self, redis_client: Any) -> None:
        self.storage = LogStorage(redis_client)
        self._tasks: set[asyncio.Task] = set()

    async def _persist(self, event: Event) -> None:
        try:
            await self.storage.store_log(LogEntry.create(event))
        except Exception as exc:  # noqa: BLE001 - background task must not die silently
            print(f"Failed to store log entry: {exc}", file=sys.stderr)

    def publish(self, event: Event) -> None:
        """Print the event and schedule its storage; needs a running event loop."""
        print(f"[event] {event}")
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._persist(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class LoggingService:
    """Records events with context, falling back to the console without storage."""

    def __init__(self, redis_client: Any = None) -> None:
        self.storage = None if redis_client is None else LogStorage(redis_client)

    async def log_event_with_context(
        self,
        event: Event,
        plan_id: str | None = None,
        phase_id: str | None = None,
        context: dict[str, str] | None = None,
    ) -> None:
        """Store the event with its plan, phase and context, or print it."""
        if self.storage is None:
            print(f"[log] {event} (plan: {plan_id!r}, phase: {phase_id!r})")
            return
        entry = LogEntry.create(event)
        if plan_id is not None:
            entry = entry.with_plan_id(plan_id)
        if phase_id is not None:
            entry = entry.with_phase_id(phase_id)
        for key, value in (context or {}).items():
            entry = entry.with_context(key, value)
        await self.storage.store_log(entry)

    async def get_logs(
        self,
        plan_id: str | None = None,
        phase_id: str | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]:
        """Return filtered recent entries; empty without storage."""
        if self.storage is None:
            return []
        return await self.storage.get_logs(plan_id, phase_id, limit)

    async def get_phase_logs(self, phase_id: str) -> list[LogEntry]:
        """Return recent entries for one phase; empty without storage."""
        if self.storage is None:
            return []
        return await self.storage.get_phase_logs(phase_id)

    async def get_plan_logs(self, plan_id: str) -> list[LogEntry]:
        """Return recent entries for one plan; empty without storage."""
        if self.storage is None:
            return []
        return await self.storage.get_plan_logs(plan_id)