"""A plan session carried over NATS subjects."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from planter.model import Phase
from planter.nats.messages import ControlMessage, LogMessage, StartMessage, StateMessage


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


class NatsSession:
    """Publishes and subscribes on the subjects of one session."""

    def __init__(self, client: Any, session_id: str) -> None:
        self.client = client
        self.session_id = session_id

    @staticmethod
    def generate_session_id() -> str:
        return f"session-{uuid.uuid4()}"

    def _subject(self, name: str) -> str:
        return f"plan.session.{self.session_id}.{name}"

    def start_subject(self) -> str:
        return self._subject("start")

    def control_subject(self) -> str:
        return self._subject("control")

    def log_subject(self) -> str:
        return self._subject("log")

    def events_subject(self) -> str:
        return self._subject("events")

    def state_subject(self) -> str:
        return self._subject("state")

    def get_state_subject(self) -> str:
        return self._subject("get_state")

    def diff_subject(self) -> str:
        return self._subject("diff")

    async def start_session(self, manifest: list[Phase], dry_run: bool = False) -> None:
        """Send the manifest that starts the session."""
        msg = StartMessage(manifest=list(manifest), dry_run=dry_run)
        await self.client.publish(self.start_subject(), _encode(msg.to_dict()))

    async def send_control(self, command: str) -> None:
        """Send a control command."""
        await self.client.publish(self.control_subject(), _encode(ControlMessage(command).to_dict()))

    async def publish_state(self, phase_id: str, status: str) -> None:
        """Publish a phase status update stamped with the current time."""
        msg = StateMessage(phase_id=phase_id, status=status, updated=_now())
        await self.client.publish(self.state_subject(), _encode(msg.to_dict()))

    async def publish_log(self, phase_id: str | None, level: str, message: str) -> None:
        """Publish a log line stamped with the current time."""
        msg = LogMessage(phase_id=phase_id, level=level, message=message, timestamp=_now())
        await self.client.publish(self.log_subject(), _encode(msg.to_dict()))

    async def subscribe_control(self) -> Any:
        return await self.client.subscribe(self.control_subject())

    async def subscribe_start(self) -> Any:
        return await self.client.subscribe(self.start_subject())