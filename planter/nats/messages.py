"""Messages exchanged on session subjects."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from planter.model import Phase, dump_phases, parse_phases


def _obj(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected an object")
    return data


def _str(data: Mapping, key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"{what}: field '{key}' must be a string")
    return value


@dataclass
class StartMessage:
    """Starts a session with a manifest of phases."""

    manifest: list[Phase] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"manifest": dump_phases(self.manifest), "dryRun": self.dry_run}

    @classmethod
    def from_dict(cls, data: Any) -> "StartMessage":
        data = _obj(data, "start message")
        if "manifest" not in data:
            raise ValueError("start message: missing field 'manifest'")
        dry_run = data.get("dryRun", False)
        if not isinstance(dry_run, bool):
            raise ValueError("start message: field 'dryRun' must be a boolean")
        return cls(manifest=parse_phases(data["manifest"]), dry_run=dry_run)


@dataclass
class ControlMessage:
    """A control command: "pause", "resume" or "cancel"."""

    command: str

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command}

    @classmethod
    def from_dict(cls, data: Any) -> "ControlMessage":
        return cls(command=_str(_obj(data, "control message"), "command", "control message"))


@dataclass
class StateMessage:
    """A phase status update with its ISO 8601 time."""

    phase_id: str
    status: str
    updated: str

    def to_dict(self) -> dict[str, Any]:
        return {"phaseId": self.phase_id, "status": self.status, "updated": self.updated}

    @classmethod
    def from_dict(cls, data: Any) -> "StateMessage":
        data = _obj(data, "state message")
        return cls(
            phase_id=_str(data, "phaseId", "state message"),
            status=_str(data, "status", "state message"),
            updated=_str(data, "updated", "state message"),
        )


@dataclass
class LogMessage:
    """A log line, optionally about one phase."""

    phase_id: str | None
    level: str
    message: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.phase_id is not None:
            result["phaseId"] = self.phase_id
        result.update(level=self.level, message=self.message, timestamp=self.timestamp)
        return result

    @classmethod
    def from_dict(cls, data: Any) -> "LogMessage":
        data = _obj(data, "log message")
        phase_id = data.get("phaseId")
        if phase_id is not None and not isinstance(phase_id, str):
            raise ValueError("log message: field 'phaseId' must be a string")
        return cls(
            phase_id=phase_id,
            level=_str(data, "level", "log message"),
            message=_str(data, "message", "log message"),
            timestamp=_str(data, "timestamp", "log message"),
        )


SessionMessage = Union[StartMessage, ControlMessage, StateMessage, LogMessage]

_TAGS: dict[str, type] = {
    "Start": StartMessage,
    "Control": ControlMessage,
    "State": StateMessage,
    "Log": LogMessage,
}


def session_message_to_dict(message: SessionMessage) -> dict[str, Any]:
    """Return the message with a "type" tag naming its kind."""
    for tag, kind in _TAGS.items():
        if isinstance(message, kind):
            return {"type": tag, **message.to_dict()}
    raise TypeError(f"not a session message: {type(message).__name__}")


def session_message_from_dict(data: Any) -> SessionMessage:
    """Build a message from its tagged form."""
    data = _obj(data, "session message")
    kind = _TAGS.get(data.get("type"))
    if kind is None:
        raise ValueError(f"session message: unknown type {data.get('type')!r}")
    return kind.from_dict({k: v for k, v in data.items() if k != "type"})


class SessionControl(str, enum.Enum):
    """Session control commands."""

    PAUSE = "pause"
    RESUME = "resume"
    CANCEL = "cancel"

    def __str__(self) -> str:
        return self.value