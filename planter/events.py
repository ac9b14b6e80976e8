"""Events and the process-wide event bus they are published on."""

from __future__ import annotations

import abc
import enum
import json
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union


class EventKind(str, enum.Enum):
    """The kinds of event, named as they appear in stored JSON."""

    PHASE_RECEIVED = "PhaseReceived"
    PHASE_EXECUTED = "PhaseExecuted"
    DIFF_COMPUTED = "DiffComputed"
    PLAN_SUBMITTED = "PlanSubmitted"
    PLAN_APPLIED = "PlanApplied"
    DIFF_RESULT = "DiffResult"
    ERROR = "Error"


_STRUCT_FIELDS: dict[EventKind, tuple[str, ...]] = {
    EventKind.PHASE_EXECUTED: ("id", "success"),
    EventKind.DIFF_COMPUTED: ("adds", "updates", "deletes"),
    EventKind.PLAN_SUBMITTED: ("plan_id", "phases_count"),
    EventKind.PLAN_APPLIED: ("plan_id",),
    EventKind.DIFF_RESULT: ("plan_id", "changes"),
}


@dataclass
class Event:
    """An event: a kind with either a message or a set of named fields."""

    kind: EventKind
    payload: Union[str, dict[str, Any]]

    def __post_init__(self) -> None:
        try:
            self.kind = EventKind(self.kind)
        except ValueError:
            raise ValueError(f"unknown event kind: {self.kind!r}") from None
        fields = _STRUCT_FIELDS.get(self.kind)
        if fields is None:
            if not isinstance(self.payload, str):
                raise ValueError(f"{self.kind.value}: payload must be a string")
            return
        if not isinstance(self.payload, Mapping) or set(self.payload) != set(fields):
            raise ValueError(f"{self.kind.value}: payload must have fields {', '.join(fields)}")
        self.payload = {name: self.payload[name] for name in fields}

    def __str__(self) -> str:
        if isinstance(self.payload, str):
            return f"{self.kind.value}({json.dumps(self.payload, ensure_ascii=False)})"
        fields = ", ".join(
            f"{name}: {json.dumps(value, ensure_ascii=False)}" for name, value in self.payload.items()
        )
        return f"{self.kind.value} {{ {fields} }}"

    def to_dict(self) -> dict[str, Any]:
        """Return the event tagged by its kind name."""
        payload = self.payload if isinstance(self.payload, str) else dict(self.payload)
        return {self.kind.value: payload}

    @classmethod
    def from_dict(cls, data: Any) -> "Event":
        """Build an event from its tagged form."""
        if not isinstance(data, Mapping) or len(data) != 1:
            raise ValueError("event: expected an object with exactly one kind")
        ((kind, payload),) = data.items()
        return cls(kind=kind, payload=payload)


class EventBus(abc.ABC):
    """Something events can be published on."""

    @abc.abstractmethod
    def publish(self, event: Event) -> None:
        """Publish one event."""


class DefaultBus(EventBus):
    """A bus that prints events to standard output."""

    def publish(self, event: Event) -> None:
        print(f"[event] {event}")


class _Registry:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.bus: EventBus = DefaultBus()


_registry = _Registry()


def set_bus(bus: EventBus) -> None:
    """Replace the process-wide bus."""
    with _registry.lock:
        _registry.bus = bus


def get_bus() -> EventBus:
    """Return the process-wide bus."""
    with _registry.lock:
        return _registry.bus


def log_event(event: Event) -> None:
    """Publish an event on the process-wide bus."""
    with _registry.lock:
        _registry.bus.publish(event)


def init_logger() -> None:
    """Announce that logging has started."""
    log_event(Event(EventKind.PHASE_RECEIVED, "Logger initialized"))