"""Plan data model: phases and their specifications, with JSON-shaped conversion."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

_T = TypeVar("_T")
_U32_MAX = 0xFFFFFFFF


class ModelError(ValueError):
    """Raised when a document does not describe a valid plan object."""


def _mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise ModelError(f"{what}: expected an object, got {type(data).__name__}")
    return data


def _required_str(data: Mapping, key: str, what: str) -> str:
    if key not in data:
        raise ModelError(f"{what}: missing field '{key}'")
    value = data[key]
    if not isinstance(value, str):
        raise ModelError(f"{what}: field '{key}' must be a string")
    return value


def _optional_str(data: Mapping, key: str, what: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ModelError(f"{what}: field '{key}' must be a string or null")
    return value


def _str_list(data: Mapping, key: str, what: str) -> list[str]:
    if key not in data:
        return []
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ModelError(f"{what}: field '{key}' must be a list of strings")
    return list(value)


def _str_map(value: Any, what: str) -> dict[str, str]:
    if not isinstance(value, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ModelError(f"{what}: expected a mapping of strings to strings")
    return dict(value)


def _optional_obj(data: Mapping, key: str, build: Callable[[Any], _T]) -> _T | None:
    value = data.get(key)
    return None if value is None else build(value)


def _dump(value: Any) -> Any:
    return None if value is None else value.to_dict()


@dataclass
class Notify:
    """Notification targets for a handler."""

    email: str | None = None
    slack: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "Notify":
        data = _mapping(data, "notify")
        return cls(
            email=_optional_str(data, "email", "notify"),
            slack=_optional_str(data, "slack", "notify"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "slack": self.slack}


@dataclass
class HandlerSpec:
    """Messages, notifications and labels attached to a handler."""

    message: list[str] = field(default_factory=list)
    notify: Notify | None = None
    labels: dict[str, str] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "HandlerSpec":
        data = _mapping(data, "handler spec")
        return cls(
            message=_str_list(data, "message", "handler spec"),
            notify=_optional_obj(data, "notify", Notify.from_dict),
            labels=_optional_obj(data, "labels", lambda v: _str_map(v, "handler spec labels")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": list(self.message),
            "notify": _dump(self.notify),
            "labels": None if self.labels is None else dict(self.labels),
        }


@dataclass
class Handler:
    """A success or failure handler of a phase."""

    action: str | None = None
    spec: HandlerSpec | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "Handler":
        data = _mapping(data, "handler")
        return cls(
            action=_optional_str(data, "action", "handler"),
            spec=_optional_obj(data, "spec", HandlerSpec.from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "spec": _dump(self.spec)}


@dataclass
class Retry:
    """Retry policy of a phase."""

    max_attempts: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "Retry":
        data = _mapping(data, "retry")
        value = data.get("max_attempts")
        if value is not None and (
            isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX
        ):
            raise ModelError("retry: field 'max_attempts' must be a non-negative 32-bit integer")
        return cls(max_attempts=value)

    def to_dict(self) -> dict[str, Any]:
        return {"max_attempts": self.max_attempts}


@dataclass
class WaitFor:
    """Dependencies and delay before a phase runs."""

    phases: list[str] = field(default_factory=list)
    timeout: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "WaitFor":
        data = _mapping(data, "wait_for")
        return cls(
            phases=_str_list(data, "phases", "wait_for"),
            timeout=_optional_str(data, "timeout", "wait_for"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"phases": list(self.phases), "timeout": self.timeout}


@dataclass
class Selector:
    """Labels that select where a phase applies."""

    match_labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Selector":
        data = _mapping(data, "selector")
        if "match_labels" not in data:
            raise ModelError("selector: missing field 'match_labels'")
        return cls(match_labels=_str_map(data["match_labels"], "selector match_labels"))

    def to_dict(self) -> dict[str, Any]:
        return {"match_labels": dict(self.match_labels)}


@dataclass
class PhaseSpec:
    """The body of a phase."""

    description: str
    selector: Selector
    instance_mode: str | None = None
    wait_for: WaitFor | None = None
    retry: Retry | None = None
    on_failure: Handler | None = None
    on_success: Handler | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "PhaseSpec":
        data = _mapping(data, "spec")
        if "selector" not in data:
            raise ModelError("spec: missing field 'selector'")
        return cls(
            description=_required_str(data, "description", "spec"),
            selector=Selector.from_dict(data["selector"]),
            instance_mode=_optional_str(data, "instance_mode", "spec"),
            wait_for=_optional_obj(data, "wait_for", WaitFor.from_dict),
            retry=_optional_obj(data, "retry", Retry.from_dict),
            on_failure=_optional_obj(data, "onFailure", Handler.from_dict),
            on_success=_optional_obj(data, "onSuccess", Handler.from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "selector": self.selector.to_dict(),
            "instance_mode": self.instance_mode,
            "wait_for": _dump(self.wait_for),
            "retry": _dump(self.retry),
            "onFailure": _dump(self.on_failure),
            "onSuccess": _dump(self.on_success),
        }


@dataclass
class Phase:
    """A single phase of a plan, identified by its kind and id."""

    kind: str
    id: str
    spec: PhaseSpec

    @classmethod
    def from_dict(cls, data: Any) -> "Phase":
        data = _mapping(data, "phase")
        if "Spec" not in data:
            raise ModelError("phase: missing field 'Spec'")
        return cls(
            kind=_required_str(data, "Kind", "phase"),
            id=_required_str(data, "Id", "phase"),
            spec=PhaseSpec.from_dict(data["Spec"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"Kind": self.kind, "Id": self.id, "Spec": self.spec.to_dict()}


def parse_phases(data: Any) -> list[Phase]:
    """Build a list of phases from a JSON-shaped list."""
    if not isinstance(data, list):
        raise ModelError(f"plan: expected a list of phases, got {type(data).__name__}")
    return [Phase.from_dict(item) for item in data]


def dump_phases(phases: list[Phase]) -> list[dict[str, Any]]:
    """Convert phases into a JSON-shaped list."""
    return [phase.to_dict() for phase in phases]