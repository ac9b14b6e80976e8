"""Runtime configuration: the planter root directory and environment settings."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

DEFAULT_ROOT = Path("/etc/planter")
DEFAULT_PORT = 3030
DEFAULT_LOG_LEVEL = "info"

_PORT_RE = re.compile(r"\+?[0-9]+")


def planter_root() -> Path:
    """Return the root directory, taken from PLANTER_ROOT unless it is unset or empty."""
    value = os.environ.get("PLANTER_ROOT", "")
    return Path(value) if value else DEFAULT_ROOT


def state_file_path() -> Path:
    """Return the path of the state file, creating its directory when possible."""
    state_dir = planter_root() / "state"
    try:
        state_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return state_dir / "state.json"


def _parse_port(text: str | None) -> int | None:
    if text is None or not _PORT_RE.fullmatch(text):
        return None
    port = int(text)
    return port if 0 <= port <= 0xFFFF else None


@dataclass
class Config:
    """Server settings read from the environment."""

    port: int = DEFAULT_PORT
    redis_url: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration from PORT, REDIS_URL and LOG_LEVEL."""
        port = _parse_port(os.environ.get("PORT"))
        return cls(
            port=DEFAULT_PORT if port is None else port,
            redis_url=os.environ.get("REDIS_URL"),
            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )