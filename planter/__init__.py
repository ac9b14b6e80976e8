"""Phase plans: model, diffing, execution, Redis state and logs, NATS sessions, HTTP handlers."""

__version__ = "0.1.0"