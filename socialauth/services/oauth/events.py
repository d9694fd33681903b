"""Lifecycle events of the auth workflow.

The workflow only depends on the ``EventEmitter`` protocol. The default
emitter writes each event to the log; hosts can pass their own (a message
bus publisher, analytics hook) without touching the workflow.
"""
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class AuthEvents:
    FLOW_STARTED = "auth.flow.started"
    STRATEGY_RESOLVED = "auth.strategy.resolved"
    AUTHENTICATED = "auth.authenticated"
    PROFILE_TRANSFORMED = "auth.profile.transformed"
    USER_CREATED = "auth.user.created"
    USER_UPDATED = "auth.user.updated"
    SUCCESS = "auth.success"
    ERROR = "auth.error"
    FLOW_COMPLETED = "auth.flow.completed"


class EventEmitter(Protocol):
    def emit(self, name: str, payload: dict[str, Any]) -> None:  # pragma: no cover - protocol stub
        ...


class LoggingEventEmitter:
    """Writes events to the ``socialauth.events`` logger."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logging.getLogger("socialauth.events")

    def emit(self, name: str, payload: dict[str, Any]) -> None:
        self.log.info("event=%s", name, extra={"event": name, "payload": payload})


class RecordingEventEmitter:
    """Keeps emitted events in memory, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, payload))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]
