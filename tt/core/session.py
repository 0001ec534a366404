"""The in-memory tracking session and the payload observers receive."""

from dataclasses import dataclass, replace
from enum import Enum


class EventType(str, Enum):
    START = "start"
    TICK = "tick"
    STOP = "stop"


@dataclass(frozen=True)
class TrackingSession:
    """What is being timed right now.

    Frozen: everything here is captured at start and never edited. Only the
    Authority creates sessions; the single field it fills in afterwards
    (`task_id`, once the insert lands) goes through ``with_task_id``.
    Elapsed time is not stored; it is always ``clock.monotonic() -
    started_mono``.
    """
    group_key: str
    task_name: str
    base_name: str
    project_id: int
    project_name: str
    client_id: int
    client_name: str
    started_mono: float
    started_at: str
    task_id: int | None = None
    client_rate: float = 0.0
    currency: str = "EUR"
    pomodoro_seconds: int | None = None

    def with_task_id(self, task_id: int) -> "TrackingSession":
        return replace(self, task_id=task_id)

    def elapsed_at(self, mono_now: float) -> int:
        return max(0, int(mono_now - self.started_mono))


@dataclass(frozen=True)
class TrackingEvent:
    """Read-only snapshot handed to observers on every transition."""
    event: EventType
    group_key: str
    task_name: str
    project_name: str
    client_name: str
    elapsed_seconds: int
    task_id: int | None = None
    project_id: int | None = None
    client_id: int | None = None
    started_at: str | None = None
    client_rate: float = 0.0
    currency: str = "EUR"
    remaining_seconds: int | None = None

    @staticmethod
    def from_session(event: EventType, session: TrackingSession, elapsed_seconds: int) -> "TrackingEvent":
        remaining = None
        if session.pomodoro_seconds:
            remaining = max(0, session.pomodoro_seconds - elapsed_seconds)
        return TrackingEvent(
            event=event,
            group_key=session.group_key,
            task_name=session.task_name,
            project_name=session.project_name,
            client_name=session.client_name,
            elapsed_seconds=elapsed_seconds,
            task_id=session.task_id,
            project_id=session.project_id,
            client_id=session.client_id,
            started_at=session.started_at,
            client_rate=session.client_rate,
            currency=session.currency,
            remaining_seconds=remaining,
        )
