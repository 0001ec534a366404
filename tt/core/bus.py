"""Observer registry and synchronous notification fan-out.

UI surfaces never keep their own copy of the tracking state; they register
here and re-render from the TrackingEvent they are handed. Delivery is
synchronous, in registration order, on whatever thread emitted (the Qt GUI
thread in the app).

An observer with ``scope_key=None`` hears about every session. A scoped
observer only hears events whose group key equals its scope.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from tt.common.logger import log
from tt.core.session import TrackingEvent


class ObserverKind(Enum):
    BUTTON = "button"
    TIME_LABEL = "time_label"
    MONEY_LABEL = "money_label"
    ROW_HIGHLIGHT = "row_highlight"
    HEADER = "header"
    COMPACT = "compact"
    SUBSCRIBER = "subscriber"


_ids = count(1)


@dataclass(eq=False)
class Registration:
    """Handle for one registered observer. Closing it unregisters (idempotent).

    Usable as a context manager so a registration can be scoped to a block.
    """
    kind: ObserverKind
    update: Callable[[TrackingEvent], None]
    scope_key: str | None = None
    _bus: "NotificationBus | None" = field(default=None, repr=False)
    id: int = field(default_factory=lambda: next(_ids))

    @property
    def active(self) -> bool:
        return self._bus is not None and self._bus.is_registered(self)

    def matches(self, group_key: str) -> bool:
        return self.scope_key is None or self.scope_key == group_key

    def close(self):
        if self._bus is not None:
            self._bus.unregister(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class NotificationBus:

    def __init__(self):
        self._observers: dict[int, Registration] = {}
        self._dispatching = False
        self._pending: list[TrackingEvent | Callable[[], None]] = []

    def register(self, kind: ObserverKind, update: Callable[[TrackingEvent], None],
                 scope_key: str | None = None) -> Registration:
        registration = Registration(kind=kind, update=update, scope_key=scope_key, _bus=self)
        self._observers[registration.id] = registration
        log.debug(f"Registered {kind.value} observer {registration.id} (scope={scope_key})")
        return registration

    # Safe to call from inside a callback, and safe to call twice.
    def unregister(self, registration: Registration):
        if self._observers.pop(registration.id, None) is not None:
            log.debug(f"Unregistered {registration.kind.value} observer {registration.id}")

    def is_registered(self, registration: Registration) -> bool:
        return registration.id in self._observers

    def observers(self, kind: ObserverKind | None = None) -> list[Registration]:
        return [r for r in self._observers.values() if kind is None or r.kind == kind]

    def clear(self):
        self._observers.clear()
        self._pending.clear()

    def emit(self, event: TrackingEvent):
        """Deliver `event` to every observer whose scope matches.

        An emit issued from inside a callback is held until the current
        fan-out finishes, so every observer sees transitions in the order
        they happened.
        """
        self._enqueue(event)

    # Run `callback` after everything already queued has been delivered; right away when nothing is in flight.
    def defer(self, callback: Callable[[], None]):
        self._enqueue(callback)

    def _enqueue(self, item):
        self._pending.append(item)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._pending:
                item = self._pending.pop(0)
                if isinstance(item, TrackingEvent):
                    self._dispatch(item)
                else:
                    self._run_deferred(item)
        finally:
            self._dispatching = False

    def _run_deferred(self, callback):
        try:
            callback()
        except Exception:
            log.exception("Deferred bus callback failed")

    def _dispatch(self, event: TrackingEvent):
        # Iterate a snapshot: callbacks may register or unregister while we walk the list.
        for registration in list(self._observers.values()):
            if not self.is_registered(registration) or not registration.matches(event.group_key):
                continue
            try:
                registration.update(event)
            except Exception:
                log.exception(f"{registration.kind.value} observer {registration.id} failed on "
                              f"'{event.event.value}' for '{event.group_key}'")
