"""Tracking Session Authority: the one owner of "what is being timed right now".

State machine with two states, Idle (no session) and Active (one session):

    Idle   --start-->  Active   persist_start must succeed first
    Active --tick-->   Active   notify, then checkpoint (failures swallowed)
    Active --stop-->   Idle     always ends Idle; a failed close is reported
    Active --start-->  Active   full stop of the old session, then start

Everything runs on one thread (the Qt event loop in the app). The recurring
tick comes from a timer handle the Authority creates on start and stops
inside stop(), so a stopped session can never keep ticking.
"""

import sqlite3
from collections.abc import Callable
from tt.common.logger import log
from tt.core.bus import NotificationBus
from tt.core.clock import SystemClock
from tt.core.errors import PersistenceStartFailed, PersistenceStopFailed, TrackingError, ValidationError
from tt.core.identity import base_name, compute_group_key, resolve_unique_name
from tt.core.persistence import PersistenceCoordinator
from tt.core.session import EventType, TrackingEvent, TrackingSession
from tt.core.validation import validate_name, validate_number


class TrackingAuthority:

    def __init__(self,
                 persistence: PersistenceCoordinator,
                 bus: NotificationBus,
                 timer_factory: Callable[[], object],
                 clock: SystemClock | None = None,
                 tick_interval_ms: int = 1000,
                 checkpoint_every_ticks: int = 1,
                 default_task_name: str = "New Task"):
        """
        Args:
            persistence: Coordinator used for every storage write.
            bus: Where transitions are announced.
            timer_factory: Builds a recurring timer handle exposing
                ``start(callback, interval_ms)`` and ``stop()``.
            clock: Monotonic + wall-clock source; defaults to SystemClock.
            tick_interval_ms: Period of the tick.
            checkpoint_every_ticks: Checkpoint write cadence in ticks.
            default_task_name: Name used when start() is given no name.
        """
        self.persistence = persistence
        self.bus = bus
        self.clock = clock or SystemClock()
        self._timer_factory = timer_factory
        self.tick_interval_ms = tick_interval_ms
        self.checkpoint_every_ticks = max(1, int(checkpoint_every_ticks))
        self.default_task_name = default_task_name

        self._session: TrackingSession | None = None
        self._timer = None
        self._tick_count = 0
        self._last_elapsed = 0
        self._error_listeners: list[Callable[[TrackingError], None]] = []

        self.last_used_project_id: int | None = None
        self.last_used_client_id: int | None = None

    #region === Read access ===

    @property
    def is_tracking(self) -> bool:
        return self._session is not None

    def is_stack_tracking(self, group_key: str) -> bool:
        return self._session is not None and self._session.group_key == group_key

    # Read-only snapshot of the active session, or None when idle.
    def get_current_state(self) -> TrackingEvent | None:
        if self._session is None:
            return None
        return TrackingEvent.from_session(EventType.TICK, self._session, self._elapsed_now())

    def _elapsed_now(self) -> int:
        # Never report less than a previous tick did.
        return max(self._last_elapsed, self._session.elapsed_at(self.clock.monotonic()))

    #endregion === Read access ===

    #region === Transitions ===

    def start(self, name: str | None, project_id: int | None = None, client_id: int | None = None,
              pomodoro_seconds: int | None = None, number_in_stack: bool = False) -> TrackingEvent:
        """Start timing a task, stopping whatever was running first.

        Args:
            name: Task name. None picks the default name, numbered so it does
                not collide with an existing session in its stack.
            project_id: Project to book against; unknown ids fall back.
            client_id: Client to book against; unknown ids fall back.
            pomodoro_seconds: Optional countdown; the session stops itself
                once this much time has elapsed.
            number_in_stack: Number an explicit name past the sessions
                already stored in its stack, e.g. "Design" becomes
                "Design (3)" when "Design" and "Design (2)" exist.

        Returns:
            The start event that was broadcast.

        Raises:
            ValidationError: bad name or pomodoro length. Any running session
                keeps running.
            PersistenceStartFailed: the task row could not be inserted. The
                Authority is Idle afterwards.
        """
        # Validate before touching storage so a bad name costs nothing.
        if name is not None:
            name = self._validated_name(name)
        if pomodoro_seconds is not None:
            check = validate_number(pomodoro_seconds, 1)
            if not check.valid:
                raise ValidationError(f"Pomodoro length: {check.error}")
            pomodoro_seconds = check.sanitized

        project, client = self.persistence.resolve_context(project_id, client_id)
        if name is None:
            name = self._validated_name(self._numbered_name(self.default_task_name, project, client))
        elif number_in_stack:
            name = self._validated_name(self._numbered_name(name, project, client))

        if self._session is not None:
            log.info(f"Switching from '{self._session.task_name}' to '{name}'")
            self.stop()

        mono, wall = self.clock.capture()
        pending = TrackingSession(
            group_key=compute_group_key(name, project["name"], client["name"]),
            task_name=name,
            base_name=base_name(name),
            project_id=project["id"],
            project_name=project["name"],
            client_id=client["id"],
            client_name=client["name"],
            started_mono=mono,
            started_at=wall,
            client_rate=float(client.get("rate") or 0.0),
            currency=client.get("currency") or "EUR",
            pomodoro_seconds=pomodoro_seconds,
        )

        try:
            task_id = self.persistence.persist_start(pending)
        except sqlite3.Error as e:
            log.error(f"Task insert for '{name}' raised", exc_info=True)
            raise PersistenceStartFailed(f"Could not save the new task '{name}': {e}") from e

        self._session = pending.with_task_id(task_id)
        self._tick_count = 0
        self._last_elapsed = 0
        self.last_used_project_id = project["id"]
        self.last_used_client_id = client["id"]

        self._timer = self._timer_factory()
        self._timer.start(self.tick, self.tick_interval_ms)

        log.info(f"Started tracking '{name}' ({self._session.group_key}) as task {task_id}")
        event = TrackingEvent.from_session(EventType.START, self._session, 0)
        self.bus.emit(event)
        return event

    # Another session in an existing stack: "Design", then "Design (2)", "Design (3)", ...
    def continue_stack(self, stack_base_name: str, project_id: int | None = None, client_id: int | None = None,
                       pomodoro_seconds: int | None = None) -> TrackingEvent:
        return self.start(stack_base_name, project_id, client_id, pomodoro_seconds=pomodoro_seconds,
                          number_in_stack=True)

    def tick(self):
        """One period of the recurring timer: notify, then checkpoint."""
        session = self._session
        if session is None:
            log.warning("Tick fired while idle, ignoring")
            return

        elapsed = self._elapsed_now()
        self._last_elapsed = elapsed
        self._tick_count += 1
        self.bus.emit(TrackingEvent.from_session(EventType.TICK, session, elapsed))

        # An observer may have stopped or replaced the session during the fan-out.
        if self._session is not session:
            return

        if self._tick_count % self.checkpoint_every_ticks == 0:
            self.persistence.persist_checkpoint(session.task_id, elapsed)

        if session.pomodoro_seconds and elapsed >= session.pomodoro_seconds:
            log.info(f"Pomodoro for '{session.task_name}' finished after {elapsed}s")
            self.stop()

    def stop(self) -> TrackingEvent | None:
        """Stop the active session. Calling it while idle is a no-op returning None.

        The Authority is Idle when this returns, whatever happened in storage.
        A failed close is broadcast to the error listeners after observers
        have seen the stop.
        """
        session = self._session
        if session is None:
            log.debug("Stop requested while idle, nothing to do")
            return None

        self._cancel_timer()
        final_elapsed = self._elapsed_now()
        end_timestamp = self.clock.wall_timestamp()
        self._session = None
        self._tick_count = 0
        self._last_elapsed = 0

        failure = None
        try:
            self.persistence.persist_stop(session.task_id, end_timestamp, final_elapsed)
        except PersistenceStopFailed as e:
            failure = e
        except (sqlite3.Error, ValidationError) as e:
            failure = PersistenceStopFailed(f"Could not close task {session.task_id}: {e}", session.task_id)

        log.info(f"Stopped tracking '{session.task_name}' after {final_elapsed}s")
        event = TrackingEvent.from_session(EventType.STOP, session, final_elapsed)
        self.bus.emit(event)

        # Delivered after the stop event, also when stop() runs inside a bus callback.
        if failure is not None:
            self.bus.defer(lambda: self._report(failure))
        return event

    # Used on window close.
    def shutdown(self):
        self.stop()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    #endregion === Transitions ===

    #region === Helpers ===

    def _validated_name(self, name):
        check = validate_name(name)
        if not check.valid:
            raise ValidationError(check.error)
        return check.sanitized

    # Numbers `candidate` past every session already stored in its stack.
    def _numbered_name(self, candidate, project, client):
        in_use = [(existing, project["name"], client["name"])
                  for existing in self.persistence.stack_names(project["id"], client["id"])]
        return resolve_unique_name(candidate, project["name"], client["name"], in_use)

    def add_error_listener(self, callback: Callable[[TrackingError], None]) -> Callable[[], None]:
        """Subscribe to after-the-fact persistence failures. Returns an unsubscribe function."""
        self._error_listeners.append(callback)

        def remove():
            if callback in self._error_listeners:
                self._error_listeners.remove(callback)
        return remove

    def _report(self, error: TrackingError):
        log.error(str(error))
        for callback in list(self._error_listeners):
            try:
                callback(error)
            except Exception:
                log.exception("Error listener failed")

    #endregion === Helpers ===
