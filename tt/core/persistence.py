"""Persistence Coordinator: the only code that writes tracking state to the Task table.

Each operation validates its inputs through tt.core.validation, then issues
parameterized statements through the TaskDatabase. The three write paths
differ on purpose in how they treat a miss:

- start: zero rows inserted is a hard failure (PersistenceStartFailed).
- checkpoint: a miss or a sqlite error is logged and swallowed, returning
  False. The tick loop must keep running and the next tick simply retries.
- stop: zero rows updated raises PersistenceStopFailed. A closed row is never
  rewritten, and a row that could not be closed is left open in storage, so
  the user needs to know.
"""

import sqlite3
from datetime import timedelta
from tt.common.logger import log
from tt.core.database import TaskDatabase
from tt.core.errors import (
    PersistenceCheckpointFailed,
    PersistenceStartFailed,
    PersistenceStopFailed,
    ValidationError,
)
from tt.core.identity import base_name
from tt.core.session import TrackingSession
from tt.core.validation import validate_name, validate_number, validate_timestamp
from tt.util.misc import parse_timestamp, wall_timestamp


# Unwraps a ValidationResult, turning a failure into a ValidationError for the caller.
def _checked(result):
    if not result.valid:
        raise ValidationError(result.error)
    return result.sanitized


class PersistenceCoordinator:

    def __init__(self, database: TaskDatabase):
        self.db = database

    # ------------------------------------------------------------------ #
    #  Tracking writes                                                     #
    # ------------------------------------------------------------------ #

    def persist_start(self, session: TrackingSession) -> int:
        """Insert the open Task row for a new session and return its id.

        A verification read follows the insert. A mismatch there is only a
        warning: the row may well be committed and the read can race.

        Raises:
            ValidationError: a field failed sanitization; nothing was written.
            PersistenceStartFailed: the insert affected no rows.
        """
        name = _checked(validate_name(session.task_name))
        project_id = _checked(validate_number(session.project_id, 1))
        client_id = _checked(validate_number(session.client_id, 1))
        start_time = _checked(validate_timestamp(session.started_at))

        task_id = self.db.execute_insert(
            """INSERT INTO Task (name, project_id, client_id, start_time, end_time, time_spent, created_at)
               VALUES (?, ?, ?, ?, NULL, 0, CURRENT_TIMESTAMP)""",
            (name, project_id, client_id, start_time),
        )
        if task_id is None:
            log.error(f"Task insert for '{name}' affected 0 rows")
            raise PersistenceStartFailed(f"Could not save the new task '{name}'")

        self._verify_start(task_id, name, start_time)
        log.info(f"Persisted start of '{name}' as task {task_id} at {start_time}")
        return task_id

    def _verify_start(self, task_id, name, start_time):
        try:
            rows = self.db.execute_query(
                "SELECT id FROM Task WHERE name = ? AND start_time = ? ORDER BY id DESC LIMIT 1",
                (name, start_time),
            )
        except sqlite3.Error:
            log.warning(f"Verification read for task {task_id} failed", exc_info=True)
            return
        if not rows or rows[0]["id"] != task_id:
            found = rows[0]["id"] if rows else None
            log.warning(f"Task save for '{name}' reported id {task_id} but verification found {found}")

    def persist_checkpoint(self, task_id: int | None, elapsed_seconds: int) -> bool:
        """Write the running time_spent of the open row. Never raises.

        Returns:
            True if the row was updated, False if the write was swallowed.
        """
        try:
            safe_id = _checked(validate_number(task_id, 1))
            safe_elapsed = _checked(validate_number(elapsed_seconds, 0))
            affected = self.db.execute_non_select(
                "UPDATE Task SET time_spent = ? WHERE id = ? AND end_time IS NULL",
                (safe_elapsed, safe_id),
            )
        except (ValidationError, sqlite3.Error) as e:
            failure = PersistenceCheckpointFailed(f"Checkpoint for task {task_id} failed: {e}", task_id)
            log.warning(str(failure))
            return False

        if affected == 0:
            log.warning(str(PersistenceCheckpointFailed(
                f"Checkpoint for task {task_id} matched no open row", task_id)))
            return False
        log.debug(f"Checkpointed task {task_id} at {safe_elapsed}s")
        return True

    def persist_stop(self, task_id: int | None, end_timestamp: str, final_elapsed_seconds: int) -> None:
        """Close the session's row with its end time and final elapsed seconds.

        Raises:
            PersistenceStopFailed: no row was updated (missing id, bad input,
                the row no longer exists, or it is already closed).
        """
        id_check = validate_number(task_id, 1)
        elapsed_check = validate_number(final_elapsed_seconds, 0)
        end_check = validate_timestamp(end_timestamp)
        for check in (id_check, elapsed_check, end_check):
            if not check.valid:
                raise PersistenceStopFailed(f"Cannot close task {task_id}: {check.error}", task_id)

        affected = self.db.execute_non_select(
            "UPDATE Task SET end_time = ?, time_spent = ? WHERE id = ? AND end_time IS NULL",
            (end_check.sanitized, elapsed_check.sanitized, id_check.sanitized),
        )
        if affected == 0:
            raise PersistenceStopFailed(f"Task {task_id} could not be closed: it is missing or already closed",
                                        task_id)
        log.info(f"Persisted stop of task {task_id} at {end_check.sanitized} ({elapsed_check.sanitized}s)")

    # ------------------------------------------------------------------ #
    #  Recovery                                                            #
    # ------------------------------------------------------------------ #

    def find_stale_sessions(self) -> list[dict]:
        """Rows still open from an earlier run. They are surfaced, never resumed."""
        rows = self.db.execute_query(
            """SELECT id, name, project_id, client_id, start_time, time_spent
               FROM Task WHERE end_time IS NULL ORDER BY start_time""")
        if rows:
            log.warning(f"Found {len(rows)} stale open task row(s): {[r['id'] for r in rows]}")
        return rows

    def close_stale_session(self, task_id: int) -> bool:
        """Close a stale row at its last checkpointed instant (start_time + time_spent)."""
        rows = self.db.execute_query(
            "SELECT start_time, time_spent FROM Task WHERE id = ? AND end_time IS NULL", (task_id,))
        if not rows:
            return False
        started = parse_timestamp(rows[0]["start_time"])
        spent = int(rows[0]["time_spent"] or 0)
        end_time = wall_timestamp(started + timedelta(seconds=spent)) if started else rows[0]["start_time"]
        affected = self.db.execute_non_select(
            "UPDATE Task SET end_time = ? WHERE id = ? AND end_time IS NULL", (end_time, task_id))
        if affected:
            log.info(f"Closed stale task {task_id} at {end_time}")
        return affected > 0

    # ------------------------------------------------------------------ #
    #  Stack reads                                                         #
    # ------------------------------------------------------------------ #

    def resolve_context(self, project_id: int | None, client_id: int | None) -> tuple[dict, dict]:
        """Look up the project and client a session will run under.

        Unknown or missing ids fall back to the first existing row, and to
        the seeded defaults (id 1) on an empty catalog.
        """
        project = self.db.project(project_id) if project_id else None
        if project is None:
            projects = self.db.projects()
            project = projects[0] if projects else {"id": 1, "name": "Default"}
            if project_id:
                log.warning(f"Project {project_id} does not exist, falling back to '{project['name']}'")

        client = self.db.client(client_id) if client_id else None
        if client is None:
            clients = self.db.clients()
            client = clients[0] if clients else {"id": 1, "name": "Default Client", "rate": 0.0, "currency": "EUR"}
            if client_id:
                log.warning(f"Client {client_id} does not exist, falling back to '{client['name']}'")
        return project, client

    def stack_names(self, project_id: int, client_id: int) -> list[str]:
        rows = self.db.execute_query(
            "SELECT DISTINCT name FROM Task WHERE project_id = ? AND client_id = ?", (project_id, client_id))
        return [row["name"] for row in rows]

    def stack_total_seconds(self, stack_base_name: str, project_id: int, client_id: int) -> int:
        """Stored time of every closed session in a stack."""
        rows = self.db.execute_query(
            """SELECT name, COALESCE(SUM(time_spent), 0) AS total
               FROM Task WHERE project_id = ? AND client_id = ? AND end_time IS NOT NULL
               GROUP BY name""",
            (project_id, client_id),
        )
        return sum(int(row["total"]) for row in rows if base_name(row["name"]) == stack_base_name)
