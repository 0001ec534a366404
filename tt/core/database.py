"""SQLite storage for tasks, projects and clients.

Thin statement-execution layer: every call opens a short-lived connection,
runs one parameterized statement and returns plain dicts or counts. All
tracking writes go through tt.core.persistence; the catalog helpers at the
bottom feed the UI's project/client pickers.
"""

import sqlite3
from pathlib import Path
from typing import Any
from tt.common.logger import log

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS Project (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        color TEXT DEFAULT '#cccccc',
        total_time INTEGER DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS Client (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        email TEXT,
        rate REAL DEFAULT 0.0,
        currency TEXT DEFAULT 'EUR'
    );

    -- One row per tracking session. end_time IS NULL marks a session that is open (or was open when the app died).
    CREATE TABLE IF NOT EXISTS Task (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        info TEXT,
        project_id INTEGER NOT NULL DEFAULT 1,
        client_id INTEGER DEFAULT 1,
        time_spent INTEGER DEFAULT 0,
        start_time TEXT,
        end_time TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (project_id) REFERENCES Project(id) ON DELETE CASCADE,
        FOREIGN KEY (client_id) REFERENCES Client(id) ON DELETE SET DEFAULT
    );
    CREATE INDEX IF NOT EXISTS idx_task_open ON Task(end_time);
    CREATE INDEX IF NOT EXISTS idx_task_stack ON Task(project_id, client_id);

    INSERT OR IGNORE INTO Project (id, name, color, total_time) VALUES (1, 'Default', '#cccccc', 0);
    INSERT OR IGNORE INTO Client (id, name, email, rate, currency) VALUES (1, 'Default Client', '', 0.0, 'EUR');
"""


class TaskDatabase:
    """SQLite-backed task store."""

    def __init__(self, db_path: Path | str):
        """Open (and if needed create) the task database.

        Args:
            db_path: Path to the SQLite database file. Parent folders are created.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        log.info(f"Opened task database at '{self.db_path}'")

    # ------------------------------------------------------------------ #
    #  Statement primitives                                                #
    # ------------------------------------------------------------------ #

    def execute_query(self, sql: str, params: tuple | list = ()) -> list[dict[str, Any]]:
        """Run a SELECT and return every row as a dict."""
        conn = self._connect()
        try:
            return [dict(row) for row in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def execute_non_select(self, sql: str, params: tuple | list = ()) -> int:
        """Run an UPDATE/DELETE and return the number of affected rows."""
        conn = self._connect()
        try:
            with conn:
                return conn.execute(sql, params).rowcount
        finally:
            conn.close()

    def execute_insert(self, sql: str, params: tuple | list = ()) -> int | None:
        """Run an INSERT and return the new row id, or None if nothing was inserted."""
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(sql, params)
                if cursor.rowcount <= 0:
                    return None
                return cursor.lastrowid
        finally:
            conn.close()

    # ------------------------------------------------------------------ #
    #  Catalog                                                             #
    # ------------------------------------------------------------------ #

    def projects(self) -> list[dict[str, Any]]:
        return self.execute_query("SELECT id, name, color FROM Project ORDER BY id")

    def clients(self) -> list[dict[str, Any]]:
        return self.execute_query("SELECT id, name, rate, currency FROM Client ORDER BY id")

    def project(self, project_id: int) -> dict[str, Any] | None:
        rows = self.execute_query("SELECT id, name, color FROM Project WHERE id = ?", (project_id,))
        return rows[0] if rows else None

    def client(self, client_id: int) -> dict[str, Any] | None:
        rows = self.execute_query("SELECT id, name, rate, currency FROM Client WHERE id = ?", (client_id,))
        return rows[0] if rows else None

    def add_project(self, name: str, color: str = "#cccccc") -> int | None:
        return self.execute_insert("INSERT OR IGNORE INTO Project (name, color) VALUES (?, ?)", (name, color))

    def add_client(self, name: str, rate: float = 0.0, currency: str = "EUR") -> int | None:
        return self.execute_insert(
            "INSERT OR IGNORE INTO Client (name, rate, currency) VALUES (?, ?, ?)", (name, rate, currency))

    def recent_tasks(self, limit: int = 200) -> list[dict[str, Any]]:
        """Most recent task rows joined with their project and client names.

        Args:
            limit: Maximum number of rows to return

        Returns:
            Rows newest first, each with project_name, client_name, rate and currency
        """
        return self.execute_query(
            """SELECT t.id, t.name, t.project_id, t.client_id, t.time_spent, t.start_time, t.end_time,
                      COALESCE(p.name, 'Default') AS project_name,
                      COALESCE(c.name, 'Default Client') AS client_name,
                      COALESCE(c.rate, 0.0) AS rate,
                      COALESCE(c.currency, 'EUR') AS currency
               FROM Task t
               LEFT JOIN Project p ON p.id = t.project_id
               LEFT JOIN Client c ON c.id = t.client_id
               ORDER BY t.start_time DESC, t.id DESC
               LIMIT ?""",
            (limit,),
        )
