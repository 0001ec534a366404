"""Tests for tt.core.database and tt.core.persistence against a temp SQLite file."""

import os
import shutil
import tempfile
import unittest
from pathlib import Path

os.environ.setdefault("TASKTIMER_DATA_DIR", tempfile.mkdtemp(prefix="tasktimer-tests-"))

from tt.core.database import TaskDatabase
from tt.core.errors import PersistenceStopFailed, ValidationError
from tt.core.persistence import PersistenceCoordinator
from tt.core.session import TrackingSession


def make_session(name="Design", project_id=1, client_id=1, started_at="2024-01-15 09:00:00"):
    return TrackingSession(
        group_key=f"{name}::Default::Default Client",
        task_name=name,
        base_name=name,
        project_id=project_id,
        project_name="Default",
        client_id=client_id,
        client_name="Default Client",
        started_mono=0.0,
        started_at=started_at,
    )


class PersistenceTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.db = TaskDatabase(Path(self.tmpdir) / "nested" / "tasks.db")
        self.persistence = PersistenceCoordinator(self.db)

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def row(self, task_id):
        rows = self.db.execute_query("SELECT * FROM Task WHERE id = ?", (task_id,))
        return rows[0] if rows else None

    def insert_row(self, name, time_spent, end_time="2024-01-15 10:00:00", project_id=1, client_id=1,
                   start_time="2024-01-15 09:00:00"):
        return self.db.execute_insert(
            "INSERT INTO Task (name, project_id, client_id, start_time, end_time, time_spent) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (name, project_id, client_id, start_time, end_time, time_spent))


class TestDatabase(PersistenceTestCase):

    def test_schema_seeds_defaults(self):
        self.assertTrue(self.db.db_path.exists())
        self.assertEqual(self.db.project(1)["name"], "Default")
        client = self.db.client(1)
        self.assertEqual(client["name"], "Default Client")
        self.assertEqual(client["currency"], "EUR")

    def test_reopening_keeps_data(self):
        self.db.add_project("Website")
        reopened = TaskDatabase(self.db.db_path)
        self.assertEqual([p["name"] for p in reopened.projects()], ["Default", "Website"])

    def test_duplicate_insert_returns_none(self):
        self.assertIsNone(self.db.add_project("Default"))
        self.assertIsNotNone(self.db.add_client("ACME", 50.0))
        self.assertIsNone(self.db.add_client("ACME", 70.0))

    def test_missing_catalog_rows(self):
        self.assertIsNone(self.db.project(42))
        self.assertIsNone(self.db.client(42))

    def test_recent_tasks_joins_names(self):
        client_id = self.db.add_client("ACME", 60.0, "USD")
        self.insert_row("Old", 10, start_time="2024-01-14 09:00:00")
        self.insert_row("New", 20, client_id=client_id, start_time="2024-01-15 09:00:00")
        rows = self.db.recent_tasks()
        self.assertEqual([r["name"] for r in rows], ["New", "Old"])
        self.assertEqual(rows[0]["client_name"], "ACME")
        self.assertEqual(rows[0]["rate"], 60.0)
        self.assertEqual(rows[0]["currency"], "USD")
        self.assertEqual(rows[1]["project_name"], "Default")


class TestTrackingWrites(PersistenceTestCase):

    def test_persist_start_inserts_open_row(self):
        task_id = self.persistence.persist_start(make_session())
        row = self.row(task_id)
        self.assertEqual(row["name"], "Design")
        self.assertEqual(row["start_time"], "2024-01-15 09:00:00")
        self.assertIsNone(row["end_time"])
        self.assertEqual(row["time_spent"], 0)

    def test_persist_start_rejects_bad_input(self):
        with self.assertRaises(ValidationError):
            self.persistence.persist_start(make_session(name=" "))
        with self.assertRaises(ValidationError):
            self.persistence.persist_start(make_session(started_at="15/01/2024 09:00"))
        self.assertEqual(self.db.execute_query("SELECT id FROM Task"), [])

    def test_checkpoint_updates_open_row(self):
        task_id = self.persistence.persist_start(make_session())
        self.assertTrue(self.persistence.persist_checkpoint(task_id, 42))
        self.assertEqual(self.row(task_id)["time_spent"], 42)

    def test_checkpoint_never_touches_closed_row(self):
        task_id = self.insert_row("Done", 100)
        self.assertFalse(self.persistence.persist_checkpoint(task_id, 5))
        self.assertEqual(self.row(task_id)["time_spent"], 100)

    def test_checkpoint_swallows_bad_input(self):
        self.assertFalse(self.persistence.persist_checkpoint(None, 5))
        self.assertFalse(self.persistence.persist_checkpoint(999, 5))
        self.assertFalse(self.persistence.persist_checkpoint(1, -1))

    def test_persist_stop_closes_row(self):
        task_id = self.persistence.persist_start(make_session())
        self.persistence.persist_stop(task_id, "2024-01-15 09:30:00", 1800)
        row = self.row(task_id)
        self.assertEqual(row["end_time"], "2024-01-15 09:30:00")
        self.assertEqual(row["time_spent"], 1800)

    def test_persist_stop_on_missing_row_raises(self):
        with self.assertRaises(PersistenceStopFailed) as ctx:
            self.persistence.persist_stop(999, "2024-01-15 09:30:00", 10)
        self.assertEqual(ctx.exception.task_id, 999)

    def test_persist_stop_never_rewrites_closed_row(self):
        task_id = self.insert_row("Done", 3600, end_time="2024-01-01 10:00:00")
        with self.assertRaises(PersistenceStopFailed) as ctx:
            self.persistence.persist_stop(task_id, "2024-01-02 09:00:00", 5)
        self.assertEqual(ctx.exception.task_id, task_id)
        row = self.row(task_id)
        self.assertEqual(row["end_time"], "2024-01-01 10:00:00")
        self.assertEqual(row["time_spent"], 3600)

    def test_persist_stop_twice_fails_second_time(self):
        task_id = self.persistence.persist_start(make_session())
        self.persistence.persist_stop(task_id, "2024-01-15 09:30:00", 1800)
        with self.assertRaises(PersistenceStopFailed):
            self.persistence.persist_stop(task_id, "2024-01-15 10:00:00", 3600)
        self.assertEqual(self.row(task_id)["time_spent"], 1800)

    def test_persist_stop_without_id_raises(self):
        with self.assertRaises(PersistenceStopFailed):
            self.persistence.persist_stop(None, "2024-01-15 09:30:00", 10)


class TestRecovery(PersistenceTestCase):

    def test_find_and_close_stale_sessions(self):
        self.insert_row("Done", 60)
        stale_id = self.insert_row("Crashed", 90, end_time=None)

        stale = self.persistence.find_stale_sessions()
        self.assertEqual([r["id"] for r in stale], [stale_id])

        self.assertTrue(self.persistence.close_stale_session(stale_id))
        self.assertEqual(self.row(stale_id)["end_time"], "2024-01-15 09:01:30")
        self.assertEqual(self.persistence.find_stale_sessions(), [])
        self.assertFalse(self.persistence.close_stale_session(stale_id))


class TestStackReads(PersistenceTestCase):

    def test_resolve_context_known_ids(self):
        project_id = self.db.add_project("Website")
        client_id = self.db.add_client("ACME", 80.0)
        project, client = self.persistence.resolve_context(project_id, client_id)
        self.assertEqual(project["name"], "Website")
        self.assertEqual(client["name"], "ACME")
        self.assertEqual(client["rate"], 80.0)

    def test_resolve_context_falls_back(self):
        project, client = self.persistence.resolve_context(None, 77)
        self.assertEqual(project["id"], 1)
        self.assertEqual(client["id"], 1)

    def test_stack_total_counts_closed_sessions_of_base_name(self):
        other_client = self.db.add_client("ACME")
        self.insert_row("Design", 60)
        self.insert_row("Design (2)", 30)
        self.insert_row("Design (3)", 100, end_time=None)
        self.insert_row("Design", 500, client_id=other_client)
        self.insert_row("Review", 7)
        self.assertEqual(self.persistence.stack_total_seconds("Design", 1, 1), 90)
        self.assertEqual(self.persistence.stack_total_seconds("Review", 1, 1), 7)
        self.assertEqual(self.persistence.stack_total_seconds("Nothing", 1, 1), 0)

    def test_stack_names(self):
        self.insert_row("Design", 60)
        self.insert_row("Design", 30)
        self.insert_row("Design (2)", 30)
        self.assertEqual(sorted(self.persistence.stack_names(1, 1)), ["Design", "Design (2)"])
        self.assertEqual(self.persistence.stack_names(1, 2), [])


if __name__ == "__main__":
    unittest.main()
