import sqlite3

import pytest

from src.planner.database import Database


def test_migrate_adds_status_column_to_legacy_tables(tmp_path):
    db_path = tmp_path / "legacy.db"
    conn = sqlite3.connect(db_path)
    conn.execute(
        """
        CREATE TABLE phases (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            title TEXT NOT NULL,
            planned_start TEXT NOT NULL,
            planned_end TEXT NOT NULL,
            actual_start TEXT,
            actual_end TEXT,
            memo TEXT,
            order_index INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.commit()
    conn.close()

    database = Database(db_path)
    with database.connection() as db_conn:
        columns = {row["name"] for row in db_conn.execute("PRAGMA table_info(phases)")}
    database.close()

    assert "status" in columns


def test_foreign_keys_enabled(tmp_path):
    database = Database(tmp_path / "fk.db")
    with pytest.raises(sqlite3.IntegrityError):
        with database.transaction() as conn:
            conn.execute(
                "INSERT INTO projects (id, name, owner_id, created_at) VALUES (?, ?, ?, ?)",
                ("p1", "Demo", "nobody", "2025-01-01"),
            )
    database.close()


def test_close_is_idempotent(tmp_path):
    database = Database(tmp_path / "close.db")
    database.close()
    database.close()

    assert database.closed
    with pytest.raises(RuntimeError):
        with database.connection():
            pass
