"""
SQLite接続管理

プロセスのエントリポイント（FastAPIのlifespan / CLIのmain）が Database を生成し、
リポジトリとサービスへ明示的に渡す。モジュールレベルのグローバル接続は持たない。

特徴:
- WALモード + foreign_keys=ON（削除は親から子へカスケード）
- 単一接続をRLockで直列化（FastAPIはワーカースレッドから呼び出すため）
- transaction() は成功時commit、例外時rollback
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    owner_id TEXT NOT NULL,
    archived INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY(owner_id) REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS phases (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    title TEXT NOT NULL,
    planned_start TEXT NOT NULL,
    planned_end TEXT NOT NULL,
    actual_start TEXT,
    actual_end TEXT,
    memo TEXT,
    order_index INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS works (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    phase_id TEXT NOT NULL,
    title TEXT NOT NULL,
    planned_start TEXT NOT NULL,
    planned_end TEXT NOT NULL,
    actual_start TEXT,
    actual_end TEXT,
    memo TEXT,
    order_index INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE,
    FOREIGN KEY(phase_id) REFERENCES phases(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    work_id TEXT NOT NULL,
    title TEXT NOT NULL,
    planned_start TEXT NOT NULL,
    planned_end TEXT NOT NULL,
    actual_start TEXT,
    actual_end TEXT,
    memo TEXT,
    order_index INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE,
    FOREIGN KEY(work_id) REFERENCES works(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS todos (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    task_id TEXT NOT NULL,
    title TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('NOT_STARTED','IN_PROGRESS','DONE')),
    assignee_id TEXT NOT NULL,
    due_date TEXT,
    memo TEXT,
    reference_url TEXT,
    today_flag INTEGER NOT NULL DEFAULT 0,
    order_index INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE,
    FOREIGN KEY(task_id) REFERENCES tasks(id) ON DELETE CASCADE,
    FOREIGN KEY(assignee_id) REFERENCES users(id)
);

CREATE INDEX IF NOT EXISTS idx_phases_project ON phases(project_id, order_index);
CREATE INDEX IF NOT EXISTS idx_works_phase ON works(phase_id, order_index);
CREATE INDEX IF NOT EXISTS idx_tasks_work ON tasks(work_id, order_index);
CREATE INDEX IF NOT EXISTS idx_todos_task ON todos(task_id, order_index);
CREATE INDEX IF NOT EXISTS idx_todos_assignee ON todos(assignee_id);
CREATE INDEX IF NOT EXISTS idx_todos_due ON todos(due_date);
"""

# 後から追加された列: (テーブル, 列, 定義)
ADDED_COLUMNS = [
    ("phases", "status", "TEXT NOT NULL DEFAULT 'NOT_STARTED'"),
    ("works", "status", "TEXT NOT NULL DEFAULT 'NOT_STARTED'"),
    ("tasks", "status", "TEXT NOT NULL DEFAULT 'NOT_STARTED'"),
]


class Database:
    """
    SQLite接続オブジェクト.

    Args:
        db_path: データベースファイルパス（":memory:" も可）
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = sqlite3.connect(
            self.db_path, check_same_thread=False
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        if self.db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode = WAL")
        self.migrate()

    def migrate(self) -> None:
        """テーブル作成と追加列のマイグレーション."""
        with self.transaction() as conn:
            conn.executescript(SCHEMA_SQL)
            for table, column, definition in ADDED_COLUMNS:
                self._ensure_column(conn, table, column, definition)
        logger.info("Database initialized: %s", self.db_path)

    @staticmethod
    def _ensure_column(
        conn: sqlite3.Connection, table: str, column: str, definition: str
    ) -> None:
        columns = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}
        if column in columns:
            return
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
        logger.info("Added column %s.%s", table, column)

    @property
    def closed(self) -> bool:
        return self._conn is None

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"Database is closed: {self.db_path}")
        return self._conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """読み出し用。ロックを保持したまま接続を渡す."""
        with self._lock:
            yield self._require_connection()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """書き込み用。ブロック全体が1トランザクション（例外時はrollback）."""
        with self._lock:
            conn = self._require_connection()
            with conn:
                yield conn

    def close(self) -> None:
        """接続を閉じる（二重呼び出し可）."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Database closed: %s", self.db_path)
