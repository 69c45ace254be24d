"""SQLiteベースのWBSリポジトリ

Database（database.py）を明示的に受け取り、行 ⇔ dataclass の変換とSQLのみを担う。
親の存在確認やstatusの再導出などのルールは service.ProjectService 側。

読み出し時のPhase/Work/Taskのstatusは保存列を信用せず、実績日から毎回導出する。
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .database import Database
from .exceptions import NotFoundError, ValidationError
from .models import (
    ORDERABLE_TABLES,
    ItemCounts,
    Phase,
    PlanStatus,
    Project,
    Task,
    Todo,
    TodayTodoFilter,
    User,
    Work,
)
from .status import derive_status

logger = logging.getLogger(__name__)

# UPDATE で変更を許可する列（id / 親参照 / created_at は不可）
PLANNING_COLUMNS = (
    "title",
    "planned_start",
    "planned_end",
    "actual_start",
    "actual_end",
    "memo",
    "status",
)
TODO_COLUMNS = (
    "title",
    "status",
    "assignee_id",
    "due_date",
    "memo",
    "reference_url",
    "today_flag",
)
PROJECT_COLUMNS = ("name", "description", "archived")

# order_index のスコープとなる親列
SCOPE_COLUMNS = {
    "phases": "project_id",
    "works": "phase_id",
    "tasks": "work_id",
    "todos": "task_id",
}


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _build_update(
    table: str, item_id: str, fields: dict[str, Any], allowed: Iterable[str]
) -> tuple[str, list[Any]]:
    allowed = set(allowed)
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationError(f"{table}: 更新できない項目です: {unknown}", field=unknown[0])
    sets = [f"{column} = ?" for column in fields]
    params = list(fields.values()) + [item_id]
    return f"UPDATE {table} SET {', '.join(sets)} WHERE id = ?", params


class UserRepository:
    """担当者・オーナーとなるユーザー"""

    def __init__(self, database: Database):
        self.database = database

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"], name=row["name"], email=row["email"], created_at=row["created_at"]
        )

    def ensure(self, user_id: str, name: str, email: str) -> User:
        with self.database.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO users (id, name, email, created_at) VALUES (?, ?, ?, ?)",
                (user_id, name, email, now_iso()),
            )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row)

    def get(self, user_id: str) -> Optional[User]:
        with self.database.connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def list(self) -> list[User]:
        with self.database.connection() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY name ASC").fetchall()
        return [self._row_to_user(row) for row in rows]


class ProjectRepository:
    """projectsテーブル"""

    def __init__(self, database: Database):
        self.database = database

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            owner_id=row["owner_id"],
            archived=bool(row["archived"]),
            created_at=row["created_at"],
        )

    def create(self, name: str, owner_id: str, description: Optional[str] = None) -> Project:
        project_id = new_id()
        with self.database.transaction() as conn:
            conn.execute(
                """
                INSERT INTO projects (id, name, description, owner_id, archived, created_at)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (project_id, name, description, owner_id, now_iso()),
            )
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        return self._row_to_project(row)

    def list(self, include_archived: bool = True) -> list[Project]:
        query = "SELECT * FROM projects"
        if not include_archived:
            query += " WHERE archived = 0"
        query += " ORDER BY created_at DESC, rowid DESC"
        with self.database.connection() as conn:
            rows = conn.execute(query).fetchall()
        return [self._row_to_project(row) for row in rows]

    def get(self, project_id: str) -> Optional[Project]:
        with self.database.connection() as conn:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        return self._row_to_project(row) if row else None

    def count(self) -> int:
        with self.database.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM projects").fetchone()[0]

    def update(self, project_id: str, fields: dict[str, Any]) -> bool:
        if "archived" in fields:
            fields = {**fields, "archived": 1 if fields["archived"] else 0}
        if not fields:
            return self.get(project_id) is not None
        query, params = _build_update("projects", project_id, fields, PROJECT_COLUMNS)
        with self.database.transaction() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount > 0

    def todo_counts(self, project_id: str) -> ItemCounts:
        with self.database.connection() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(id) AS total,
                    SUM(CASE WHEN status = 'DONE' THEN 1 ELSE 0 END) AS done
                FROM todos
                WHERE project_id = ?
                """,
                (project_id,),
            ).fetchone()
        return ItemCounts(total=row["total"] or 0, done=row["done"] or 0)

    def delete(self, project_id: str) -> bool:
        with self.database.transaction() as conn:
            cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            return cursor.rowcount > 0


class HierarchyRepository:
    """phases / works / tasks / todos テーブル"""

    def __init__(self, database: Database):
        self.database = database

    # --- 行変換 -------------------------------------------------------

    @staticmethod
    def _planning_kwargs(row: sqlite3.Row) -> dict[str, Any]:
        actual_start = row["actual_start"] or None
        actual_end = row["actual_end"] or None
        return {
            "id": row["id"],
            "project_id": row["project_id"],
            "title": row["title"],
            "planned_start": row["planned_start"],
            "planned_end": row["planned_end"],
            "actual_start": actual_start,
            "actual_end": actual_end,
            "memo": row["memo"],
            "order_index": row["order_index"],
            "created_at": row["created_at"],
            "status": derive_status(actual_start, actual_end),
        }

    @classmethod
    def _row_to_phase(cls, row: sqlite3.Row) -> Phase:
        return Phase(**cls._planning_kwargs(row))

    @classmethod
    def _row_to_work(cls, row: sqlite3.Row) -> Work:
        return Work(**cls._planning_kwargs(row), phase_id=row["phase_id"])

    @classmethod
    def _row_to_task(cls, row: sqlite3.Row) -> Task:
        return Task(**cls._planning_kwargs(row), work_id=row["work_id"])

    @staticmethod
    def _row_to_todo(row: sqlite3.Row) -> Todo:
        return Todo(
            id=row["id"],
            project_id=row["project_id"],
            task_id=row["task_id"],
            title=row["title"],
            status=PlanStatus(row["status"]),
            assignee_id=row["assignee_id"],
            due_date=row["due_date"],
            memo=row["memo"],
            reference_url=row["reference_url"],
            today_flag=bool(row["today_flag"]),
            order_index=row["order_index"],
            created_at=row["created_at"],
        )

    # --- 読み出し -----------------------------------------------------

    def list_hierarchy(
        self, project_id: str
    ) -> tuple[list[Phase], list[Work], list[Task], list[Todo]]:
        """プロジェクト配下の全行をテーブルごとに1クエリで取得（order_index昇順）"""
        with self.database.connection() as conn:
            phases = conn.execute(
                "SELECT * FROM phases WHERE project_id = ? ORDER BY order_index ASC",
                (project_id,),
            ).fetchall()
            works = conn.execute(
                "SELECT * FROM works WHERE project_id = ? ORDER BY order_index ASC",
                (project_id,),
            ).fetchall()
            tasks = conn.execute(
                "SELECT * FROM tasks WHERE project_id = ? ORDER BY order_index ASC",
                (project_id,),
            ).fetchall()
            todos = conn.execute(
                "SELECT * FROM todos WHERE project_id = ? ORDER BY order_index ASC",
                (project_id,),
            ).fetchall()
        return (
            [self._row_to_phase(row) for row in phases],
            [self._row_to_work(row) for row in works],
            [self._row_to_task(row) for row in tasks],
            [self._row_to_todo(row) for row in todos],
        )

    def _get_row(self, table: str, item_id: str) -> Optional[sqlite3.Row]:
        with self.database.connection() as conn:
            return conn.execute(f"SELECT * FROM {table} WHERE id = ?", (item_id,)).fetchone()

    def get_phase(self, phase_id: str) -> Optional[Phase]:
        row = self._get_row("phases", phase_id)
        return self._row_to_phase(row) if row else None

    def get_work(self, work_id: str) -> Optional[Work]:
        row = self._get_row("works", work_id)
        return self._row_to_work(row) if row else None

    def get_task(self, task_id: str) -> Optional[Task]:
        row = self._get_row("tasks", task_id)
        return self._row_to_task(row) if row else None

    def get_todo(self, todo_id: str) -> Optional[Todo]:
        row = self._get_row("todos", todo_id)
        return self._row_to_todo(row) if row else None

    def list_today_todos(
        self,
        today: str,
        project_id: Optional[str] = None,
        todo_filter: Optional[TodayTodoFilter] = None,
    ) -> list[Todo]:
        """本日期限、またはtoday_flagが立っているTodo

        project_id省略時はアーカイブされていない全プロジェクトが対象。
        """
        todo_filter = todo_filter or TodayTodoFilter()
        where = ["(substr(t.due_date, 1, 10) = ? OR t.today_flag = 1)"]
        params: list[Any] = [today]
        if project_id is not None:
            where.append("t.project_id = ?")
            params.append(project_id)
        else:
            where.append("p.archived = 0")
        if todo_filter.assignee_id:
            where.append("t.assignee_id = ?")
            params.append(todo_filter.assignee_id)
        if todo_filter.status:
            where.append("t.status = ?")
            params.append(PlanStatus(todo_filter.status).value)
        query = f"""
            SELECT t.* FROM todos t
            JOIN projects p ON p.id = t.project_id
            WHERE {' AND '.join(where)}
            ORDER BY COALESCE(t.due_date, '') ASC, p.created_at ASC, t.order_index ASC
        """
        with self.database.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_todo(row) for row in rows]

    # --- 作成 ---------------------------------------------------------

    def _next_order(self, conn: sqlite3.Connection, table: str, scope_value: str) -> int:
        column = SCOPE_COLUMNS[table]
        row = conn.execute(
            f"SELECT COALESCE(MAX(order_index), -1) AS idx FROM {table} WHERE {column} = ?",
            (scope_value,),
        ).fetchone()
        return row["idx"] + 1

    def _insert(self, table: str, values: dict[str, Any]) -> sqlite3.Row:
        values = {
            **values,
            "id": new_id(),
            "created_at": now_iso(),
        }
        with self.database.transaction() as conn:
            values["order_index"] = self._next_order(conn, table, values[SCOPE_COLUMNS[table]])
            columns = ", ".join(values)
            placeholders = ", ".join(f":{name}" for name in values)
            conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", values)
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (values["id"],)).fetchone()
        logger.info("Created %s %s", table[:-1], values["id"])
        return row

    @staticmethod
    def _planning_values(
        project_id: str,
        title: str,
        planned_start: str,
        planned_end: str,
        actual_start: Optional[str],
        actual_end: Optional[str],
        memo: Optional[str],
        status: PlanStatus,
    ) -> dict[str, Any]:
        return {
            "project_id": project_id,
            "title": title,
            "planned_start": planned_start,
            "planned_end": planned_end,
            "actual_start": actual_start,
            "actual_end": actual_end,
            "memo": memo,
            "status": PlanStatus(status).value,
        }

    def create_phase(
        self,
        project_id: str,
        title: str,
        planned_start: str,
        planned_end: str,
        actual_start: Optional[str] = None,
        actual_end: Optional[str] = None,
        memo: Optional[str] = None,
        status: PlanStatus = PlanStatus.NOT_STARTED,
    ) -> Phase:
        values = self._planning_values(
            project_id, title, planned_start, planned_end, actual_start, actual_end, memo, status
        )
        return self._row_to_phase(self._insert("phases", values))

    def create_work(
        self,
        project_id: str,
        phase_id: str,
        title: str,
        planned_start: str,
        planned_end: str,
        actual_start: Optional[str] = None,
        actual_end: Optional[str] = None,
        memo: Optional[str] = None,
        status: PlanStatus = PlanStatus.NOT_STARTED,
    ) -> Work:
        values = self._planning_values(
            project_id, title, planned_start, planned_end, actual_start, actual_end, memo, status
        )
        values["phase_id"] = phase_id
        return self._row_to_work(self._insert("works", values))

    def create_task(
        self,
        project_id: str,
        work_id: str,
        title: str,
        planned_start: str,
        planned_end: str,
        actual_start: Optional[str] = None,
        actual_end: Optional[str] = None,
        memo: Optional[str] = None,
        status: PlanStatus = PlanStatus.NOT_STARTED,
    ) -> Task:
        values = self._planning_values(
            project_id, title, planned_start, planned_end, actual_start, actual_end, memo, status
        )
        values["work_id"] = work_id
        return self._row_to_task(self._insert("tasks", values))

    def create_todo(
        self,
        project_id: str,
        task_id: str,
        title: str,
        assignee_id: str,
        status: PlanStatus = PlanStatus.NOT_STARTED,
        due_date: Optional[str] = None,
        memo: Optional[str] = None,
        reference_url: Optional[str] = None,
        today_flag: bool = False,
    ) -> Todo:
        values = {
            "project_id": project_id,
            "task_id": task_id,
            "title": title,
            "status": PlanStatus(status).value,
            "assignee_id": assignee_id,
            "due_date": due_date,
            "memo": memo,
            "reference_url": reference_url,
            "today_flag": 1 if today_flag else 0,
        }
        return self._row_to_todo(self._insert("todos", values))

    # --- 更新・削除 ---------------------------------------------------

    def update(self, table: str, item_id: str, fields: dict[str, Any]) -> bool:
        """指定列のみ更新する。対象行が無ければFalse。"""
        allowed = TODO_COLUMNS if table == "todos" else PLANNING_COLUMNS
        if "today_flag" in fields:
            fields = {**fields, "today_flag": 1 if fields["today_flag"] else 0}
        if "status" in fields and fields["status"] is not None:
            fields = {**fields, "status": PlanStatus(fields["status"]).value}
        if not fields:
            return self._get_row(table, item_id) is not None
        query, params = _build_update(table, item_id, fields, allowed)
        with self.database.transaction() as conn:
            cursor = conn.execute(query, params)
            updated = cursor.rowcount > 0
        if updated:
            logger.info("Updated %s %s: %s", table[:-1], item_id, sorted(fields))
        return updated

    def reorder(self, table: str, ids: list[str]) -> None:
        """スコープ内のorder_indexを0..n-1で振り直す

        全UPDATEが1トランザクション内で実行され、未知のIDや複数スコープの混在を
        検出した場合はrollbackされ元の順序が残る。
        """
        if table not in ORDERABLE_TABLES:
            raise ValidationError(f"不正な種別です: {table}", field="type")
        scope_column = SCOPE_COLUMNS[table]
        with self.database.transaction() as conn:
            for index, item_id in enumerate(ids):
                cursor = conn.execute(
                    f"UPDATE {table} SET order_index = ? WHERE id = ?", (index, item_id)
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"{table[:-1].capitalize()} not found: {item_id}")
            if ids:
                placeholders = ", ".join("?" for _ in ids)
                scopes = conn.execute(
                    f"SELECT DISTINCT {scope_column} FROM {table} WHERE id IN ({placeholders})",
                    ids,
                ).fetchall()
                if len(scopes) > 1:
                    raise ValidationError(
                        "並び替え対象は同じ親に属している必要があります", field="ids"
                    )
        logger.info("Reordered %d %s", len(ids), table)

    def delete(self, table: str, item_id: str) -> bool:
        if table not in ORDERABLE_TABLES:
            raise ValidationError(f"不正な種別です: {table}", field="type")
        with self.database.transaction() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (item_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted %s %s", table[:-1], item_id)
        return deleted
