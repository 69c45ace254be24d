"""WBS Plannerのアプリケーションサービス

- 子の作成前に親（同一プロジェクト内）の存在を確認し、無ければ NotFoundError
- 部分更新は「未指定 / 空文字によるクリア / 値の設定」を区別してマージする
- 実績日が指定された更新・作成ではstatusを再導出して保存する
- 読み出し（ツリー・サマリ）は毎回行から組み立て直す（キャッシュなし）

Related Classes:
  - repository.ProjectRepository / HierarchyRepository / UserRepository
  - hierarchy.assemble_hierarchy
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from .database import Database
from .exceptions import NotFoundError, ValidationError
from .hierarchy import assemble_hierarchy
from .models import (
    ORDERABLE_TABLES,
    ItemCounts,
    Phase,
    PlanStatus,
    Project,
    ProjectHierarchy,
    ProjectSummary,
    Task,
    Todo,
    TodayTodoFilter,
    User,
    Work,
)
from .repository import HierarchyRepository, ProjectRepository, UserRepository
from .status import derive_status, normalize_actual

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user"
DEMO_USER_NAME = "Demo User"
DEMO_USER_EMAIL = "demo@example.com"

ACTUAL_FIELDS = ("actual_start", "actual_end")
# 値としてNULLを許さない項目（パッチでnull/空文字を渡すと検証エラー）
REQUIRED_PLANNING_FIELDS = ("title", "planned_start", "planned_end")
REQUIRED_TODO_FIELDS = ("title", "status", "assignee_id", "today_flag")
OPTIONAL_TEXT_FIELDS = ("memo", "reference_url", "due_date", "description")


def _validate_required(patch: dict[str, Any], required: tuple[str, ...]) -> None:
    for name in required:
        if name not in patch:
            continue
        value = patch[name]
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{name} は空にできません", field=name)


def _clean_optional(patch: dict[str, Any]) -> dict[str, Any]:
    """任意テキスト項目の空文字をNULLに揃える"""
    cleaned = dict(patch)
    for name in OPTIONAL_TEXT_FIELDS:
        if name in cleaned and isinstance(cleaned[name], str) and not cleaned[name].strip():
            cleaned[name] = None
    return cleaned


class ProjectService:
    """WBS Plannerのユースケース"""

    def __init__(self, database: Database):
        self.database = database
        self.projects = ProjectRepository(database)
        self.hierarchy = HierarchyRepository(database)
        self.users = UserRepository(database)

    # --- 存在確認 -----------------------------------------------------

    def ensure_demo_user(self) -> User:
        return self.users.ensure(DEMO_USER_ID, DEMO_USER_NAME, DEMO_USER_EMAIL)

    def _require_project(self, project_id: str) -> Project:
        project = self.projects.get(project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    def _require_phase(self, phase_id: str, project_id: Optional[str] = None) -> Phase:
        phase = self.hierarchy.get_phase(phase_id)
        if not phase or (project_id is not None and phase.project_id != project_id):
            raise NotFoundError("Phase not found")
        return phase

    def _require_work(self, work_id: str, project_id: Optional[str] = None) -> Work:
        work = self.hierarchy.get_work(work_id)
        if not work or (project_id is not None and work.project_id != project_id):
            raise NotFoundError("Work not found")
        return work

    def _require_task(self, task_id: str, project_id: Optional[str] = None) -> Task:
        task = self.hierarchy.get_task(task_id)
        if not task or (project_id is not None and task.project_id != project_id):
            raise NotFoundError("Task not found")
        return task

    def _require_todo(self, todo_id: str) -> Todo:
        todo = self.hierarchy.get_todo(todo_id)
        if not todo:
            raise NotFoundError("Todo not found")
        return todo

    def _require_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # --- プロジェクト -------------------------------------------------

    def list_users(self) -> list[User]:
        return self.users.list()

    def list_projects(self) -> list[ProjectSummary]:
        """進捗率と件数つきのプロジェクト一覧"""
        return [self._summarize(project) for project in self.projects.list()]

    def _summarize(self, project: Project) -> ProjectSummary:
        tree = self._assemble(project)
        phase_counts = ItemCounts()
        work_counts = ItemCounts()
        task_counts = ItemCounts()
        for phase in tree.phases:
            self._count(phase_counts, phase.status)
            for work in phase.works:
                self._count(work_counts, work.status)
                for task in work.tasks:
                    self._count(task_counts, task.status)
        return ProjectSummary(
            project=project,
            progress=tree.progress,
            todo_counts=self.projects.todo_counts(project.id),
            phase_counts=phase_counts,
            work_counts=work_counts,
            task_counts=task_counts,
        )

    @staticmethod
    def _count(counts: ItemCounts, status: PlanStatus) -> None:
        counts.total += 1
        if status == PlanStatus.DONE:
            counts.done += 1

    def create_project(self, name: str, description: Optional[str] = None) -> Project:
        if not name or not name.strip():
            raise ValidationError("name は必須です", field="name")
        owner = self.ensure_demo_user()
        project = self.projects.create(name.strip(), owner.id, description or None)
        logger.info("Created project %s (%s)", project.id, project.name)
        return project

    def update_project(self, project_id: str, patch: dict[str, Any]) -> Project:
        self._require_project(project_id)
        _validate_required(patch, ("name", "archived"))
        self.projects.update(project_id, _clean_optional(patch))
        return self._require_project(project_id)

    def delete_project(self, project_id: str) -> None:
        self._require_project(project_id)
        self.projects.delete(project_id)
        logger.info("Deleted project %s", project_id)

    # --- 階層の読み出し -----------------------------------------------

    def _assemble(self, project: Project) -> ProjectHierarchy:
        phases, works, tasks, todos = self.hierarchy.list_hierarchy(project.id)
        return assemble_hierarchy(project, phases, works, tasks, todos)

    def get_hierarchy(self, project_id: str) -> ProjectHierarchy:
        return self._assemble(self._require_project(project_id))

    def list_today_todos(
        self,
        project_id: Optional[str] = None,
        todo_filter: Optional[TodayTodoFilter] = None,
        today: Optional[date] = None,
    ) -> list[Todo]:
        """本日期限またはtoday_flag付きのTodo（project_id省略で全プロジェクト）"""
        if project_id is not None:
            self._require_project(project_id)
        today_value = (today or date.today()).isoformat()
        return self.hierarchy.list_today_todos(today_value, project_id, todo_filter)

    # --- 作成 ---------------------------------------------------------

    @staticmethod
    def _planning_args(
        title: str,
        planned_start: str,
        planned_end: str,
        actual_start: Optional[str],
        actual_end: Optional[str],
        memo: Optional[str],
    ) -> dict[str, Any]:
        _validate_required(
            {"title": title, "planned_start": planned_start, "planned_end": planned_end},
            REQUIRED_PLANNING_FIELDS,
        )
        actual_start = normalize_actual(actual_start)
        actual_end = normalize_actual(actual_end)
        return {
            "title": title.strip(),
            "planned_start": planned_start,
            "planned_end": planned_end,
            "actual_start": actual_start,
            "actual_end": actual_end,
            "memo": memo or None,
            "status": derive_status(actual_start, actual_end),
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
    ) -> Phase:
        self._require_project(project_id)
        args = self._planning_args(title, planned_start, planned_end, actual_start, actual_end, memo)
        return self.hierarchy.create_phase(project_id, **args)

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
    ) -> Work:
        self._require_project(project_id)
        self._require_phase(phase_id, project_id)
        args = self._planning_args(title, planned_start, planned_end, actual_start, actual_end, memo)
        return self.hierarchy.create_work(project_id, phase_id, **args)

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
    ) -> Task:
        self._require_project(project_id)
        self._require_work(work_id, project_id)
        args = self._planning_args(title, planned_start, planned_end, actual_start, actual_end, memo)
        return self.hierarchy.create_task(project_id, work_id, **args)

    def create_todo(
        self,
        project_id: str,
        task_id: str,
        title: str,
        status: PlanStatus = PlanStatus.NOT_STARTED,
        assignee_id: Optional[str] = None,
        due_date: Optional[str] = None,
        memo: Optional[str] = None,
        reference_url: Optional[str] = None,
        today_flag: bool = False,
    ) -> Todo:
        self._require_project(project_id)
        self._require_task(task_id, project_id)
        _validate_required({"title": title}, ("title",))
        if assignee_id is None:
            assignee_id = self.ensure_demo_user().id
        else:
            self._require_user(assignee_id)
        return self.hierarchy.create_todo(
            project_id,
            task_id,
            title.strip(),
            assignee_id,
            status=PlanStatus(status),
            due_date=due_date or None,
            memo=memo or None,
            reference_url=reference_url or None,
            today_flag=today_flag,
        )

    # --- 部分更新 -----------------------------------------------------

    def _merge_planning_patch(self, current: Phase, patch: dict[str, Any]) -> dict[str, Any]:
        """未指定の項目は変更しない。実績日が指定されたらstatusを再導出する。"""
        _validate_required(patch, REQUIRED_PLANNING_FIELDS)
        fields = _clean_optional(patch)
        fields.pop("status", None)
        if any(name in fields for name in ACTUAL_FIELDS):
            actual_start = current.actual_start
            actual_end = current.actual_end
            if "actual_start" in fields:
                actual_start = normalize_actual(fields["actual_start"])
                fields["actual_start"] = actual_start
            if "actual_end" in fields:
                actual_end = normalize_actual(fields["actual_end"])
                fields["actual_end"] = actual_end
            fields["status"] = derive_status(actual_start, actual_end)
        if "title" in fields:
            fields["title"] = fields["title"].strip()
        return fields

    def update_phase(self, phase_id: str, patch: dict[str, Any]) -> None:
        current = self._require_phase(phase_id)
        self.hierarchy.update("phases", phase_id, self._merge_planning_patch(current, patch))

    def update_work(self, work_id: str, patch: dict[str, Any]) -> None:
        current = self._require_work(work_id)
        self.hierarchy.update("works", work_id, self._merge_planning_patch(current, patch))

    def update_task(self, task_id: str, patch: dict[str, Any]) -> None:
        current = self._require_task(task_id)
        self.hierarchy.update("tasks", task_id, self._merge_planning_patch(current, patch))

    def update_todo(self, todo_id: str, patch: dict[str, Any]) -> None:
        self._require_todo(todo_id)
        _validate_required(patch, REQUIRED_TODO_FIELDS)
        fields = _clean_optional(patch)
        if "status" in fields:
            try:
                fields["status"] = PlanStatus(fields["status"])
            except ValueError as exc:
                raise ValidationError(f"不正なstatus値: {fields['status']}", field="status") from exc
        if "assignee_id" in fields:
            self._require_user(fields["assignee_id"])
        if "title" in fields:
            fields["title"] = fields["title"].strip()
        self.hierarchy.update("todos", todo_id, fields)

    # --- 並び替え・削除 -----------------------------------------------

    def reorder(self, table: str, ids: list[str]) -> None:
        if table not in ORDERABLE_TABLES:
            raise ValidationError(f"不正な種別です: {table}", field="type")
        if len(set(ids)) != len(ids):
            raise ValidationError("IDが重複しています", field="ids")
        self.hierarchy.reorder(table, ids)

    def _delete(self, table: str, item_id: str, label: str) -> None:
        if not self.hierarchy.delete(table, item_id):
            raise NotFoundError(f"{label} not found")

    def delete_phase(self, phase_id: str) -> None:
        self._delete("phases", phase_id, "Phase")

    def delete_work(self, work_id: str) -> None:
        self._delete("works", work_id, "Work")

    def delete_task(self, task_id: str) -> None:
        self._delete("tasks", task_id, "Task")

    def delete_todo(self, todo_id: str) -> None:
        self._delete("todos", todo_id, "Todo")
