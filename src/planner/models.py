"""WBS（Project → Phase → Work → Task → Todo）のデータモデル定義

日付はすべてISO8601文字列のまま保持する（planned_* / actual_* / due_date）。
Phase/Work/Taskのstatusは実績日から導出される値であり、読み出しのたびに
再計算される。Todoのstatusのみ独立して更新可能。

Related Modules:
  - status.derive_status: statusの導出ルール
  - progress: 進捗率の集計
  - hierarchy.assemble_hierarchy: ノードツリーの組み立て
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PlanStatus(str, Enum):
    """ライフサイクルステータス（Phase/Work/Task/Todo共通）"""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


PLANNING_TABLES = ("phases", "works", "tasks")
ORDERABLE_TABLES = ("phases", "works", "tasks", "todos")


@dataclass(slots=True)
class User:
    id: str
    name: str
    email: str
    created_at: str


@dataclass(slots=True)
class Project:
    """プロジェクト。Phaseを所有する。"""

    id: str
    name: str
    owner_id: str
    created_at: str
    description: Optional[str] = None
    archived: bool = False


@dataclass(slots=True)
class Phase:
    """大工程。Workを所有する。"""

    id: str
    project_id: str
    title: str
    planned_start: str
    planned_end: str
    order_index: int
    created_at: str
    actual_start: Optional[str] = None
    actual_end: Optional[str] = None
    memo: Optional[str] = None
    status: PlanStatus = PlanStatus.NOT_STARTED


@dataclass(slots=True)
class Work(Phase):
    """中工程。phase_id単位でorder_indexを持つ。"""

    phase_id: str = field(kw_only=True)


@dataclass(slots=True)
class Task(Phase):
    """小工程。work_id単位でorder_indexを持つ。"""

    work_id: str = field(kw_only=True)


@dataclass(slots=True)
class Todo:
    """末端の作業項目。statusは実績日と無関係に設定できる。"""

    id: str
    project_id: str
    task_id: str
    title: str
    status: PlanStatus
    assignee_id: str
    order_index: int
    created_at: str
    due_date: Optional[str] = None
    memo: Optional[str] = None
    reference_url: Optional[str] = None
    today_flag: bool = False


@dataclass(slots=True)
class TaskNode(Task):
    progress: int = 0
    todos: list[Todo] = field(default_factory=list)


@dataclass(slots=True)
class WorkNode(Work):
    progress: int = 0
    tasks: list[TaskNode] = field(default_factory=list)


@dataclass(slots=True)
class PhaseNode(Phase):
    progress: int = 0
    works: list[WorkNode] = field(default_factory=list)


@dataclass(slots=True)
class ProjectHierarchy:
    """GET /projects/{id}/hierarchy の読み出しモデル"""

    project: Project
    phases: list[PhaseNode] = field(default_factory=list)
    progress: int = 0


@dataclass(slots=True)
class ItemCounts:
    total: int = 0
    done: int = 0


@dataclass(slots=True)
class ProjectSummary:
    """プロジェクト一覧用のサマリ（進捗と件数）"""

    project: Project
    progress: int
    todo_counts: ItemCounts
    phase_counts: ItemCounts
    work_counts: ItemCounts
    task_counts: ItemCounts


@dataclass(slots=True)
class TodayTodoFilter:
    assignee_id: Optional[str] = None
    status: Optional[PlanStatus] = None
