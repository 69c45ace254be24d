"""フラットな行からWBSツリーを組み立てる

Todo → Task → Work → Phase の順にボトムアップで組み立て、各ノードに
読み出し時点で導出したstatusと進捗率を付与する。
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, fields
from typing import Iterable, TypeVar

from .models import (
    Phase,
    PhaseNode,
    Project,
    ProjectHierarchy,
    Task,
    TaskNode,
    Todo,
    Work,
    WorkNode,
)
from .progress import combine_progress, node_progress, rollup_progress
from .status import derive_status

NodeT = TypeVar("NodeT")


def _base_values(item: Phase) -> dict:
    # asdict() は入れ子もコピーするため、ここではフィールドを浅くコピーする
    values = {f.name: getattr(item, f.name) for f in fields(item)}
    values["status"] = derive_status(item.actual_start, item.actual_end)
    return values


def _by_order(nodes: Iterable[NodeT]) -> list[NodeT]:
    return sorted(nodes, key=lambda node: node.order_index)


def assemble_hierarchy(
    project: Project,
    phases: list[Phase],
    works: list[Work],
    tasks: list[Task],
    todos: list[Todo],
) -> ProjectHierarchy:
    """1プロジェクト分の行からツリーを組み立てる

    親行が見つからない子行はツリーから到達できないため捨てられる。
    """
    todos_by_task: dict[str, list[Todo]] = defaultdict(list)
    for todo in _by_order(todos):
        todos_by_task[todo.task_id].append(todo)

    tasks_by_work: dict[str, list[TaskNode]] = defaultdict(list)
    for task in tasks:
        values = _base_values(task)
        child_todos = todos_by_task.get(task.id, [])
        node = TaskNode(
            **values,
            todos=child_todos,
            progress=node_progress([todo.status for todo in child_todos], values["status"]),
        )
        tasks_by_work[task.work_id].append(node)

    works_by_phase: dict[str, list[WorkNode]] = defaultdict(list)
    for work in works:
        values = _base_values(work)
        child_tasks = _by_order(tasks_by_work.get(work.id, []))
        node = WorkNode(
            **values,
            tasks=child_tasks,
            progress=rollup_progress([task.progress for task in child_tasks], values["status"]),
        )
        works_by_phase[work.phase_id].append(node)

    phase_nodes: list[PhaseNode] = []
    for phase in _by_order(phases):
        values = _base_values(phase)
        child_works = _by_order(works_by_phase.get(phase.id, []))
        phase_nodes.append(
            PhaseNode(
                **values,
                works=child_works,
                progress=rollup_progress([work.progress for work in child_works], values["status"]),
            )
        )

    return ProjectHierarchy(
        project=project,
        phases=phase_nodes,
        progress=combine_progress([phase.progress for phase in phase_nodes]),
    )


def hierarchy_to_dict(hierarchy: ProjectHierarchy) -> dict:
    """JSON出力用の辞書（statusは値文字列）"""
    data = asdict(hierarchy)
    _stringify_status(data)
    return data


def _stringify_status(value) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if key == "status" and hasattr(item, "value"):
                value[key] = item.value
            else:
                _stringify_status(item)
    elif isinstance(value, list):
        for item in value:
            _stringify_status(item)
