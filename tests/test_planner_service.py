from datetime import date

import pytest

from src.planner import Database, NotFoundError, PlanStatus, ProjectService, ValidationError
from src.planner.models import TodayTodoFilter
from src.planner.service import DEMO_USER_ID


@pytest.fixture
def service(tmp_path):
    database = Database(tmp_path / "planner.db")
    service = ProjectService(database)
    service.ensure_demo_user()
    yield service
    database.close()


def build_tree(service: ProjectService):
    project = service.create_project("Webサイト刷新", "デモ")
    phase = service.create_phase(project.id, "設計", "2025-02-01", "2025-02-10")
    work = service.create_work(project.id, phase.id, "画面設計", "2025-02-01", "2025-02-05")
    task = service.create_task(project.id, work.id, "ワイヤー作成", "2025-02-01", "2025-02-03")
    return project, phase, work, task


def test_phase_with_actual_end_round_trips_as_done(service):
    project = service.create_project("Demo")
    phase = service.create_phase(
        project.id, "企画", "2025-02-01", "2025-02-10", actual_end="2025-02-09"
    )
    assert phase.status is PlanStatus.DONE

    tree = service.get_hierarchy(project.id)
    assert tree.phases[0].status is PlanStatus.DONE
    assert tree.phases[0].progress == 100
    assert tree.progress == 100


def test_todo_statuses_roll_up_to_project(service):
    project, _, _, task = build_tree(service)
    for status in (PlanStatus.DONE, PlanStatus.DONE, PlanStatus.NOT_STARTED):
        service.create_todo(project.id, task.id, "作業", status=status)

    tree = service.get_hierarchy(project.id)
    assert tree.phases[0].works[0].tasks[0].progress == 67
    assert tree.phases[0].works[0].progress == 67
    assert tree.phases[0].progress == 67
    assert tree.progress == 67


def test_get_hierarchy_unknown_project(service):
    with pytest.raises(NotFoundError):
        service.get_hierarchy("nope")


def test_patch_todo_title_keeps_status(service):
    project, _, _, task = build_tree(service)
    todo = service.create_todo(project.id, task.id, "下書き", status=PlanStatus.IN_PROGRESS)

    service.update_todo(todo.id, {"title": "下書き（改）"})

    updated = service.hierarchy.get_todo(todo.id)
    assert updated.title == "下書き（改）"
    assert updated.status is PlanStatus.IN_PROGRESS


def test_patch_phase_clearing_actual_end(service):
    project = service.create_project("Demo")
    phase = service.create_phase(
        project.id,
        "企画",
        "2025-02-01",
        "2025-02-10",
        actual_start="2025-02-01",
        actual_end="2025-02-09",
    )

    service.update_phase(phase.id, {"actual_end": ""})
    current = service.hierarchy.get_phase(phase.id)
    assert current.actual_end is None
    assert current.actual_start == "2025-02-01"
    assert current.status is PlanStatus.IN_PROGRESS

    service.update_phase(phase.id, {"actual_start": None})
    current = service.hierarchy.get_phase(phase.id)
    assert current.status is PlanStatus.NOT_STARTED


def test_patch_ignores_supplied_status(service):
    project = service.create_project("Demo")
    phase = service.create_phase(project.id, "企画", "2025-02-01", "2025-02-10")

    service.update_phase(phase.id, {"status": "DONE", "memo": "メモ"})

    current = service.hierarchy.get_phase(phase.id)
    assert current.status is PlanStatus.NOT_STARTED
    assert current.memo == "メモ"


def test_patch_rejects_empty_title(service):
    project, phase, _, _ = build_tree(service)
    with pytest.raises(ValidationError) as exc_info:
        service.update_phase(phase.id, {"title": "  "})
    assert exc_info.value.field == "title"


def test_create_under_other_projects_parent_is_not_found(service):
    _, phase, _, _ = build_tree(service)
    other = service.create_project("Other")

    with pytest.raises(NotFoundError):
        service.create_work(other.id, phase.id, "作業", "2025-02-01", "2025-02-02")


def test_create_todo_with_unknown_assignee(service):
    project, _, _, task = build_tree(service)
    with pytest.raises(NotFoundError):
        service.create_todo(project.id, task.id, "作業", assignee_id="ghost")


def test_reorder_rewrites_scope(service):
    project = service.create_project("Demo")
    phases = [
        service.create_phase(project.id, f"P{index}", "2025-02-01", "2025-02-02")
        for index in range(5)
    ]
    new_order = [phase.id for phase in reversed(phases)]

    service.reorder("phases", new_order)

    tree = service.get_hierarchy(project.id)
    assert [phase.id for phase in tree.phases] == new_order


def test_reorder_with_unknown_id_keeps_original_order(service):
    project = service.create_project("Demo")
    phases = [
        service.create_phase(project.id, f"P{index}", "2025-02-01", "2025-02-02")
        for index in range(4)
    ]
    original = [phase.id for phase in phases]

    with pytest.raises(NotFoundError):
        service.reorder("phases", list(reversed(original)) + ["missing"])

    tree = service.get_hierarchy(project.id)
    assert [phase.id for phase in tree.phases] == original


def test_reorder_rejects_mixed_scopes(service):
    project, phase, work, _ = build_tree(service)
    other_phase = service.create_phase(project.id, "実装", "2025-02-11", "2025-02-20")
    other_work = service.create_work(project.id, other_phase.id, "API", "2025-02-11", "2025-02-15")

    with pytest.raises(ValidationError):
        service.reorder("works", [other_work.id, work.id])

    assert service.hierarchy.get_work(work.id).order_index == 0
    assert service.hierarchy.get_work(other_work.id).order_index == 0


def test_reorder_rejects_unknown_type(service):
    with pytest.raises(ValidationError):
        service.reorder("projects", [])


def test_delete_cascades(service):
    project, phase, work, task = build_tree(service)
    todo = service.create_todo(project.id, task.id, "作業")

    service.delete_phase(phase.id)

    assert service.hierarchy.get_work(work.id) is None
    assert service.hierarchy.get_task(task.id) is None
    assert service.hierarchy.get_todo(todo.id) is None
    with pytest.raises(NotFoundError):
        service.delete_phase(phase.id)


def test_delete_project_cascades(service):
    project, _, _, task = build_tree(service)
    todo = service.create_todo(project.id, task.id, "作業")

    service.delete_project(project.id)

    assert service.projects.get(project.id) is None
    assert service.hierarchy.get_todo(todo.id) is None


def test_today_todos(service):
    today = date(2025, 2, 3)
    project, _, _, task = build_tree(service)
    due_today = service.create_todo(project.id, task.id, "期限今日", due_date="2025-02-03")
    flagged = service.create_todo(
        project.id, task.id, "今日やる", status=PlanStatus.DONE, today_flag=True
    )
    service.create_todo(project.id, task.id, "来週", due_date="2025-02-10")

    todos = service.list_today_todos(project.id, today=today)
    assert {todo.id for todo in todos} == {due_today.id, flagged.id}

    done_only = service.list_today_todos(
        project.id, TodayTodoFilter(status=PlanStatus.DONE), today=today
    )
    assert [todo.id for todo in done_only] == [flagged.id]

    by_assignee = service.list_today_todos(
        project.id, TodayTodoFilter(assignee_id="someone-else"), today=today
    )
    assert by_assignee == []


def test_today_todos_across_projects_skips_archived(service):
    today = date(2025, 2, 3)
    project, _, _, task = build_tree(service)
    kept = service.create_todo(project.id, task.id, "A", today_flag=True)

    archived, _, _, archived_task = build_tree(service)
    service.create_todo(archived.id, archived_task.id, "B", today_flag=True)
    service.update_project(archived.id, {"archived": True})

    todos = service.list_today_todos(today=today)
    assert [todo.id for todo in todos] == [kept.id]
    assert kept.assignee_id == DEMO_USER_ID


def test_list_projects_summary(service):
    project, _, _, task = build_tree(service)
    service.create_todo(project.id, task.id, "A", status=PlanStatus.DONE)
    service.create_todo(project.id, task.id, "B")

    summaries = service.list_projects()
    assert len(summaries) == 1
    summary = summaries[0]
    assert summary.project.id == project.id
    assert summary.progress == 50
    assert (summary.todo_counts.total, summary.todo_counts.done) == (2, 1)
    assert (summary.phase_counts.total, summary.phase_counts.done) == (1, 0)
    assert summary.task_counts.total == 1


def test_update_project(service):
    project = service.create_project("Demo", "説明")

    updated = service.update_project(project.id, {"name": "Renamed", "description": ""})

    assert updated.name == "Renamed"
    assert updated.description is None
    assert updated.archived is False
