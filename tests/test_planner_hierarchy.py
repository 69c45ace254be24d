from src.planner.hierarchy import assemble_hierarchy, hierarchy_to_dict
from src.planner.models import Phase, PlanStatus, Project, Task, Todo, Work

CREATED = "2025-01-01T00:00:00+00:00"


def make_project() -> Project:
    return Project(id="p1", name="Demo", owner_id="u1", created_at=CREATED)


def make_phase(phase_id: str, order: int, **kwargs) -> Phase:
    return Phase(
        id=phase_id,
        project_id="p1",
        title=f"Phase {phase_id}",
        planned_start="2025-02-01",
        planned_end="2025-02-10",
        order_index=order,
        created_at=CREATED,
        **kwargs,
    )


def make_work(work_id: str, phase_id: str, order: int, **kwargs) -> Work:
    return Work(
        id=work_id,
        project_id="p1",
        title=f"Work {work_id}",
        planned_start="2025-02-01",
        planned_end="2025-02-05",
        order_index=order,
        created_at=CREATED,
        phase_id=phase_id,
        **kwargs,
    )


def make_task(task_id: str, work_id: str, order: int, **kwargs) -> Task:
    return Task(
        id=task_id,
        project_id="p1",
        title=f"Task {task_id}",
        planned_start="2025-02-01",
        planned_end="2025-02-03",
        order_index=order,
        created_at=CREATED,
        work_id=work_id,
        **kwargs,
    )


def make_todo(todo_id: str, task_id: str, order: int, status: PlanStatus) -> Todo:
    return Todo(
        id=todo_id,
        project_id="p1",
        task_id=task_id,
        title=f"Todo {todo_id}",
        status=status,
        assignee_id="u1",
        order_index=order,
        created_at=CREATED,
    )


def test_progress_rolls_up_to_project():
    todos = [
        make_todo("d1", "t1", 0, PlanStatus.DONE),
        make_todo("d2", "t1", 1, PlanStatus.DONE),
        make_todo("d3", "t1", 2, PlanStatus.NOT_STARTED),
    ]
    tree = assemble_hierarchy(
        make_project(),
        [make_phase("ph1", 0)],
        [make_work("w1", "ph1", 0)],
        [make_task("t1", "w1", 0)],
        todos,
    )

    phase = tree.phases[0]
    work = phase.works[0]
    task = work.tasks[0]
    assert task.progress == 67
    assert work.progress == 67
    assert phase.progress == 67
    assert tree.progress == 67
    assert [todo.id for todo in task.todos] == ["d1", "d2", "d3"]


def test_children_sorted_by_order_index():
    works = [
        make_work("w2", "ph1", 5),
        make_work("w1", "ph1", 1),
        make_work("w3", "ph1", 9),
    ]
    tree = assemble_hierarchy(make_project(), [make_phase("ph1", 0)], works, [], [])

    assert [work.id for work in tree.phases[0].works] == ["w1", "w2", "w3"]


def test_status_is_rederived_from_actual_dates():
    # 保存されたstatusは信用しない
    stale = make_phase("ph1", 0, actual_end="2025-02-09", status=PlanStatus.NOT_STARTED)
    tree = assemble_hierarchy(make_project(), [stale], [], [], [])

    assert tree.phases[0].status is PlanStatus.DONE
    assert tree.phases[0].progress == 100


def test_childless_nodes_use_own_status():
    phases = [
        make_phase("ph1", 0, actual_start="2025-02-01"),
        make_phase("ph2", 1, actual_start="2025-02-01", actual_end="2025-02-04"),
    ]
    tree = assemble_hierarchy(make_project(), phases, [], [], [])

    assert [phase.progress for phase in tree.phases] == [50, 100]
    assert tree.progress == 75


def test_work_progress_from_childless_tasks():
    tasks = [
        make_task("t1", "w1", 0, actual_end="2025-02-02"),
        make_task("t2", "w1", 1),
    ]
    tree = assemble_hierarchy(
        make_project(),
        [make_phase("ph1", 0, actual_end="2025-02-10")],
        [make_work("w1", "ph1", 0)],
        tasks,
        [],
    )

    # 子がある場合、自身のstatus（DONE）は混ぜない
    assert tree.phases[0].works[0].progress == 50
    assert tree.phases[0].progress == 50


def test_orphans_are_dropped():
    tree = assemble_hierarchy(
        make_project(),
        [make_phase("ph1", 0)],
        [make_work("w1", "missing", 0)],
        [],
        [],
    )

    assert tree.phases[0].works == []


def test_assembly_is_idempotent():
    args = (
        make_project(),
        [make_phase("ph1", 0)],
        [make_work("w1", "ph1", 0)],
        [make_task("t1", "w1", 0)],
        [make_todo("d1", "t1", 0, PlanStatus.IN_PROGRESS)],
    )

    assert assemble_hierarchy(*args) == assemble_hierarchy(*args)


def test_hierarchy_to_dict_stringifies_status():
    tree = assemble_hierarchy(
        make_project(),
        [make_phase("ph1", 0)],
        [make_work("w1", "ph1", 0)],
        [make_task("t1", "w1", 0)],
        [make_todo("d1", "t1", 0, PlanStatus.IN_PROGRESS)],
    )
    data = hierarchy_to_dict(tree)

    todo = data["phases"][0]["works"][0]["tasks"][0]["todos"][0]
    assert todo["status"] == "IN_PROGRESS"
    assert data["phases"][0]["status"] == "NOT_STARTED"
    assert data["progress"] == 50
