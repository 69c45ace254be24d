from datetime import datetime, timedelta

from src.gantt import (
    ExpansionState,
    LayoutSettings,
    MeasurementCoordinator,
    RowRect,
    compute_layout,
    parse_instant,
    render_text,
)
from src.planner.hierarchy import assemble_hierarchy
from src.planner.models import Phase, PlanStatus, Project, Task, Todo, Work

CREATED = "2025-01-01T00:00:00+00:00"
NOW = datetime(2025, 2, 4, 12, 0)


def build_phases(phase_kwargs=None, due_date="2025-02-12"):
    project = Project(id="p1", name="Demo", owner_id="u1", created_at=CREATED)
    phase = Phase(
        id="ph1",
        project_id="p1",
        title="設計",
        planned_start="2025-02-01",
        planned_end="2025-02-10",
        order_index=0,
        created_at=CREATED,
        **(phase_kwargs or {}),
    )
    work = Work(
        id="w1",
        project_id="p1",
        title="画面設計",
        planned_start="2025-02-01",
        planned_end="2025-02-05",
        order_index=0,
        created_at=CREATED,
        phase_id="ph1",
    )
    task = Task(
        id="t1",
        project_id="p1",
        title="ワイヤー",
        planned_start="2025-02-01",
        planned_end="2025-02-03",
        order_index=0,
        created_at=CREATED,
        work_id="w1",
    )
    todo = Todo(
        id="d1",
        project_id="p1",
        task_id="t1",
        title="レビュー",
        status=PlanStatus.NOT_STARTED,
        assignee_id="u1",
        order_index=0,
        created_at=CREATED,
        due_date=due_date,
    )
    return assemble_hierarchy(project, [phase], [work], [task], [todo]).phases


def test_timeline_is_padded_and_day_aligned():
    layout = compute_layout(build_phases(), now=NOW)

    timeline = layout.timeline
    assert timeline.min_start == datetime(2025, 1, 29)
    assert timeline.max_end == datetime(2025, 2, 19)
    assert timeline.total_days == 22
    assert timeline.width == 22 * 40
    assert len(layout.days) == 22


def test_bars_and_markers_use_day_width():
    layout = compute_layout(build_phases(), now=NOW)

    phase_row = layout.rows[0]
    assert phase_row.planned_bar.left == 120
    assert phase_row.planned_bar.width == 360
    assert phase_row.actual_bar is None

    [marker] = layout.markers
    assert marker.left == 14 * 40
    # タスク行（3行目）の中央
    assert marker.top == 2 * 48 + 24


def test_collapse_changes_bounds():
    expanded = compute_layout(build_phases(), now=NOW)
    collapsed = compute_layout(
        build_phases(), expanded=ExpansionState.collapsed(["ph1"]), now=NOW
    )

    assert [row.row.id for row in expanded.rows] == ["ph1", "w1", "t1"]
    assert [row.row.id for row in collapsed.rows] == ["ph1"]
    assert collapsed.markers == []
    assert collapsed.timeline.max_end == datetime(2025, 2, 17)
    assert collapsed.timeline.total_days == 20


def test_collapsing_todos_hides_markers_only():
    layout = compute_layout(
        build_phases(), expanded=ExpansionState(todos_by_task={"t1": False}), now=NOW
    )

    assert len(layout.rows) == 3
    assert layout.markers == []
    assert layout.timeline.max_end == datetime(2025, 2, 17)


def test_in_progress_bar_extends_to_now():
    phases = build_phases({"actual_start": "2025-02-02"})
    layout = compute_layout(phases, now=NOW)

    actual = layout.rows[0].actual_bar
    assert layout.rows[0].row.status is PlanStatus.IN_PROGRESS
    assert actual.left == 4 * 40
    assert actual.width == 2.5 * 40


def test_in_progress_row_stretches_bounds_to_now():
    later = datetime(2025, 3, 1, 9, 0)
    layout = compute_layout(build_phases({"actual_start": "2025-02-02"}), now=later)

    assert layout.timeline.max_end == datetime(2025, 3, 8)
    assert layout.today_left == layout.timeline.x(later)


def test_short_bars_have_minimum_width():
    phases = build_phases({"actual_start": "2025-02-02", "actual_end": "2025-02-02"})
    layout = compute_layout(phases, now=NOW)

    assert layout.rows[0].actual_bar.width == 20


def test_bad_dates_suppress_bars_without_raising():
    phases = build_phases(due_date="someday")
    phases[0].planned_start = "not-a-date"
    layout = compute_layout(phases, now=NOW)

    assert layout.rows[0].planned_bar is None
    assert layout.markers == []
    assert layout.rows[1].planned_bar is not None


def test_measured_rects_override_fallback():
    rects = {"w1": RowRect(top=100, height=60), "todo-d1": RowRect(top=200, height=40)}
    layout = compute_layout(build_phases(), rects=rects, offset=10, now=NOW)

    phase_row, work_row, task_row = layout.rows
    assert (phase_row.top, phase_row.height, phase_row.measured) == (0, 48, False)
    assert (work_row.top, work_row.height, work_row.measured) == (110, 60, True)
    assert (task_row.top, task_row.measured) == (96, False)
    assert layout.markers[0].top == 230
    assert layout.total_height == 170


def test_row_gap_from_settings():
    settings = LayoutSettings(day_width=20, row_height=30, row_gap=4)
    layout = compute_layout(build_phases(), settings=settings, now=NOW)

    assert [row.top for row in layout.rows] == [0, 34, 68]
    assert layout.rows[0].planned_bar.left == 60


def test_empty_tree_uses_a_week_from_now():
    layout = compute_layout([], now=NOW)

    assert layout.rows == []
    assert layout.timeline.min_start == datetime(2025, 2, 1)
    assert layout.timeline.max_end == datetime(2025, 2, 18)
    assert layout.total_height == 0


def test_header_cells():
    layout = compute_layout(build_phases(), now=NOW)

    assert layout.months[0].label == "2025年1月"
    assert layout.months[0].width == 3 * 40
    assert layout.months[1].label == "2025年2月"
    assert layout.days[0].label == "29"
    assert layout.today_left == 6.5 * 40


def test_to_dict_is_json_ready():
    data = compute_layout(build_phases(), now=NOW).to_dict()

    assert data["timeline"]["min_start"] == "2025-01-29T00:00:00"
    assert data["timeline"]["width"] == 880
    assert data["rows"][0]["row"]["status"] == "NOT_STARTED"
    assert data["markers"][0]["due"] == "2025-02-12T00:00:00"


def test_parse_instant():
    assert parse_instant("2025-02-01") == datetime(2025, 2, 1)
    assert parse_instant("") is None
    assert parse_instant(None) is None
    assert parse_instant("2025-13-01") is None


def test_stale_measurement_pass_is_discarded():
    coordinator = MeasurementCoordinator()
    first = coordinator.begin()
    second = coordinator.begin()

    assert coordinator.complete(first, {"ph1": RowRect(0, 10)}) is False
    assert coordinator.rects == {}
    assert coordinator.pending

    assert coordinator.complete(second, {"ph1": RowRect(0, 52)}) is True
    assert coordinator.rects == {"ph1": RowRect(0, 52)}
    assert not coordinator.pending

    coordinator.invalidate()
    assert coordinator.rects == {}
    assert coordinator.pending


def test_run_with_measurer():
    class FakeMeasurer:
        def measure(self):
            return {"t1": RowRect(top=5, height=50)}

    coordinator = MeasurementCoordinator()
    assert coordinator.run(FakeMeasurer()) is True
    layout = compute_layout(build_phases(), rects=coordinator.rects, now=NOW)
    assert layout.rows[2].top == 5


def test_render_text():
    layout = compute_layout(build_phases(), now=NOW)
    lines = render_text(layout, label_width=16).splitlines()

    assert lines[0].startswith(" " * 16)
    assert "2025年2月" in lines[0]
    assert len(lines) == 2 + 3
    assert lines[2].startswith("設計")
    assert "=" in lines[2]
    assert lines[3].startswith("  画面設計")
    assert "*" in lines[4]
    assert "|" in lines[4]


def test_now_defaults_to_current_time():
    layout = compute_layout([])

    span = layout.timeline.max_end - layout.timeline.min_start
    assert span >= timedelta(days=17)
