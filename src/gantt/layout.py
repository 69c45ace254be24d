"""ガントチャートのレイアウト計算

WBSツリー（PhaseNode）と、ホストが計測した行の矩形 {top, height} から、
行ごとの予定バー・実績バー、Todo期限マーカー、時間軸ヘッダを計算する。
描画先（ブラウザ、SVG、端末）には依存しない。

時間軸は日単位で連続しており、任意時刻の横位置は
    x = (instant - min_start) / 1日 * day_width
で求める。日付の欠落・不正はその行のバー／マーカーを出さないだけで、例外にはしない。
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Mapping, Optional, Union

from src.planner.config import GanttConfig
from src.planner.models import PhaseNode, PlanStatus, Todo
from src.planner.status import derive_status

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
PAD_BEFORE_DAYS = 3
PAD_AFTER_DAYS = 7
EMPTY_RANGE_DAYS = 7

DateLike = Union[str, date, datetime, None]


@dataclass(frozen=True)
class RowRect:
    """ホストのレイアウト計測結果（px）"""

    top: float
    height: float


@dataclass
class LayoutSettings:
    """寸法（px）。row_heightはサイドバーの行の高さと一致させること。"""

    day_width: float = 40
    row_height: float = 48
    row_gap: float = 0

    @classmethod
    def from_config(cls, config: GanttConfig) -> "LayoutSettings":
        return cls(
            day_width=config.day_width,
            row_height=config.row_height,
            row_gap=config.row_gap,
        )


@dataclass
class ExpansionState:
    """「子を表示」トグルの状態。未登録のIDは展開扱い。"""

    works_by_phase: dict[str, bool] = field(default_factory=dict)
    tasks_by_work: dict[str, bool] = field(default_factory=dict)
    todos_by_task: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def collapsed(cls, ids: Iterable[str]) -> "ExpansionState":
        """指定IDのノードをすべて折りたたんだ状態"""
        hidden = {item_id: False for item_id in ids}
        return cls(dict(hidden), dict(hidden), dict(hidden))

    def shows_works(self, phase_id: str) -> bool:
        return self.works_by_phase.get(phase_id, True) is not False

    def shows_tasks(self, work_id: str) -> bool:
        return self.tasks_by_work.get(work_id, True) is not False

    def shows_todos(self, task_id: str) -> bool:
        return self.todos_by_task.get(task_id, True) is not False


@dataclass
class GanttRow:
    id: str
    label: str
    level: int
    status: PlanStatus
    planned_start: Optional[datetime] = None
    planned_end: Optional[datetime] = None
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None


@dataclass
class Bar:
    left: float
    width: float


@dataclass
class PositionedRow:
    row: GanttRow
    top: float
    height: float
    measured: bool
    planned_bar: Optional[Bar] = None
    actual_bar: Optional[Bar] = None


@dataclass
class TodoMarker:
    id: str
    label: str
    task_id: str
    status: PlanStatus
    due: datetime
    left: float = 0.0
    top: float = 0.0


@dataclass
class Timeline:
    min_start: datetime
    max_end: datetime
    total_days: int
    day_width: float

    @property
    def width(self) -> float:
        return self.total_days * self.day_width

    def x(self, instant: datetime) -> float:
        return (instant - self.min_start) / ONE_DAY * self.day_width

    def contains(self, instant: datetime) -> bool:
        return self.min_start <= instant <= self.max_end


@dataclass
class MonthCell:
    label: str
    width: float


@dataclass
class DayCell:
    label: str
    weekend: bool


@dataclass
class GanttLayout:
    timeline: Timeline
    rows: list[PositionedRow]
    markers: list[TodoMarker]
    months: list[MonthCell]
    days: list[DayCell]
    total_height: float
    today_left: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timeline"]["width"] = self.timeline.width
        return _jsonable(data)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, PlanStatus):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def parse_instant(value: DateLike) -> Optional[datetime]:
    """ISO日付／日時をローカルのnaive datetimeに変換する。不正値はNone。"""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Ignoring unparsable date: %r", value)
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def start_of_day(instant: datetime) -> datetime:
    return datetime.combine(instant.date(), time.min)


def _make_row(item, label: str, level: int) -> GanttRow:
    planned_start = parse_instant(item.planned_start)
    planned_end = parse_instant(item.planned_end)
    actual_start = parse_instant(item.actual_start)
    actual_end = parse_instant(item.actual_end)
    # 終了が開始より前なら開始に揃える
    if planned_start and planned_end:
        planned_end = max(planned_start, planned_end)
    if actual_start and actual_end:
        actual_end = max(actual_start, actual_end)
    return GanttRow(
        id=item.id,
        label=label,
        level=level,
        status=derive_status(item.actual_start, item.actual_end),
        planned_start=planned_start,
        planned_end=planned_end,
        actual_start=actual_start,
        actual_end=actual_end,
    )


def build_rows(phases: list[PhaseNode], expanded: ExpansionState) -> list[GanttRow]:
    """表示対象の行（Phase / Work / Task）をツリー順に並べる"""
    rows: list[GanttRow] = []
    for phase in phases:
        rows.append(_make_row(phase, phase.title, 0))
        if not expanded.shows_works(phase.id):
            continue
        for work in phase.works:
            rows.append(_make_row(work, work.title, 1))
            if not expanded.shows_tasks(work.id):
                continue
            for task in work.tasks:
                rows.append(_make_row(task, task.title, 2))
    return rows


def collect_markers(phases: list[PhaseNode], expanded: ExpansionState) -> list[TodoMarker]:
    """表示対象のTodoのうち期限日を持つものをマーカーにする"""
    markers: list[TodoMarker] = []
    for phase in phases:
        if not expanded.shows_works(phase.id):
            continue
        for work in phase.works:
            if not expanded.shows_tasks(work.id):
                continue
            for task in work.tasks:
                if not expanded.shows_todos(task.id):
                    continue
                for todo in task.todos:
                    marker = _make_marker(todo, task.id)
                    if marker:
                        markers.append(marker)
    return markers


def _make_marker(todo: Todo, task_id: str) -> Optional[TodoMarker]:
    due = parse_instant(todo.due_date)
    if due is None:
        return None
    return TodoMarker(
        id=todo.id, label=todo.title, task_id=task_id, status=PlanStatus(todo.status), due=due
    )


def compute_timeline(
    rows: list[GanttRow],
    markers: list[TodoMarker],
    now: datetime,
    day_width: float,
) -> Timeline:
    """表示行と期限日から時間軸の範囲を決める

    最小値の3日前〜最大値の7日後を、それぞれ日の始まりに揃える。
    実績開始のみの行は now まで伸びるものとして扱う。
    """
    instants: list[datetime] = []
    for row in rows:
        for value in (row.planned_start, row.planned_end, row.actual_start, row.actual_end):
            if value is not None:
                instants.append(value)
        if row.actual_start is not None and row.actual_end is None:
            instants.append(now)
    instants.extend(marker.due for marker in markers)

    if instants:
        low, high = min(instants), max(instants)
    else:
        low, high = now, now + EMPTY_RANGE_DAYS * ONE_DAY

    min_start = start_of_day(low - PAD_BEFORE_DAYS * ONE_DAY)
    max_end = start_of_day(high + PAD_AFTER_DAYS * ONE_DAY)
    total_days = math.ceil((max_end - min_start) / ONE_DAY) + 1
    return Timeline(min_start=min_start, max_end=max_end, total_days=total_days, day_width=day_width)


def _bar(timeline: Timeline, start: datetime, end: datetime) -> Bar:
    width = max((end - start) / ONE_DAY * timeline.day_width, timeline.day_width / 2)
    return Bar(left=timeline.x(start), width=width)


def planned_bar(row: GanttRow, timeline: Timeline) -> Optional[Bar]:
    if row.planned_start is None or row.planned_end is None:
        return None
    return _bar(timeline, row.planned_start, row.planned_end)


def actual_bar(row: GanttRow, timeline: Timeline, now: datetime) -> Optional[Bar]:
    """実績バー。実績終了が無い進行中の行は now まで伸ばす。"""
    start = row.actual_start or row.actual_end
    if start is None:
        return None
    if row.actual_end is not None:
        end = max(row.actual_end, start)
    else:
        end = max(now, start)
    return _bar(timeline, start, end)


def build_header(timeline: Timeline) -> tuple[list[MonthCell], list[DayCell]]:
    months: list[MonthCell] = []
    days: list[DayCell] = []
    current_key = None
    for index in range(timeline.total_days):
        day = timeline.min_start + index * ONE_DAY
        days.append(DayCell(label=str(day.day), weekend=day.weekday() >= 5))
        key = (day.year, day.month)
        if key != current_key:
            months.append(MonthCell(label=f"{day.year}年{day.month}月", width=0))
            current_key = key
        months[-1].width += timeline.day_width
    return months, days


def compute_layout(
    phases: list[PhaseNode],
    *,
    expanded: Optional[ExpansionState] = None,
    rects: Optional[Mapping[str, RowRect]] = None,
    offset: float = 0,
    now: Optional[datetime] = None,
    settings: Optional[LayoutSettings] = None,
) -> GanttLayout:
    """ガントチャートのレイアウトを計算する

    Args:
        phases: WBSツリー
        expanded: 折りたたみ状態（省略時はすべて展開）
        rects: 計測済みの行矩形。計画行はノードID、個別表示のTodoは "todo-<id>" がキー
        offset: 計測座標からチャート座標への縦方向オフセット
        now: 現在時刻（省略時は datetime.now()）
        settings: 寸法

    Returns:
        GanttLayout
    """
    expanded = expanded or ExpansionState()
    rects = rects or {}
    now = now or datetime.now()
    settings = settings or LayoutSettings()

    rows = build_rows(phases, expanded)
    markers = collect_markers(phases, expanded)
    timeline = compute_timeline(rows, markers, now, settings.day_width)

    positioned: list[PositionedRow] = []
    for index, row in enumerate(rows):
        rect = rects.get(row.id)
        if rect is not None:
            top, height = rect.top + offset, rect.height
        else:
            top, height = index * (settings.row_height + settings.row_gap), settings.row_height
        positioned.append(
            PositionedRow(
                row=row,
                top=top,
                height=height,
                measured=rect is not None,
                planned_bar=planned_bar(row, timeline),
                actual_bar=actual_bar(row, timeline, now),
            )
        )

    row_by_id = {item.row.id: item for item in positioned}
    placed_markers: list[TodoMarker] = []
    for marker in markers:
        todo_rect = rects.get(f"todo-{marker.id}")
        task_row = row_by_id.get(marker.task_id)
        if todo_rect is not None:
            marker.top = todo_rect.top + offset + todo_rect.height / 2
        elif task_row is not None:
            marker.top = task_row.top + task_row.height / 2
        else:
            continue
        marker.left = timeline.x(marker.due)
        placed_markers.append(marker)

    months, days = build_header(timeline)
    total_height = max((item.top + item.height for item in positioned), default=0)

    return GanttLayout(
        timeline=timeline,
        rows=positioned,
        markers=placed_markers,
        months=months,
        days=days,
        total_height=total_height,
        today_left=timeline.x(now) if timeline.contains(now) else None,
    )
