"""ガントレイアウトの端末向けテキスト描画

1日 = 1文字。'=' 予定、'#' 実績、'*' Todo期限、'|' 今日。
"""

from __future__ import annotations

import math

from .layout import Bar, GanttLayout

PLANNED_CHAR = "="
ACTUAL_CHAR = "#"
MARKER_CHAR = "*"
TODAY_CHAR = "|"


def _day_span(bar: Bar, day_width: float) -> range:
    start = int(bar.left // day_width)
    end = max(start + 1, math.ceil((bar.left + bar.width) / day_width))
    return range(start, end)


def render_text(layout: GanttLayout, label_width: int = 28) -> str:
    timeline = layout.timeline
    day_width = timeline.day_width
    total = timeline.total_days

    header = " " * label_width + "".join(day.label[-1] for day in layout.days)
    months = " " * label_width
    for month in layout.months:
        cells = int(round(month.width / day_width))
        months += month.label[:cells].ljust(cells)
    lines = [months.rstrip(), header.rstrip()]

    today_index = None
    if layout.today_left is not None:
        today_index = int(layout.today_left // day_width)

    for item in layout.rows:
        cells = [" "] * total
        if today_index is not None and 0 <= today_index < total:
            cells[today_index] = TODAY_CHAR
        for bar, char in ((item.planned_bar, PLANNED_CHAR), (item.actual_bar, ACTUAL_CHAR)):
            if bar is None:
                continue
            for index in _day_span(bar, day_width):
                if 0 <= index < total:
                    cells[index] = char
        for marker in layout.markers:
            if marker.task_id != item.row.id:
                continue
            index = int(marker.left // day_width)
            if 0 <= index < total:
                cells[index] = MARKER_CHAR
        label = ("  " * item.row.level + item.row.label)[: label_width - 1]
        lines.append(label.ljust(label_width) + "".join(cells).rstrip())
    return "\n".join(lines)
