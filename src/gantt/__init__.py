"""Host-independent Gantt chart geometry."""

from .layout import (
    Bar,
    ExpansionState,
    GanttLayout,
    GanttRow,
    LayoutSettings,
    PositionedRow,
    RowRect,
    Timeline,
    TodoMarker,
    compute_layout,
    parse_instant,
)
from .measure import MeasurementCoordinator, RowMeasurer
from .render_text import render_text

__all__ = [
    "Bar",
    "ExpansionState",
    "GanttLayout",
    "GanttRow",
    "LayoutSettings",
    "MeasurementCoordinator",
    "PositionedRow",
    "RowMeasurer",
    "RowRect",
    "Timeline",
    "TodoMarker",
    "compute_layout",
    "parse_instant",
    "render_text",
]
