"""WBS planning: hierarchy storage, status derivation and progress roll-up."""

from .database import Database
from .exceptions import NotFoundError, PlannerError, ValidationError
from .hierarchy import assemble_hierarchy
from .models import (
    Phase,
    PhaseNode,
    PlanStatus,
    Project,
    ProjectHierarchy,
    ProjectSummary,
    Task,
    TaskNode,
    Todo,
    TodayTodoFilter,
    Work,
    WorkNode,
)
from .progress import (
    combine_progress,
    progress_from_child_statuses,
    progress_from_status,
    rollup_progress,
)
from .service import ProjectService
from .status import derive_status

__all__ = [
    "Database",
    "NotFoundError",
    "Phase",
    "PhaseNode",
    "PlanStatus",
    "PlannerError",
    "Project",
    "ProjectHierarchy",
    "ProjectService",
    "ProjectSummary",
    "Task",
    "TaskNode",
    "Todo",
    "TodayTodoFilter",
    "ValidationError",
    "Work",
    "WorkNode",
    "assemble_hierarchy",
    "combine_progress",
    "derive_status",
    "progress_from_child_statuses",
    "progress_from_status",
    "rollup_progress",
]
