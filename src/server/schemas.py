"""Pydantic schemas for the FastAPI server."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.planner import PlanStatus


def _validate_date_text(value: Optional[str]) -> Optional[str]:
    """Accept an ISO date/datetime, or an empty string meaning "clear"."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return ""
    try:
        datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError("expected ISO date (YYYY-MM-DD)") from exc
    return text


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str


class UserResponse(BaseModel):
    """Serialized user."""

    id: str
    name: str
    email: str
    created_at: str

    class Config:
        from_attributes = True


class ProjectResponse(BaseModel):
    """Serialized project."""

    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    archived: bool
    created_at: str

    class Config:
        from_attributes = True


class ItemCountsResponse(BaseModel):
    total: int
    done: int

    class Config:
        from_attributes = True


class ProjectSummaryResponse(ProjectResponse):
    """Project with rolled-up progress and item counts."""

    progress: int
    todo_counts: ItemCountsResponse
    phase_counts: ItemCountsResponse
    work_counts: ItemCountsResponse
    task_counts: ItemCountsResponse


class TodoResponse(BaseModel):
    """Serialized todo item."""

    id: str
    project_id: str
    task_id: str
    title: str
    status: PlanStatus
    assignee_id: str
    due_date: Optional[str] = None
    memo: Optional[str] = None
    reference_url: Optional[str] = None
    today_flag: bool
    order_index: int
    created_at: str

    class Config:
        from_attributes = True
        use_enum_values = True


class PhaseResponse(BaseModel):
    """Serialized phase (status derived from actual dates)."""

    id: str
    project_id: str
    title: str
    planned_start: str
    planned_end: str
    actual_start: Optional[str] = None
    actual_end: Optional[str] = None
    memo: Optional[str] = None
    order_index: int
    status: PlanStatus
    created_at: str

    class Config:
        from_attributes = True
        use_enum_values = True


class WorkResponse(PhaseResponse):
    phase_id: str


class TaskResponse(PhaseResponse):
    work_id: str


class TaskNodeResponse(TaskResponse):
    progress: int
    todos: List[TodoResponse]


class WorkNodeResponse(WorkResponse):
    progress: int
    tasks: List[TaskNodeResponse]


class PhaseNodeResponse(PhaseResponse):
    progress: int
    works: List[WorkNodeResponse]


class HierarchyResponse(BaseModel):
    """Nested project tree with progress on every node."""

    project: ProjectResponse
    progress: int
    phases: List[PhaseNodeResponse]

    class Config:
        from_attributes = True


class ProjectCreateRequest(BaseModel):
    """Request body for creating a project."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)


class ProjectUpdateRequest(BaseModel):
    """Request body for patching a project."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    archived: Optional[bool] = None


class PlanningCreateRequest(BaseModel):
    """Request body for creating a phase."""

    title: str = Field(..., min_length=1, max_length=200)
    planned_start: date = Field(..., description="ISO date (YYYY-MM-DD)")
    planned_end: date = Field(..., description="ISO date (YYYY-MM-DD)")
    actual_start: Optional[str] = Field(default=None, description="ISO date; status is derived")
    actual_end: Optional[str] = Field(default=None, description="ISO date; status is derived")
    memo: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("actual_start", "actual_end")
    @classmethod
    def _check_actual(cls, value: Optional[str]) -> Optional[str]:
        return _validate_date_text(value)


class WorkCreateRequest(PlanningCreateRequest):
    phase_id: str = Field(..., min_length=1)


class TaskCreateRequest(PlanningCreateRequest):
    work_id: str = Field(..., min_length=1)


class PlanningUpdateRequest(BaseModel):
    """Partial update; an empty actual date clears it, an absent one is kept."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    planned_start: Optional[date] = None
    planned_end: Optional[date] = None
    actual_start: Optional[str] = None
    actual_end: Optional[str] = None
    memo: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("actual_start", "actual_end")
    @classmethod
    def _check_actual(cls, value: Optional[str]) -> Optional[str]:
        return _validate_date_text(value)


class TodoCreateRequest(BaseModel):
    """Request body for creating a todo."""

    task_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    status: PlanStatus = Field(default=PlanStatus.NOT_STARTED)
    assignee_id: Optional[str] = Field(default=None, min_length=1)
    due_date: Optional[str] = Field(default=None, description="ISO date (YYYY-MM-DD)")
    memo: Optional[str] = Field(default=None, max_length=2000)
    reference_url: Optional[str] = Field(default=None, max_length=2000)
    today_flag: bool = False

    @field_validator("due_date")
    @classmethod
    def _check_due(cls, value: Optional[str]) -> Optional[str]:
        return _validate_date_text(value)


class TodoUpdateRequest(BaseModel):
    """Request body for patching a todo."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[PlanStatus] = None
    assignee_id: Optional[str] = Field(default=None, min_length=1)
    due_date: Optional[str] = None
    memo: Optional[str] = Field(default=None, max_length=2000)
    reference_url: Optional[str] = Field(default=None, max_length=2000)
    today_flag: Optional[bool] = None

    @field_validator("due_date")
    @classmethod
    def _check_due(cls, value: Optional[str]) -> Optional[str]:
        return _validate_date_text(value)


class ReorderRequest(BaseModel):
    """Request body for rewriting the order of one sibling scope."""

    type: Literal["phases", "works", "tasks", "todos"]
    ids: List[str]


class GanttResponse(BaseModel):
    """Server-computed Gantt layout (uniform row fallback geometry)."""

    timeline: Dict[str, Any]
    rows: List[Dict[str, Any]]
    markers: List[Dict[str, Any]]
    months: List[Dict[str, Any]]
    days: List[Dict[str, Any]]
    total_height: float
    today_left: Optional[float] = None
