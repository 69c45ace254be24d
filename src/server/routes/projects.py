"""Project, hierarchy and today-todo endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Response

from src.planner import PlanStatus, ProjectService, TodayTodoFilter

from ..dependencies import dump_patch, get_project_service, serialize_summary, service_errors
from ..schemas import (
    HealthResponse,
    HierarchyResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectSummaryResponse,
    ProjectUpdateRequest,
    TodoResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)


def register_project_routes(app: FastAPI) -> None:
    """Register project-level read and CRUD endpoints."""

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Simple health check endpoint."""
        return HealthResponse(status="ok")

    @app.get("/api/users", response_model=List[UserResponse])
    async def list_users(
        service: ProjectService = Depends(get_project_service),
    ) -> List[UserResponse]:
        with service_errors("list users"):
            users = await asyncio.to_thread(service.list_users)
        return [UserResponse.model_validate(user) for user in users]

    @app.get("/api/projects", response_model=List[ProjectSummaryResponse])
    async def list_projects(
        service: ProjectService = Depends(get_project_service),
    ) -> List[ProjectSummaryResponse]:
        """List projects with rolled-up progress and counts."""
        with service_errors("list projects"):
            summaries = await asyncio.to_thread(service.list_projects)
        return [serialize_summary(summary) for summary in summaries]

    @app.post("/api/projects", response_model=ProjectResponse, status_code=201)
    async def create_project(
        request: ProjectCreateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> ProjectResponse:
        with service_errors("create project"):
            project = await asyncio.to_thread(
                service.create_project, request.name, request.description
            )
        return ProjectResponse.model_validate(project)

    @app.patch("/api/projects/{project_id}", response_model=ProjectResponse)
    async def update_project(
        project_id: str,
        request: ProjectUpdateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> ProjectResponse:
        with service_errors("update project"):
            project = await asyncio.to_thread(
                service.update_project, project_id, dump_patch(request)
            )
        return ProjectResponse.model_validate(project)

    @app.delete("/api/projects/{project_id}", status_code=204)
    async def delete_project(
        project_id: str,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        """Delete a project and everything under it."""
        with service_errors("delete project"):
            await asyncio.to_thread(service.delete_project, project_id)
        return Response(status_code=204)

    @app.get("/api/projects/{project_id}/hierarchy", response_model=HierarchyResponse)
    async def get_hierarchy(
        project_id: str,
        service: ProjectService = Depends(get_project_service),
    ) -> HierarchyResponse:
        """Nested Phase → Work → Task → Todo tree with progress."""
        with service_errors("load hierarchy"):
            tree = await asyncio.to_thread(service.get_hierarchy, project_id)
        return HierarchyResponse.model_validate(tree)

    @app.get("/api/projects/{project_id}/today-todos", response_model=List[TodoResponse])
    async def list_project_today_todos(
        project_id: str,
        assignee_id: Optional[str] = None,
        status: Optional[PlanStatus] = None,
        service: ProjectService = Depends(get_project_service),
    ) -> List[TodoResponse]:
        """Todos of one project due today or flagged for today."""
        todo_filter = TodayTodoFilter(assignee_id=assignee_id, status=status)
        with service_errors("list today todos"):
            todos = await asyncio.to_thread(service.list_today_todos, project_id, todo_filter)
        return [TodoResponse.model_validate(todo) for todo in todos]

    @app.get("/api/today-todos", response_model=List[TodoResponse])
    async def list_today_todos(
        assignee_id: Optional[str] = None,
        status: Optional[PlanStatus] = None,
        service: ProjectService = Depends(get_project_service),
    ) -> List[TodoResponse]:
        """Today's todos across all non-archived projects."""
        todo_filter = TodayTodoFilter(assignee_id=assignee_id, status=status)
        with service_errors("list today todos"):
            todos = await asyncio.to_thread(service.list_today_todos, None, todo_filter)
        return [TodoResponse.model_validate(todo) for todo in todos]
