"""Phase / Work / Task / Todo endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import Depends, FastAPI, Response

from src.planner import ProjectService

from ..dependencies import dump_patch, get_project_service, service_errors
from ..schemas import (
    PhaseResponse,
    PlanningCreateRequest,
    PlanningUpdateRequest,
    ReorderRequest,
    TaskCreateRequest,
    TaskResponse,
    TodoCreateRequest,
    TodoResponse,
    TodoUpdateRequest,
    WorkCreateRequest,
    WorkResponse,
)

logger = logging.getLogger(__name__)


def _planning_kwargs(request: PlanningCreateRequest) -> dict:
    return {
        "title": request.title,
        "planned_start": request.planned_start.isoformat(),
        "planned_end": request.planned_end.isoformat(),
        "actual_start": request.actual_start,
        "actual_end": request.actual_end,
        "memo": request.memo,
    }


def register_hierarchy_routes(app: FastAPI) -> None:
    """Register create / patch / delete / reorder endpoints for WBS items."""

    @app.post("/api/projects/{project_id}/phases", response_model=PhaseResponse, status_code=201)
    async def create_phase(
        project_id: str,
        request: PlanningCreateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> PhaseResponse:
        """Create a phase; status is derived from the actual dates."""
        with service_errors("create phase"):
            phase = await asyncio.to_thread(
                lambda: service.create_phase(project_id, **_planning_kwargs(request))
            )
        return PhaseResponse.model_validate(phase)

    @app.post("/api/projects/{project_id}/works", response_model=WorkResponse, status_code=201)
    async def create_work(
        project_id: str,
        request: WorkCreateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> WorkResponse:
        with service_errors("create work"):
            work = await asyncio.to_thread(
                lambda: service.create_work(
                    project_id, request.phase_id, **_planning_kwargs(request)
                )
            )
        return WorkResponse.model_validate(work)

    @app.post("/api/projects/{project_id}/tasks", response_model=TaskResponse, status_code=201)
    async def create_task(
        project_id: str,
        request: TaskCreateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> TaskResponse:
        with service_errors("create task"):
            task = await asyncio.to_thread(
                lambda: service.create_task(
                    project_id, request.work_id, **_planning_kwargs(request)
                )
            )
        return TaskResponse.model_validate(task)

    @app.post("/api/projects/{project_id}/todos", response_model=TodoResponse, status_code=201)
    async def create_todo(
        project_id: str,
        request: TodoCreateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> TodoResponse:
        with service_errors("create todo"):
            todo = await asyncio.to_thread(
                lambda: service.create_todo(
                    project_id,
                    request.task_id,
                    request.title,
                    status=request.status,
                    assignee_id=request.assignee_id,
                    due_date=request.due_date,
                    memo=request.memo,
                    reference_url=request.reference_url,
                    today_flag=request.today_flag,
                )
            )
        return TodoResponse.model_validate(todo)

    @app.patch("/api/phases/{phase_id}", status_code=204)
    async def update_phase(
        phase_id: str,
        request: PlanningUpdateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        """Partial update; fields absent from the body are left untouched."""
        with service_errors("update phase"):
            await asyncio.to_thread(service.update_phase, phase_id, dump_patch(request))
        return Response(status_code=204)

    @app.patch("/api/works/{work_id}", status_code=204)
    async def update_work(
        work_id: str,
        request: PlanningUpdateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        with service_errors("update work"):
            await asyncio.to_thread(service.update_work, work_id, dump_patch(request))
        return Response(status_code=204)

    @app.patch("/api/tasks/{task_id}", status_code=204)
    async def update_task(
        task_id: str,
        request: PlanningUpdateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        with service_errors("update task"):
            await asyncio.to_thread(service.update_task, task_id, dump_patch(request))
        return Response(status_code=204)

    @app.patch("/api/todos/{todo_id}", status_code=204)
    async def update_todo(
        todo_id: str,
        request: TodoUpdateRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        with service_errors("update todo"):
            await asyncio.to_thread(service.update_todo, todo_id, dump_patch(request))
        return Response(status_code=204)

    @app.post("/api/reorder", status_code=204)
    async def reorder(
        request: ReorderRequest,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        """Rewrite the order index of one sibling scope atomically."""
        with service_errors("reorder"):
            await asyncio.to_thread(service.reorder, request.type, request.ids)
        return Response(status_code=204)

    @app.delete("/api/phases/{phase_id}", status_code=204)
    async def delete_phase(
        phase_id: str,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        with service_errors("delete phase"):
            await asyncio.to_thread(service.delete_phase, phase_id)
        return Response(status_code=204)

    @app.delete("/api/works/{work_id}", status_code=204)
    async def delete_work(
        work_id: str,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        with service_errors("delete work"):
            await asyncio.to_thread(service.delete_work, work_id)
        return Response(status_code=204)

    @app.delete("/api/tasks/{task_id}", status_code=204)
    async def delete_task(
        task_id: str,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        with service_errors("delete task"):
            await asyncio.to_thread(service.delete_task, task_id)
        return Response(status_code=204)

    @app.delete("/api/todos/{todo_id}", status_code=204)
    async def delete_todo(
        todo_id: str,
        service: ProjectService = Depends(get_project_service),
    ) -> Response:
        with service_errors("delete todo"):
            await asyncio.to_thread(service.delete_todo, todo_id)
        return Response(status_code=204)
