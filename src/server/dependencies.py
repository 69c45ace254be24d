"""Dependency helpers shared across FastAPI routes."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator

from fastapi import HTTPException, Request
from pydantic import BaseModel

from src.planner import NotFoundError, ProjectService, ValidationError
from src.planner.config import Config
from src.planner.models import ProjectSummary

from .schemas import ItemCountsResponse, ProjectSummaryResponse

logger = logging.getLogger(__name__)


def get_project_service(request: Request) -> ProjectService:
    """ProjectService bound to the database opened by the app lifespan."""
    return request.app.state.service


def get_config(request: Request) -> Config:
    return request.app.state.config


@contextmanager
def service_errors(action: str) -> Iterator[None]:
    """Translate service exceptions into HTTP errors."""
    try:
        yield
    except HTTPException:
        raise
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_detail()) from exc
    except Exception as exc:
        logger.exception("Failed to %s: %s", action, exc)
        raise HTTPException(status_code=500, detail="Internal Server Error") from exc


def dump_patch(request: BaseModel) -> Dict[str, Any]:
    """Fields explicitly present in the request body (dates as ISO strings)."""
    payload = request.model_dump(exclude_unset=True)
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in payload.items()
    }


def serialize_summary(summary: ProjectSummary) -> ProjectSummaryResponse:
    """Flatten a ProjectSummary into the API response."""
    project = summary.project
    return ProjectSummaryResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        owner_id=project.owner_id,
        archived=project.archived,
        created_at=project.created_at,
        progress=summary.progress,
        todo_counts=ItemCountsResponse.model_validate(summary.todo_counts),
        phase_counts=ItemCountsResponse.model_validate(summary.phase_counts),
        work_counts=ItemCountsResponse.model_validate(summary.work_counts),
        task_counts=ItemCountsResponse.model_validate(summary.task_counts),
    )
