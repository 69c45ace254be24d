"""Gantt layout endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import Depends, FastAPI

from src.gantt import ExpansionState, LayoutSettings, compute_layout
from src.planner import ProjectService
from src.planner.config import Config

from ..dependencies import get_config, get_project_service, service_errors
from ..schemas import GanttResponse

logger = logging.getLogger(__name__)


def register_gantt_routes(app: FastAPI) -> None:
    """Register the server-side Gantt layout endpoint."""

    @app.get("/api/projects/{project_id}/gantt", response_model=GanttResponse)
    async def get_gantt(
        project_id: str,
        collapsed: Optional[str] = None,
        service: ProjectService = Depends(get_project_service),
        config: Config = Depends(get_config),
    ) -> GanttResponse:
        """Layout with uniform row geometry; `collapsed` is a comma-separated id list."""
        collapsed_ids = [item for item in (collapsed or "").split(",") if item.strip()]
        with service_errors("compute gantt layout"):
            tree = await asyncio.to_thread(service.get_hierarchy, project_id)
            layout = compute_layout(
                tree.phases,
                expanded=ExpansionState.collapsed(item.strip() for item in collapsed_ids),
                settings=LayoutSettings.from_config(config.gantt),
            )
        return GanttResponse(**layout.to_dict())
