"""Route registration helpers."""

from .gantt import register_gantt_routes
from .hierarchy import register_hierarchy_routes
from .projects import register_project_routes

__all__ = [
    "register_gantt_routes",
    "register_hierarchy_routes",
    "register_project_routes",
]
