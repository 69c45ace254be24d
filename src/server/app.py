"""FastAPI application bootstrap."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.planner import Database, ProjectService
from src.planner.config import Config
from src.planner.seed import seed_demo_data

from .routes import (
    register_gantt_routes,
    register_hierarchy_routes,
    register_project_routes,
)

logger = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None, database: Optional[Database] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The database is opened in the lifespan and closed at shutdown unless the
    caller supplies its own ``Database``.
    """
    config = config or Config.load()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(config.database.path)
        service = ProjectService(db)
        service.ensure_demo_user()
        if config.seed_demo:
            seed_demo_data(service)
        app.state.database = db
        app.state.service = service
        try:
            yield
        finally:
            if database is None:
                db.close()

    app = FastAPI(title="WBS Planner API", version="1.0.0", lifespan=lifespan)
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Validation error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=400,
            content={"message": "Validation error", "issues": jsonable_encoder(exc.errors())},
        )

    register_project_routes(app)
    register_hierarchy_routes(app)
    register_gantt_routes(app)

    return app


app = create_app()
