"""Health endpoint."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from autopersona import __version__

logger = logging.getLogger("autopersona.server")

health_router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    in_process_scheduler: bool = False
    jobs: dict[str, int] = Field(default_factory=dict)


@health_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    started_at = getattr(request.app.state, "started_at", datetime.now(UTC))
    uptime = (datetime.now(UTC) - started_at).total_seconds()

    status = "ok"
    jobs: dict[str, int] = {}
    try:
        jobs = request.app.state.runtime.queue.counts()
    except SQLAlchemyError:
        logger.exception("Health check could not read the queue")
        status = "degraded"

    engine = getattr(request.app.state, "scheduler_engine", None)
    return HealthResponse(
        status=status,
        version=__version__,
        uptime_seconds=round(uptime, 1),
        in_process_scheduler=bool(engine and engine.running),
        jobs=jobs,
    )
