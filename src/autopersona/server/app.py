"""FastAPI application factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from autopersona import __version__
from autopersona.server.lifespan import lifespan
from autopersona.server.routes.cron import cron_router
from autopersona.server.routes.health import health_router

if TYPE_CHECKING:
    from autopersona.config.settings import Settings
    from autopersona.runtime import Runtime

logger = logging.getLogger("autopersona.server")


def create_app(settings: Settings, runtime: Runtime | None = None) -> FastAPI:
    """Build the FastAPI app around a runtime.

    The in-process scheduler engine is only created when
    ``queue.run_in_process`` is enabled; otherwise an external cron is
    expected to call the ``/cron`` endpoints.
    """
    if runtime is None:
        from autopersona.runtime import build_runtime

        runtime = build_runtime(settings)

    app = FastAPI(
        title="Autopersona",
        version=__version__,
        description="Scheduled character and content generation",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.runtime = runtime
    app.state.scheduler_engine = None

    if settings.queue.run_in_process:
        from autopersona.scheduling.engine import SchedulerEngine

        app.state.scheduler_engine = SchedulerEngine(runtime, settings.queue)
        logger.info("In-process scheduler enabled")

    app.include_router(health_router)
    app.include_router(cron_router)
    return app
