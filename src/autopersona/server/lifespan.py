"""Application lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

logger = logging.getLogger("autopersona.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown hooks for autopersona."""
    settings = app.state.settings

    # --- Startup ---
    logger.info(
        "Autopersona server starting: host=%s, port=%d",
        settings.server.host,
        settings.server.port,
    )
    if not settings.server.cron_secret:
        logger.warning(
            "No cron secret configured; /cron endpoints are open. "
            "Set CRON_SECRET in ~/.autopersona/.env."
        )

    scheduler_engine = getattr(app.state, "scheduler_engine", None)
    if scheduler_engine is not None:
        await scheduler_engine.start()

    app.state.started_at = datetime.now(UTC)

    yield

    # --- Shutdown ---
    if scheduler_engine is not None:
        await scheduler_engine.stop()

    runtime = getattr(app.state, "runtime", None)
    if runtime is not None:
        await runtime.driver.wait_for_kickoffs()

    logger.info("Autopersona server shutting down.")
