"""Cron trigger endpoints: an external scheduler calls these on a cadence."""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from autopersona.queue.drainer import DrainReport
from autopersona.scheduling.driver import TickReport

logger = logging.getLogger("autopersona.server")


def require_cron_secret(
    request: Request,
    authorization: str | None = Header(default=None),
) -> None:
    """Bearer check against ``server.cron_secret``; open when no secret is set."""
    secret = request.app.state.settings.server.cron_secret
    if not secret:
        return
    if not authorization or not secrets.compare_digest(authorization, f"Bearer {secret}"):
        raise HTTPException(status_code=401, detail="Unauthorized")


cron_router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(require_cron_secret)])


class DrainRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1, le=100)


async def _tick(request: Request) -> TickReport | JSONResponse:
    try:
        return await request.app.state.runtime.run_scheduler_tick()
    except Exception as exc:
        logger.exception("Scheduler tick crashed")
        report = TickReport(error=f"Unexpected error: {exc}")
        return JSONResponse(status_code=500, content=report.model_dump(mode="json"))


@cron_router.get("/tick", response_model=TickReport)
async def tick_get(request: Request) -> TickReport | JSONResponse:
    return await _tick(request)


@cron_router.post("/tick", response_model=TickReport)
async def tick_post(request: Request) -> TickReport | JSONResponse:
    return await _tick(request)


@cron_router.post("/drain", response_model=DrainReport)
async def drain(request: Request, body: DrainRequest | None = None) -> DrainReport | JSONResponse:
    limit = body.limit if body else None
    try:
        return await request.app.state.runtime.drain_queue(limit)
    except Exception as exc:
        logger.exception("Queue drain crashed")
        report = DrainReport(error=f"Unexpected error: {exc}")
        return JSONResponse(status_code=500, content=report.model_dump(mode="json"))
