"""SQLAlchemy-backed work queue for generation jobs.

Claims are exclusive without application locks: a job is only handed to a
caller whose ``UPDATE ... WHERE status = 'pending'`` actually changed the
row, so two workers racing for the same job can never both win.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from autopersona.clock import Clock, SystemClock, ensure_utc
from autopersona.db.tables import JobRow
from autopersona.errors import QueueError
from autopersona.queue.models import Job, JobKind, JobSpec, JobStatus

logger = logging.getLogger("autopersona.queue.store")

LEASE_EXPIRED_MESSAGE = "Worker lease expired before the job finished"

_OPEN_STATUSES = (JobStatus.PENDING.value, JobStatus.GENERATING.value)


def _to_model(row: JobRow) -> Job:
    return Job(
        id=row.id,
        schedule_id=row.schedule_id,
        owner_id=row.owner_id,
        kind=JobKind(row.kind),
        status=JobStatus(row.status),
        payload=dict(row.payload or {}),
        progress_count=row.progress_count,
        total_images=row.total_images,
        result_ref=row.result_ref,
        error_message=row.error_message,
        step_errors=list(row.step_errors or []),
        created_at=row.created_at,
        started_at=row.started_at,
        heartbeat_at=row.heartbeat_at,
        completed_at=row.completed_at,
    )


class WorkQueue:
    """Durable queue of generation jobs.

    ``enqueue_batch`` is all-or-nothing: the batch is inserted in a single
    transaction and a failure leaves no partial batch behind.
    """

    def __init__(self, session_factory: sessionmaker, clock: Clock | None = None) -> None:
        self._sessions = session_factory
        self._clock = clock or SystemClock()

    def _session(self) -> Session:
        return self._sessions()

    # -- Enqueue ---------------------------------------------------------------

    def enqueue_batch(self, specs: list[JobSpec], now: datetime | None = None) -> list[str]:
        """Insert one pending job per spec and return their IDs in order."""
        if not specs:
            return []
        now = ensure_utc(now or self._clock.now())
        rows = [
            JobRow(
                schedule_id=spec.schedule_id,
                owner_id=spec.owner_id,
                kind=spec.kind.value,
                status=JobStatus.PENDING.value,
                payload=dict(spec.payload),
                total_images=spec.total_images,
                step_errors=[],
                # Keep batch order stable for the oldest-first claim
                created_at=now + timedelta(microseconds=i),
            )
            for i, spec in enumerate(specs)
        ]
        try:
            with self._session() as session, session.begin():
                session.add_all(rows)
                session.flush()
                job_ids = [row.id for row in rows]
        except SQLAlchemyError as exc:
            raise QueueError(f"Failed to enqueue {len(specs)} jobs: {exc}") from exc

        logger.info("Enqueued %d jobs", len(job_ids))
        return job_ids

    # -- Claiming --------------------------------------------------------------

    def _try_claim(self, session: Session, job_id: str, now: datetime) -> bool:
        with session.begin():
            result = session.execute(
                update(JobRow)
                .where(JobRow.id == job_id)
                .where(JobRow.status == JobStatus.PENDING.value)
                .values(status=JobStatus.GENERATING.value, started_at=now, heartbeat_at=now),
                execution_options={"synchronize_session": False},
            )
        return result.rowcount == 1

    def claim_pending(self, limit: int, now: datetime | None = None) -> list[Job]:
        """Claim up to ``limit`` of the oldest pending jobs for this caller."""
        if limit <= 0:
            return []
        now = ensure_utc(now or self._clock.now())
        claimed: list[str] = []
        tried: set[str] = set()

        try:
            with self._session() as session:
                while len(claimed) < limit:
                    stmt = (
                        select(JobRow.id)
                        .where(JobRow.status == JobStatus.PENDING.value)
                        .order_by(JobRow.created_at.asc(), JobRow.id.asc())
                        .limit(limit - len(claimed))
                    )
                    if tried:
                        stmt = stmt.where(JobRow.id.not_in(sorted(tried)))
                    candidates = list(session.scalars(stmt))
                    session.rollback()  # release the read before writing
                    if not candidates:
                        break
                    for job_id in candidates:
                        tried.add(job_id)
                        if self._try_claim(session, job_id, now):
                            claimed.append(job_id)

                if not claimed:
                    return []
                rows = session.scalars(
                    select(JobRow)
                    .where(JobRow.id.in_(claimed))
                    .order_by(JobRow.created_at.asc(), JobRow.id.asc())
                )
                jobs = [_to_model(row) for row in rows]
        except SQLAlchemyError as exc:
            raise QueueError(f"Failed to claim pending jobs: {exc}") from exc

        logger.info("Claimed %d pending jobs", len(jobs))
        return jobs

    def claim(self, job_id: str, now: datetime | None = None) -> Job | None:
        """Claim one specific job. Returns None if it is no longer pending."""
        now = ensure_utc(now or self._clock.now())
        try:
            with self._session() as session:
                if not self._try_claim(session, job_id, now):
                    return None
                row = session.get(JobRow, job_id)
                return _to_model(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise QueueError(f"Failed to claim job {job_id}: {exc}") from exc

    # -- Status transitions ----------------------------------------------------

    def record_progress(
        self, job_id: str, progress_count: int, now: datetime | None = None
    ) -> None:
        """Publish live progress for a job that is still generating and renew its lease."""
        now = ensure_utc(now or self._clock.now())
        with self._session() as session, session.begin():
            session.execute(
                update(JobRow)
                .where(JobRow.id == job_id)
                .where(JobRow.status == JobStatus.GENERATING.value)
                .values(progress_count=progress_count, heartbeat_at=now),
                execution_options={"synchronize_session": False},
            )

    def _finish(
        self,
        job_id: str,
        status: JobStatus,
        allowed_from: tuple[str, ...],
        values: dict,
    ) -> bool:
        with self._session() as session, session.begin():
            result = session.execute(
                update(JobRow)
                .where(JobRow.id == job_id)
                .where(JobRow.status.in_(allowed_from))
                .values(status=status.value, **values),
                execution_options={"synchronize_session": False},
            )
            if result.rowcount == 1:
                return True
            current = session.scalar(select(JobRow.status).where(JobRow.id == job_id))

        if current is None:
            logger.warning("Cannot mark missing job %s as %s", job_id, status.value)
            return False
        if current == status.value:
            logger.debug("Job %s already %s", job_id, current)
            return True
        if JobStatus(current).is_terminal:
            logger.warning("Job %s already %s, cannot mark it %s", job_id, current, status.value)
            return False
        logger.warning("Job %s is %s, cannot move it to %s", job_id, current, status.value)
        return False

    def mark_completed(
        self,
        job_id: str,
        result_ref: str | None,
        now: datetime | None = None,
        *,
        progress_count: int | None = None,
        step_errors: list[str] | None = None,
    ) -> bool:
        """Terminal success.

        Returns True when the job is now completed, including a repeat call.
        Returns False when it could not be completed, e.g. because the lease
        sweep already failed it.
        """
        values: dict = {
            "result_ref": result_ref,
            "completed_at": ensure_utc(now or self._clock.now()),
            "step_errors": list(step_errors or []),
        }
        if progress_count is not None:
            values["progress_count"] = progress_count
        return self._finish(job_id, JobStatus.COMPLETED, (JobStatus.GENERATING.value,), values)

    def mark_failed(
        self,
        job_id: str,
        error_message: str,
        now: datetime | None = None,
        *,
        result_ref: str | None = None,
        step_errors: list[str] | None = None,
    ) -> bool:
        """Terminal failure. Returns True when the job is now failed.

        A job that already completed is left alone and False is returned.
        """
        values: dict = {
            "error_message": error_message,
            "completed_at": ensure_utc(now or self._clock.now()),
            "step_errors": list(step_errors or []),
        }
        if result_ref is not None:
            values["result_ref"] = result_ref
        return self._finish(job_id, JobStatus.FAILED, _OPEN_STATUSES, values)

    def expire_stale(self, lease_seconds: int, now: datetime | None = None) -> int:
        """Fail jobs whose lease ran out without a heartbeat.

        The lease starts at the claim and is renewed by ``record_progress``.
        A worker that crashed after claiming never reports back; its job is
        failed rather than re-queued so the lifecycle stays forward-only.
        """
        now = ensure_utc(now or self._clock.now())
        cutoff = now - timedelta(seconds=lease_seconds)
        with self._session() as session, session.begin():
            result = session.execute(
                update(JobRow)
                .where(JobRow.status == JobStatus.GENERATING.value)
                .where(func.coalesce(JobRow.heartbeat_at, JobRow.started_at) < cutoff)
                .values(
                    status=JobStatus.FAILED.value,
                    error_message=LEASE_EXPIRED_MESSAGE,
                    completed_at=now,
                ),
                execution_options={"synchronize_session": False},
            )
        if result.rowcount:
            logger.warning("Expired %d jobs stuck in generating", result.rowcount)
        return result.rowcount

    # -- Queries ---------------------------------------------------------------

    def get(self, job_id: str) -> Job | None:
        with self._session() as session:
            row = session.get(JobRow, job_id)
            return _to_model(row) if row is not None else None

    def recent(
        self,
        owner_id: str | None = None,
        status: JobStatus | None = None,
        schedule_id: str | None = None,
        limit: int = 50,
    ) -> list[Job]:
        """Most recent jobs first."""
        stmt = select(JobRow).order_by(JobRow.created_at.desc()).limit(limit)
        if owner_id is not None:
            stmt = stmt.where(JobRow.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(JobRow.status == status.value)
        if schedule_id is not None:
            stmt = stmt.where(JobRow.schedule_id == schedule_id)
        with self._session() as session:
            return [_to_model(row) for row in session.scalars(stmt)]

    def counts(self) -> dict[str, int]:
        """Number of jobs per status."""
        stmt = select(JobRow.status, func.count()).group_by(JobRow.status)
        with self._session() as session:
            found = {status: count for status, count in session.execute(stmt)}
        return {status.value: found.get(status.value, 0) for status in JobStatus}
