"""SQLAlchemy persistence for schedules."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from autopersona.clock import Clock, SystemClock, ensure_utc
from autopersona.db.tables import ScheduleRow
from autopersona.errors import ScheduleStoreError
from autopersona.scheduling.models import Frequency, FrequencyType, Schedule, ScheduleKind
from autopersona.scheduling.next_run import compute_next

logger = logging.getLogger("autopersona.scheduling.store")


def _to_model(row: ScheduleRow) -> Schedule:
    # Params are re-validated when the schedule is expanded, where a bad row
    # only fails its own run
    return Schedule.model_construct(
        id=row.id,
        owner_id=row.owner_id,
        target_id=row.target_id,
        kind=ScheduleKind(row.kind),
        name=row.name,
        is_active=row.is_active,
        frequency=_frequency(row),
        last_executed_at=row.last_executed_at,
        next_scheduled_at=row.next_scheduled_at,
        total_runs_completed=row.total_runs_completed,
        total_images_generated=row.total_images_generated,
        params=dict(row.params or {}),
        created_at=row.created_at,
    )


def _frequency(row: ScheduleRow) -> Frequency:
    # Rows were validated on the way in; construct without re-checking the timezone
    return Frequency.model_construct(
        type=FrequencyType(row.frequency_type),
        value=row.frequency_value,
        time_slots=list(row.time_slots or []),
        timezone=row.timezone,
    )


def _apply(row: ScheduleRow, schedule: Schedule) -> None:
    row.owner_id = schedule.owner_id
    row.target_id = schedule.target_id
    row.kind = schedule.kind.value
    row.name = schedule.name
    row.is_active = schedule.is_active
    row.frequency_type = schedule.frequency.type.value
    row.frequency_value = schedule.frequency.value
    row.time_slots = list(schedule.frequency.time_slots)
    row.timezone = schedule.frequency.timezone
    row.last_executed_at = schedule.last_executed_at
    row.next_scheduled_at = schedule.next_scheduled_at
    row.total_runs_completed = schedule.total_runs_completed
    row.total_images_generated = schedule.total_images_generated
    row.params = dict(schedule.params)
    row.created_at = schedule.created_at


class ScheduleStore:
    """Schedules backed by a relational table.

    ``advance`` uses a compare-and-set on the previously observed
    ``next_scheduled_at`` so retried or duplicated ticks advance a schedule
    at most once per due period.
    """

    def __init__(self, session_factory: sessionmaker, clock: Clock | None = None) -> None:
        self._sessions = session_factory
        self._clock = clock or SystemClock()

    def _session(self) -> Session:
        return self._sessions()

    # -- CRUD ------------------------------------------------------------------

    def add(self, schedule: Schedule) -> Schedule:
        """Persist a new schedule, computing its first run if needed."""
        if schedule.is_active and schedule.next_scheduled_at is None:
            schedule.next_scheduled_at = compute_next(schedule.frequency, self._clock.now())
        with self._session() as session, session.begin():
            row = ScheduleRow(id=schedule.id)
            _apply(row, schedule)
            session.add(row)
        logger.info(
            "Added %s schedule %s for owner %s (next run %s)",
            schedule.kind.value,
            schedule.id,
            schedule.owner_id,
            schedule.next_scheduled_at,
        )
        return schedule

    def get(self, schedule_id: str) -> Schedule | None:
        """Retrieve a schedule by ID."""
        with self._session() as session:
            row = session.get(ScheduleRow, schedule_id)
            return _to_model(row) if row is not None else None

    def update(self, schedule: Schedule) -> Schedule:
        """Overwrite an existing schedule."""
        with self._session() as session, session.begin():
            row = session.get(ScheduleRow, schedule.id)
            if row is None:
                raise ScheduleStoreError(f"Schedule {schedule.id} not found")
            _apply(row, schedule)
        return schedule

    def remove(self, schedule_id: str) -> bool:
        """Remove a schedule by ID. Returns True if it existed."""
        with self._session() as session, session.begin():
            result = session.execute(delete(ScheduleRow).where(ScheduleRow.id == schedule_id))
            return result.rowcount == 1

    def all(self, owner_id: str | None = None) -> list[Schedule]:
        """Return all schedules, optionally for one owner."""
        stmt = select(ScheduleRow).order_by(ScheduleRow.created_at)
        if owner_id is not None:
            stmt = stmt.where(ScheduleRow.owner_id == owner_id)
        with self._session() as session:
            return [_to_model(row) for row in session.scalars(stmt)]

    def set_active(self, schedule_id: str, active: bool) -> Schedule | None:
        """Pause or resume a schedule. Resuming recomputes the next run from now."""
        schedule = self.get(schedule_id)
        if schedule is None:
            return None
        schedule.is_active = active
        schedule.next_scheduled_at = (
            compute_next(schedule.frequency, self._clock.now()) if active else None
        )
        return self.update(schedule)

    # -- Scheduling ------------------------------------------------------------

    def find_due(self, now: datetime) -> list[Schedule]:
        """Active schedules whose next run is at or before ``now``, most overdue first."""
        now = ensure_utc(now)
        stmt = (
            select(ScheduleRow)
            .where(ScheduleRow.is_active.is_(True))
            .where(ScheduleRow.next_scheduled_at.is_not(None))
            .where(ScheduleRow.next_scheduled_at <= now)
            .order_by(ScheduleRow.next_scheduled_at.asc())
        )
        try:
            with self._session() as session:
                rows = list(session.scalars(stmt))
        except SQLAlchemyError as exc:
            raise ScheduleStoreError(f"Failed to load due schedules: {exc}") from exc

        due: list[Schedule] = []
        for row in rows:
            try:
                due.append(_to_model(row))
            except ValueError:
                logger.exception("Skipping unreadable schedule %s", row.id)
        return due

    def advance(
        self,
        schedule_id: str,
        now: datetime,
        expected_next: datetime | None = None,
    ) -> bool:
        """Stamp ``last_executed_at`` and move ``next_scheduled_at`` forward.

        ``expected_next`` is the ``next_scheduled_at`` the caller observed; the
        update only applies while the row still holds it. Without it the
        current value is read first. Returns False when the schedule is gone
        or was already advanced by someone else.
        """
        now = ensure_utc(now)
        try:
            with self._session() as session, session.begin():
                row = session.get(ScheduleRow, schedule_id)
                if row is None:
                    logger.warning("Cannot advance missing schedule %s", schedule_id)
                    return False

                previous = expected_next if expected_next is not None else row.next_scheduled_at
                next_run = compute_next(_frequency(row), now)

                stmt = update(ScheduleRow).where(ScheduleRow.id == schedule_id)
                if previous is None:
                    stmt = stmt.where(ScheduleRow.next_scheduled_at.is_(None))
                else:
                    stmt = stmt.where(ScheduleRow.next_scheduled_at == ensure_utc(previous))
                result = session.execute(
                    stmt.values(last_executed_at=now, next_scheduled_at=next_run),
                    execution_options={"synchronize_session": False},
                )
        except SQLAlchemyError as exc:
            raise ScheduleStoreError(f"Failed to advance schedule {schedule_id}: {exc}") from exc

        if result.rowcount != 1:
            logger.info("Schedule %s was already advanced, skipping", schedule_id)
            return False

        logger.debug("Advanced schedule %s to %s", schedule_id, next_run)
        return True

    def increment_counters(
        self,
        schedule_id: str,
        completed_delta: int = 1,
        images_delta: int = 0,
    ) -> bool:
        """Best-effort bump of the denormalized run/image counters."""
        try:
            with self._session() as session, session.begin():
                session.execute(
                    update(ScheduleRow)
                    .where(ScheduleRow.id == schedule_id)
                    .values(
                        total_runs_completed=ScheduleRow.total_runs_completed + completed_delta,
                        total_images_generated=ScheduleRow.total_images_generated + images_delta,
                    ),
                    execution_options={"synchronize_session": False},
                )
        except SQLAlchemyError:
            logger.exception("Failed to update counters for schedule %s", schedule_id)
            return False
        return True
