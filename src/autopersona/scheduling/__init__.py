"""Scheduling subsystem: recurring schedules, next-run math and the tick."""

from autopersona.scheduling.models import Frequency, FrequencyType, Schedule, ScheduleKind
from autopersona.scheduling.store import ScheduleStore

__all__ = ["Frequency", "FrequencyType", "Schedule", "ScheduleKind", "ScheduleStore"]
