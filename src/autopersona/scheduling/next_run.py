"""Next-run calculation for schedule frequencies.

``compute_next`` is pure and total: for any validated ``Frequency`` and any
reference time it returns a UTC timestamp strictly after the reference.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from autopersona.clock import ensure_utc
from autopersona.config.constants import FALLBACK_TIME_SLOT
from autopersona.scheduling.models import Frequency, FrequencyType, slot_minutes

logger = logging.getLogger("autopersona.scheduling.next_run")


def _zone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, computing slots in UTC", name)
        return UTC


def slot_cron_expression(slot: str) -> str:
    """``"18:30"`` -> ``"30 18 * * *"``."""
    hours, minutes = slot.split(":")
    return f"{int(minutes)} {int(hours)} * * *"


def next_slot_time(slots: list[str], timezone: str, reference: datetime) -> datetime:
    """Earliest slot strictly after ``reference`` in ``timezone`` wall-clock time.

    Falls through to tomorrow's first slot when today's are used up. With no
    slots at all, the fallback slot on the next calendar day is used.
    """
    zone = _zone(timezone)
    local = reference.astimezone(zone)

    if not slots:
        hours, minutes = FALLBACK_TIME_SLOT.split(":")
        tomorrow = local.date() + timedelta(days=1)
        return datetime.combine(tomorrow, time(int(hours), int(minutes)), tzinfo=zone).astimezone(UTC)

    ordered = sorted(set(slots), key=slot_minutes)
    candidates = [
        croniter(slot_cron_expression(slot), local).get_next(datetime) for slot in ordered
    ]
    return min(candidates).astimezone(UTC)


def compute_next(frequency: Frequency, reference: datetime) -> datetime:
    """Return the next eligible run time after ``reference`` (UTC)."""
    reference = ensure_utc(reference)

    if frequency.type == FrequencyType.HOURLY:
        result = reference + timedelta(hours=frequency.value)
    elif frequency.type == FrequencyType.DAILY:
        result = reference + timedelta(days=frequency.value)
    elif frequency.type == FrequencyType.WEEKLY:
        result = reference + timedelta(weeks=frequency.value)
    else:
        result = next_slot_time(frequency.time_slots, frequency.timezone, reference)

    # DST transitions can fold a wall-clock slot back onto the reference
    if result <= reference:
        result = reference + timedelta(days=1)
    return result
