"""
Recurrence expansion

Turns a recurring-appointment rule into concrete start datetimes. Weekdays use
0 = Sunday .. 6 = Saturday to match what booking clients send.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DEFAULT_MAX_OCCURRENCES = 52
DEFAULT_HORIZON = relativedelta(years=2)

# Initial batch generated when a recurring appointment is created
INITIAL_BATCH_CAP = 20
INITIAL_BATCH_HORIZON = relativedelta(months=3)

SUNDAY = 0


def weekday_sunday_first(value: datetime) -> int:
    """0 = Sunday .. 6 = Saturday"""
    return value.isoweekday() % 7


def generate_appointment_dates(
    start: datetime,
    frequency: str,
    interval: int = 1,
    days_of_week: Optional[Sequence[int]] = None,
    day_of_month: Optional[int] = None,
    end_date: Optional[datetime] = None,
    max_occurrences: Optional[int] = None,
) -> list[datetime]:
    """
    Expand a recurrence rule into an ordered list of datetimes.

    The cursor starts at ``start``. WEEKLY/BIWEEKLY scan one day at a time and emit
    days listed in ``days_of_week``; when the scan lands on a Sunday the cursor jumps
    ahead ``interval - 1`` weeks (``2 * interval - 1`` for BIWEEKLY). MONTHLY emits when
    the cursor's day equals ``day_of_month`` and then moves ``interval`` months.
    DAILY, QUARTERLY and YEARLY emit every step.

    Generation stops after ``max_occurrences`` dates (52 by default) or once the
    cursor reaches ``end_date`` (two years after ``start`` by default).
    """
    interval = max(interval or 1, 1)
    max_dates = max_occurrences or DEFAULT_MAX_OCCURRENCES
    final_end = end_date or start + DEFAULT_HORIZON
    wanted_days = set(days_of_week or [])

    dates: list[datetime] = []
    current = start
    count = 0

    while count < max_dates and current < final_end:
        if frequency in ("WEEKLY", "BIWEEKLY"):
            if wanted_days and weekday_sunday_first(current) in wanted_days:
                dates.append(current)
                count += 1

            current = current + timedelta(days=1)

            if weekday_sunday_first(current) == SUNDAY:
                weeks_to_add = interval * 2 - 1 if frequency == "BIWEEKLY" else interval - 1
                current = current + timedelta(weeks=weeks_to_add)

        elif frequency == "MONTHLY":
            if day_of_month and current.day == day_of_month:
                dates.append(current)
                count += 1
            current = current + relativedelta(months=interval)

        elif frequency == "DAILY":
            dates.append(current)
            count += 1
            current = current + timedelta(days=interval)

        elif frequency == "QUARTERLY":
            dates.append(current)
            count += 1
            current = current + relativedelta(months=3 * interval)

        elif frequency == "YEARLY":
            dates.append(current)
            count += 1
            current = current + relativedelta(years=interval)

        else:
            raise ValueError(f"Unsupported recurrence frequency: {frequency}")

    return dates


def initial_batch_dates(
    start_date: date,
    start_time: time,
    frequency: str,
    interval: int = 1,
    days_of_week: Optional[Sequence[int]] = None,
    day_of_month: Optional[int] = None,
    end_date: Optional[datetime] = None,
    max_occurrences: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[datetime]:
    """
    Dates for the appointments created together with a recurring appointment:
    at most 20, ending at ``end_date`` or three months from now.
    """
    now = now or datetime.utcnow()
    start = datetime.combine(start_date, start_time)
    cap = min(max_occurrences, INITIAL_BATCH_CAP) if max_occurrences else INITIAL_BATCH_CAP

    dates = generate_appointment_dates(
        start=start,
        frequency=frequency,
        interval=interval,
        days_of_week=days_of_week,
        day_of_month=day_of_month,
        end_date=end_date or now + INITIAL_BATCH_HORIZON,
        max_occurrences=cap,
    )
    logger.info(f"📅 Expanded {frequency} rule into {len(dates)} appointment dates")
    return dates
