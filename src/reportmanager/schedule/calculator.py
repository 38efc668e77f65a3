"""Schedule calculator: next fixed-slot run time for a named schedule.

Runs are anchored to wall-clock slots (e.g. every day at 02:00) rather than
"last run + interval", so a late or slow run never shifts later runs.
"""

from datetime import datetime, time, timedelta
from typing import Optional

from reportmanager.domain.enums import Schedule
from reportmanager.exceptions import UnknownScheduleError

MIN_DELAY_SECONDS = 60

# Hour-of-day slots per schedule, ascending
HOUR_SLOTS: dict[Schedule, tuple[int, ...]] = {
    Schedule.EVERY_6_HOURS: (0, 6, 12, 18),
    Schedule.EVERY_12_HOURS: (0, 12),
    Schedule.DAILY: (0,),
    Schedule.DAILY_2AM: (2,),
}

MONDAY = 0


def _coerce(schedule: Schedule | str) -> Schedule:
    try:
        return Schedule(schedule)
    except ValueError:
        raise UnknownScheduleError(str(schedule)) from None


def next_fixed_hour(now: datetime, hours: tuple[int, ...]) -> datetime:
    """First slot hour strictly after the current hour, else the first slot tomorrow.

    Being exactly on a slot (hh:00:00) counts as that slot already consumed.
    """
    for hour in hours:
        if hour > now.hour:
            return datetime.combine(now.date(), time(hour), tzinfo=now.tzinfo)
    tomorrow = now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time(hours[0]), tzinfo=now.tzinfo)


def next_weekday(now: datetime, weekday: int = MONDAY) -> datetime:
    """Midnight of the next given weekday, always a future week day, never today."""
    midnight = datetime.combine(now.date(), time(0), tzinfo=now.tzinfo)
    current = now.weekday()
    if current == weekday and now == midnight:
        return midnight + timedelta(weeks=1)
    if current >= weekday:
        days = 7 - current + weekday
    else:
        days = weekday - current
    return midnight + timedelta(days=days)


def next_run(schedule: Schedule | str, now: datetime) -> Optional[datetime]:
    """Next run instant for *schedule* after *now*; None when the schedule is disabled."""
    schedule = _coerce(schedule)
    if schedule is Schedule.DISABLED:
        return None
    if schedule is Schedule.WEEKLY:
        return next_weekday(now, MONDAY)
    return next_fixed_hour(now, HOUR_SLOTS[schedule])


def next_run_delay(schedule: Schedule | str, now: datetime) -> Optional[int]:
    """Seconds until the next run, never below MIN_DELAY_SECONDS."""
    target = next_run(schedule, now)
    if target is None:
        return None
    return max(MIN_DELAY_SECONDS, int((target - now).total_seconds()))


def format_next_run_label(when: datetime) -> str:
    """Human label like "Jan 2, 2:00am"."""
    hour = when.hour % 12 or 12
    suffix = "am" if when.hour < 12 else "pm"
    return f"{when:%b} {when.day}, {hour}:{when:%M}{suffix}"
