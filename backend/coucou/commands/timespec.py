"""Turn a parsed ReminderTime into an absolute due date."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo

from dateutil.relativedelta import relativedelta

from coucou.commands.types import (
    AtDateTime,
    AtTime,
    Duration,
    OnWeekday,
    ReminderTime,
    Tomorrow,
)


def resolve_due(when: ReminderTime, now: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Absolute UTC due time of *when*, evaluated at *now*.

    Wall-clock forms (``at``, ``tomorrow``, weekdays) are read in *tz*, the
    user's timezone setting. Durations add years, months and days on the
    calendar, so ``in 1M`` on January 31st lands on the last day of February;
    hours and minutes are elapsed time, unaffected by DST changes.
    """
    local_now = now.astimezone(tz)

    if isinstance(when, Duration):
        # calendar part on the wall clock, hours and minutes as elapsed time
        calendar = relativedelta(years=when.years, months=when.months, days=when.days)
        start = local_now + calendar if calendar else now
        return start.astimezone(timezone.utc) + timedelta(hours=when.hours, minutes=when.minutes)
    elif isinstance(when, AtDateTime):
        due = datetime.combine(when.day, when.at or time(0, 0), tzinfo=tz)
    elif isinstance(when, AtTime):
        due = datetime.combine(local_now.date(), when.at, tzinfo=tz)
        if due <= local_now:
            due = datetime.combine(local_now.date() + timedelta(days=1), when.at, tzinfo=tz)
    elif isinstance(when, Tomorrow):
        if when.at is None:
            due = local_now + relativedelta(days=1)
        else:
            due = datetime.combine(local_now.date() + timedelta(days=1), when.at, tzinfo=tz)
    elif isinstance(when, OnWeekday):
        days_ahead = (when.weekday - local_now.weekday()) % 7
        at = when.at or local_now.timetz().replace(tzinfo=None)
        due = datetime.combine(local_now.date() + timedelta(days=days_ahead), at, tzinfo=tz)
        if due <= local_now:
            due = datetime.combine(
                local_now.date() + timedelta(days=days_ahead + 7), at, tzinfo=tz
            )
    else:
        raise TypeError(f"unknown reminder time: {when!r}")

    return due.astimezone(timezone.utc)
