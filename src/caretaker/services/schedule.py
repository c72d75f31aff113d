"""Next-run computation for schedule rules.

All functions are pure: the result depends only on the rule and ``now``.
Wall-clock slots (daily/weekly) are built in ``now``'s timezone. Instants are
compared in UTC because aware datetimes sharing a tzinfo compare by wall
clock, which is wrong around DST transitions.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from caretaker.models import (
    Daily,
    Interval,
    OnCondition,
    OnStartup,
    ScheduledTask,
    Weekly,
)
from caretaker.time_utils import to_local, to_utc

logger = logging.getLogger(__name__)


def localize(day: date, at: time, tz: tzinfo) -> datetime | None:
    """Build ``day at`` in *tz*.

    Ambiguous times resolve to the earliest instant (fold=0). Times skipped by
    a DST jump do not exist and yield None.
    """
    candidate = datetime.combine(day, at.replace(tzinfo=None), tzinfo=tz)
    roundtrip = candidate.astimezone(timezone.utc).astimezone(tz)
    if roundtrip.replace(tzinfo=None) != candidate.replace(tzinfo=None):
        logger.warning(f"Local time {candidate.replace(tzinfo=None)} does not exist in {tz}")
        return None
    return candidate


def _first_after(now: datetime, days: list[date], at: time) -> datetime | None:
    tz = now.tzinfo
    now_utc = to_utc(now)
    for day in days:
        target = localize(day, at, tz)
        if target is not None and to_utc(target) > now_utc:
            return target
    return None


def calculate_next_run(
    rule: OnStartup | Interval | Daily | Weekly | OnCondition, now: datetime
) -> datetime | None:
    """Return the next trigger time for *rule*, strictly after *now*.

    Startup and condition rules are evaluated rather than scheduled and always
    return None. None is also returned when no valid local time exists.
    """
    if now.tzinfo is None:
        now = to_local(now)

    if isinstance(rule, (OnStartup, OnCondition)):
        return None

    if isinstance(rule, Interval):
        shifted = to_utc(now) + timedelta(minutes=rule.minutes)
        return shifted.astimezone(now.tzinfo)

    today = now.date()

    if isinstance(rule, Daily):
        # A tie with now counts as passed, so the slot moves to tomorrow
        return _first_after(now, [today, today + timedelta(days=1)], rule.time)

    if isinstance(rule, Weekly):
        target_day = rule.weekday.index
        current_day = today.weekday()
        if target_day == current_day:
            candidates = [today, today + timedelta(days=7)]
        else:
            days_until = (target_day - current_day + 7) % 7
            candidates = [today + timedelta(days=days_until)]
        return _first_after(now, candidates, rule.time)

    raise TypeError(f"Unknown schedule rule: {rule!r}")


def is_due(task: ScheduledTask, now: datetime, condition_met: bool = False) -> bool:
    """Decide whether *task* should run at *now*.

    ``condition_met`` is the already-evaluated action check for condition
    rules. Startup rules run once: they are due only until the first
    recorded execution, across restarts.
    """
    if not task.enabled:
        return False

    rule = task.schedule
    if isinstance(rule, OnStartup):
        return task.last_run is None

    if isinstance(rule, OnCondition):
        return condition_met

    if task.next_run is None:
        return False
    return to_utc(now) >= to_utc(task.next_run)
