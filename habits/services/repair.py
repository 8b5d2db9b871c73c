"""
Offline rebuild of a habit's counters from its log.

The request path never calls this; it exists to repair counters that drifted
from the HabitLog rows (for example after a manual database edit).
"""
import logging
from datetime import date, timedelta
from typing import List, Tuple

from django.db import transaction

from habits.models import Habit, HabitLog
from habits.services import streaks
from habits.services.streaks import StreakCounters

logger = logging.getLogger(__name__)


def completed_dates(habit: Habit) -> List[date]:
    return list(
        habit.logs.filter(status=HabitLog.Status.COMPLETED)
        .values_list("log_date", flat=True)
        .distinct()
        .order_by("log_date")
    )


def trailing_run(dates: List[date]) -> int:
    """Length of the consecutive-day run ending at the last of `dates` (ascending)."""
    if not dates:
        return 0

    streak = 1
    expected = dates[-1] - timedelta(days=1)
    for d in reversed(dates[:-1]):
        if d != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def longest_run(dates: List[date]) -> int:
    """Max consecutive-day run in `dates` (ascending)."""
    if not dates:
        return 0

    best = 1
    cur = 1
    for prev, nxt in zip(dates, dates[1:]):
        if nxt == prev + timedelta(days=1):
            cur += 1
            if cur > best:
                best = cur
        else:
            cur = 1
    return best


def counters_from_log(habit: Habit) -> StreakCounters:
    dates = completed_dates(habit)
    return StreakCounters(
        current_streak=trailing_run(dates),
        longest_streak=longest_run(dates),
        total_completions=len(dates),
    )


@transaction.atomic
def rebuild_counters(habit: Habit, *, commit: bool = True) -> Tuple[StreakCounters, StreakCounters]:
    """Returns (stored, rebuilt) counters; saves the rebuilt ones when `commit`."""
    habit = Habit.objects.select_for_update().get(pk=habit.pk)
    before = StreakCounters.of(habit)
    after = counters_from_log(habit)

    if before != after:
        logger.warning("Habit %s counters drifted from log: %s -> %s", habit.pk, before, after)
        if commit:
            after.apply_to(habit)
            habit.save(update_fields=streaks.COUNTER_FIELDS)

    return before, after
