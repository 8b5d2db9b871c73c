"""
Data access for habits and their daily logs.

Callers that write wrap these in `transaction.atomic()`; nothing here commits
on its own.
"""
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from django.db import IntegrityError

from habits.errors import ConflictError, NotFound
from habits.models import Habit, HabitLog


def find_owned(habit_id, user, *, for_update: bool = False) -> Habit:
    """
    Habit `habit_id` owned by `user`, active or not.

    With `for_update=True` the row is locked until the surrounding transaction
    ends, which serializes counter updates for the same habit.
    """
    qs = Habit.objects.filter(owner=user)
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=habit_id)
    except (Habit.DoesNotExist, ValueError, TypeError):
        raise NotFound("Habit not found")


def find_log(habit: Habit, log_date: date, *, for_update: bool = False) -> Optional[HabitLog]:
    qs = HabitLog.objects.filter(habit=habit, log_date=log_date)
    if for_update:
        qs = qs.select_for_update()
    return qs.first()


def find_logs_in_range(habit: Habit, start: date, end: date) -> List[HabitLog]:
    """Logs with start <= log_date <= end, oldest first."""
    return list(
        HabitLog.objects.filter(habit=habit, log_date__range=(start, end))
        .order_by("log_date")
    )


def upsert_log(habit: Habit, log_date: date, fields: Dict[str, Any]) -> Tuple[HabitLog, bool]:
    """Insert or overwrite the single log for (habit, log_date)."""
    try:
        return HabitLog.objects.update_or_create(
            habit=habit,
            log_date=log_date,
            defaults={"owner_id": habit.owner_id, **fields},
        )
    except IntegrityError as e:
        raise ConflictError(f"Concurrent write to log for habit {habit.pk} on {log_date}") from e


def day_status(log: Optional[HabitLog]) -> str:
    """Status of a day, with a missing row reported as PENDING."""
    if log is None:
        return HabitLog.Status.PENDING
    return log.status
