from datetime import datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional

from django.conf import settings
from django.db.models import Count, OuterRef, Q, Subquery
from django.utils import timezone

from habits.errors import ValidationError
from habits.models import Habit, HabitLog
from habits.services import repository

Status = HabitLog.Status

# Sunday=0 .. Saturday=6
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def with_habit_stats(qs):
    """
    Adds efficient annotations used by derived GraphQL fields.

    - completed_last_7_days_anno
    - today_status_anno (None when there is no log today)
    """
    today = timezone.localdate()
    start = today - timedelta(days=6)

    today_log_status = HabitLog.objects.filter(habit_id=OuterRef("pk"), log_date=today).values("status")[:1]

    return qs.annotate(
        completed_last_7_days_anno=Count(
            "logs",
            filter=Q(logs__log_date__range=(start, today), logs__status=Status.COMPLETED),
            distinct=True,
        ),
        today_status_anno=Subquery(today_log_status),
    )


def completed_last_7_days(habit: Habit) -> int:
    val = getattr(habit, "completed_last_7_days_anno", None)
    if val is not None:
        return int(val)
    today = timezone.localdate()
    start = today - timedelta(days=6)
    return habit.logs.filter(log_date__range=(start, today), status=Status.COMPLETED).count()


def today_status(habit: Habit) -> str:
    if hasattr(habit, "today_status_anno"):
        return habit.today_status_anno or Status.PENDING
    return repository.day_status(repository.find_log(habit, timezone.localdate()))


def weekday_index(day) -> int:
    """0 for Sunday through 6 for Saturday."""
    return (day.weekday() + 1) % 7


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed logs, rounded half up; 0 for an empty window."""
    if total == 0:
        return 0
    rate = Decimal(completed * 100) / Decimal(total)
    return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_stats(logs: Iterable[HabitLog]) -> Dict[str, Any]:
    """
    Totals, completion rate and best weekday over a window of logs.

    Best day counts COMPLETED logs per weekday. Equal counts go to the weekday
    whose latest completed_at is most recent (midnight of log_date when unset),
    then to the earlier weekday (Sunday first).
    Touches no storage.
    """
    counts = {status: 0 for status in Status.values}
    total = 0
    buckets = [0] * 7
    latest = [None] * 7

    for log in logs:
        total += 1
        counts[log.status] = counts.get(log.status, 0) + 1

        if log.status != Status.COMPLETED or log.log_date is None:
            continue
        idx = weekday_index(log.log_date)
        buckets[idx] += 1
        recency = log.completed_at or timezone.make_aware(datetime.combine(log.log_date, time.min))
        if latest[idx] is None or recency > latest[idx]:
            latest[idx] = recency

    best_day: Optional[str] = None
    best_day_count = 0
    best_key = None
    for idx, count in enumerate(buckets):
        if count == 0:
            continue
        key = (count, latest[idx], -idx)
        if best_key is None or key > best_key:
            best_key = key
            best_day = WEEKDAY_NAMES[idx]
            best_day_count = count

    completed = counts[Status.COMPLETED]
    return {
        "total_logs": total,
        "completed_count": completed,
        "skipped_count": counts[Status.SKIPPED],
        "failed_count": counts[Status.FAILED],
        "cancelled_count": counts[Status.CANCELLED],
        "completion_rate": completion_rate(completed, total),
        "best_day": best_day,
        "best_day_count": best_day_count,
    }


def validate_window(days, default: int) -> int:
    if days is None:
        return default
    try:
        days = int(days)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid number of days: {days!r}")
    if not 1 <= days <= settings.HABIT_MAX_WINDOW_DAYS:
        raise ValidationError(f"days must be between 1 and {settings.HABIT_MAX_WINDOW_DAYS}")
    return days


def get_stats(habit_id, user, days: Optional[int] = None) -> Dict[str, Any]:
    """
    Counters of a habit plus stats over its logs from `days` ago through today.

    The window looks back `days` whole days, so it spans days + 1 calendar
    dates including today.
    """
    days = validate_window(days, settings.HABIT_STATS_DEFAULT_DAYS)
    habit = repository.find_owned(habit_id, user)

    end_date = timezone.localdate()
    start_date = end_date - timedelta(days=days)
    logs = repository.find_logs_in_range(habit, start_date, end_date)

    return {
        "habit": {
            "id": habit.pk,
            "name": habit.name,
            "current_streak": habit.current_streak,
            "longest_streak": habit.longest_streak,
            "total_completions": habit.total_completions,
        },
        "period": {
            "days": days,
            "start_date": start_date,
            "end_date": end_date,
        },
        "stats": compute_stats(logs),
        "logs": logs,
    }
