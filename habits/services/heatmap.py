from datetime import date, timedelta
from typing import Any, Dict, Iterable, Optional

from django.conf import settings
from django.utils import timezone

from habits.errors import ValidationError
from habits.models import HabitLog
from habits.services import repository
from habits.services.habit_stats import validate_window


def window_bounds(days: int, today: date):
    """Inclusive (start, end) covering `days` calendar dates ending today."""
    return today - timedelta(days=days - 1), today


def build_heatmap(logs: Iterable[HabitLog], days: int, today: date) -> Dict[str, Any]:
    """
    Per-day status for calendar rendering.

    Only dates with a log inside the window get an entry, keyed by ISO date;
    a missing date is pending.
    """
    if days < 1:
        raise ValidationError("days must be at least 1")
    start_date, end_date = window_bounds(days, today)
    per_day_status = {}
    for log in logs:
        if start_date <= log.log_date <= end_date:
            per_day_status[log.log_date.isoformat()] = {
                "status": log.status,
                "notes": log.notes,
            }

    return {
        "start_date": start_date,
        "end_date": end_date,
        "days": days,
        "per_day_status": per_day_status,
    }


def get_heatmap(habit_id, user, days: Optional[int] = None) -> Dict[str, Any]:
    days = validate_window(days, settings.HABIT_HEATMAP_DEFAULT_DAYS)
    habit = repository.find_owned(habit_id, user)

    today = timezone.localdate()
    start_date, end_date = window_bounds(days, today)
    logs = repository.find_logs_in_range(habit, start_date, end_date)
    return build_heatmap(logs, days, today)
