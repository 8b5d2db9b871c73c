"""
Creating, listing, editing and soft-deleting habits.

Streak counters are not writable here; they belong to
habits.services.completion.
"""
import logging
import re
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from habits.errors import ValidationError
from habits.models import Habit, HabitLog
from habits.services import habit_stats, repository

logger = logging.getLogger(__name__)

TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

EDITABLE_FIELDS = frozenset({
    "name", "description", "category", "icon", "color",
    "frequency", "target_days", "allow_flexible", "scheduled_time",
    "habit_type", "target_value", "target_unit", "target_count",
    "is_weather_dependent", "requires_good_weather", "reminder_enabled",
})
UPDATABLE_FIELDS = EDITABLE_FIELDS | {"is_active"}

RECENT_LOGS_LIMIT = 10


def parse_scheduled_time(value) -> Optional[time]:
    """Accepts None, a time, or an HH:MM (24-hour) string."""
    if value is None or isinstance(value, time):
        return value
    if isinstance(value, str) and TIME_RE.match(value):
        return datetime.strptime(value, "%H:%M").time()
    raise ValidationError("Invalid scheduled time format. Use HH:MM format.")


def _clean(fields: Dict[str, Any], allowed, current: Optional[Habit] = None) -> Dict[str, Any]:
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Fields cannot be set: {', '.join(sorted(unknown))}")

    cleaned = dict(fields)
    for blankable in ("description", "target_unit"):
        if blankable in cleaned and cleaned[blankable] is None:
            cleaned[blankable] = ""

    if "name" in cleaned:
        name = (cleaned["name"] or "").strip()
        if len(name) < 2:
            raise ValidationError("Habit name must be at least 2 characters")
        cleaned["name"] = name

    if "scheduled_time" in cleaned:
        cleaned["scheduled_time"] = parse_scheduled_time(cleaned["scheduled_time"])

    if "category" in cleaned and cleaned["category"] not in Habit.Category.values:
        raise ValidationError(f"Invalid category: {cleaned['category']}")

    if "frequency" in cleaned and cleaned["frequency"] not in Habit.Frequency.values:
        raise ValidationError(f"Invalid frequency: {cleaned['frequency']}")

    if "color" in cleaned and not COLOR_RE.match(cleaned["color"] or ""):
        raise ValidationError("Color must be a hex value like #a1b2c3")

    if "target_days" in cleaned:
        days = cleaned["target_days"] or []
        if any(d not in range(1, 8) for d in days):
            raise ValidationError("Target days must be ISO weekdays 1-7")
        cleaned["target_days"] = sorted(set(days))

    if "habit_type" in cleaned and cleaned["habit_type"] not in Habit.HabitType.values:
        raise ValidationError(f"Invalid habit type: {cleaned['habit_type']}")

    habit_type = cleaned.get("habit_type", current.habit_type if current else Habit.HabitType.BOOLEAN)
    if habit_type == Habit.HabitType.MEASURABLE:
        target_value = cleaned.get("target_value", current.target_value if current else None)
        target_unit = cleaned.get("target_unit", current.target_unit if current else "")
        if target_value is None or not target_unit:
            raise ValidationError("Measurable habits need a target value and unit")

    return cleaned


@transaction.atomic
def create_habit(user, **fields) -> Habit:
    cleaned = _clean(fields, EDITABLE_FIELDS)
    if "name" not in cleaned:
        raise ValidationError("Habit name is required")

    habit = Habit.objects.create(owner=user, **cleaned)
    logger.info("Created habit %s for user %s", habit.pk, user.pk)
    return habit


def list_habits(
        user,
        *,
        active: Optional[bool] = None,
        on_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
) -> List[Habit]:
    """
    The user's habits, newest first, each with `window_logs`.

    `window_logs` holds the logs for `on_date`, or for start_date..end_date
    when both are given, or for today otherwise.
    """
    if start_date and end_date:
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")
        log_filter = {"log_date__range": (start_date, end_date)}
    else:
        log_filter = {"log_date": on_date or timezone.localdate()}

    qs = Habit.objects.filter(owner=user)
    if active is not None:
        qs = qs.filter(is_active=active)

    qs = habit_stats.with_habit_stats(qs).prefetch_related(
        Prefetch(
            "logs",
            queryset=HabitLog.objects.filter(**log_filter).order_by("-log_date"),
            to_attr="window_logs",
        )
    )
    return list(qs.order_by("-created_at", "-pk"))


def get_habit(habit_id, user) -> Habit:
    """The habit with its most recent logs attached as `window_logs`."""
    habit = repository.find_owned(habit_id, user)
    habit.window_logs = list(habit.logs.order_by("-log_date")[:RECENT_LOGS_LIMIT])
    return habit


@transaction.atomic
def update_habit(habit_id, user, **fields) -> Habit:
    habit = repository.find_owned(habit_id, user, for_update=True)
    cleaned = _clean(fields, UPDATABLE_FIELDS, current=habit)
    if not cleaned:
        return habit

    for name, value in cleaned.items():
        setattr(habit, name, value)
    habit.save(update_fields=[*cleaned, "updated_at"])
    return habit


@transaction.atomic
def delete_habit(habit_id, user) -> Habit:
    """Soft delete; logs and counters are kept."""
    habit = repository.find_owned(habit_id, user, for_update=True)
    habit.is_active = False
    habit.save(update_fields=["is_active", "updated_at"])
    logger.info("Deactivated habit %s for user %s", habit.pk, user.pk)
    return habit
