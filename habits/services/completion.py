"""
Recording and cancelling a habit's daily outcome.

Each entry point is one transaction: the Habit row is locked first, then the
day's log is written and the Habit counters are reconciled against the status
transition. An exception anywhere rolls back both.
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from habits.errors import NotFound, ValidationError
from habits.models import HabitLog
from habits.services import repository, streaks
from habits.services.streaks import StreakCounters

logger = logging.getLogger(__name__)

Status = HabitLog.Status

RECORDABLE_STATUSES = (Status.COMPLETED, Status.FAILED, Status.SKIPPED)
CANCELLABLE_STATUSES = (Status.COMPLETED, Status.SKIPPED)

# Overwritten on every save; a key missing from the payload clears the field.
PAYLOAD_DEFAULTS: Dict[str, Any] = {
    "notes": "",
    "mood": None,
    "energy": None,
    "weather": None,
    "actual_value": None,
}

DEFAULT_CANCEL_REASON = "user cancelled"


def _payload_fields(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    payload = payload or {}
    unknown = set(payload) - set(PAYLOAD_DEFAULTS)
    if unknown:
        raise ValidationError(f"Unknown log fields: {', '.join(sorted(unknown))}")

    fields = {**PAYLOAD_DEFAULTS, **payload}
    if fields["notes"] is None:
        fields["notes"] = ""

    for rating in ("mood", "energy"):
        value = fields[rating]
        if value is not None and not 1 <= value <= 5:
            raise ValidationError(f"{rating} must be between 1 and 5")

    return fields


def _save_counters(habit, counters: StreakCounters) -> None:
    counters.apply_to(habit)
    habit.save(update_fields=streaks.COUNTER_FIELDS)


@transaction.atomic
def record_completion(
        *,
        habit_id,
        user,
        status: str,
        log_date: Optional[date] = None,
        payload: Optional[Dict[str, Any]] = None,
) -> Tuple[HabitLog, bool]:
    """
    Upsert the (habit, log_date) log with `status` and reconcile counters.

    Returns the log and whether it was freshly inserted. Counters move only on
    a transition into or out of COMPLETED; re-saving a completed day is a no-op
    for them.
    """
    if status not in RECORDABLE_STATUSES:
        raise ValidationError(f"Invalid status: {status}")

    fields = _payload_fields(payload)
    log_date = log_date or timezone.localdate()

    habit = repository.find_owned(habit_id, user, for_update=True)
    existing = repository.find_log(habit, log_date, for_update=True)

    was_completed = repository.day_status(existing) == Status.COMPLETED
    is_now_completed = status == Status.COMPLETED

    if is_now_completed and was_completed and existing.completed_at:
        completed_at = existing.completed_at
    elif is_now_completed:
        completed_at = timezone.now()
    else:
        completed_at = None

    log, created = repository.upsert_log(
        habit,
        log_date,
        {"status": status, "completed_at": completed_at, **fields},
    )

    if is_now_completed and not was_completed:
        yesterday = repository.find_log(habit, log_date - timedelta(days=1))
        counters = streaks.advance(
            StreakCounters.of(habit),
            yesterday_completed=repository.day_status(yesterday) == Status.COMPLETED,
        )
        _save_counters(habit, counters)
        logger.debug("Habit %s completed on %s: %s", habit.pk, log_date, counters)
    elif was_completed and not is_now_completed:
        counters = streaks.retract(StreakCounters.of(habit), habit_id=habit.pk)
        _save_counters(habit, counters)
        logger.debug("Habit %s uncompleted on %s (%s): %s", habit.pk, log_date, status, counters)

    return log, created


@transaction.atomic
def cancel_completion(
        *,
        habit_id,
        user,
        log_date: Optional[date] = None,
        reason: Optional[str] = None,
) -> HabitLog:
    """
    Cancel a COMPLETED or SKIPPED log.

    Cancelling a completed day takes one off `total_completions` and
    `current_streak`; `longest_streak` is left alone.
    """
    log_date = log_date or timezone.localdate()

    habit = repository.find_owned(habit_id, user, for_update=True)
    log = repository.find_log(habit, log_date, for_update=True)
    if log is None or log.status not in CANCELLABLE_STATUSES:
        raise NotFound("No completed log found for today")

    was_completed = log.status == Status.COMPLETED

    log.status = Status.CANCELLED
    log.cancelled_at = timezone.now()
    log.cancelled_reason = reason or DEFAULT_CANCEL_REASON
    log.completed_at = None
    log.save(update_fields=["status", "cancelled_at", "cancelled_reason", "completed_at", "updated_at"])

    if was_completed:
        counters = streaks.retract(StreakCounters.of(habit), habit_id=habit.pk)
        _save_counters(habit, counters)
        logger.debug("Habit %s cancelled on %s: %s", habit.pk, log_date, counters)

    return log
