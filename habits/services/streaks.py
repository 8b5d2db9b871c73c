import logging
from dataclasses import dataclass

from habits.models import Habit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakCounters:
    current_streak: int
    longest_streak: int
    total_completions: int

    @classmethod
    def of(cls, habit: Habit) -> "StreakCounters":
        return cls(
            current_streak=habit.current_streak,
            longest_streak=habit.longest_streak,
            total_completions=habit.total_completions,
        )

    def apply_to(self, habit: Habit) -> None:
        habit.current_streak = self.current_streak
        habit.longest_streak = self.longest_streak
        habit.total_completions = self.total_completions


COUNTER_FIELDS = ["current_streak", "longest_streak", "total_completions", "updated_at"]


def advance(counters: StreakCounters, *, yesterday_completed: bool) -> StreakCounters:
    """
    Counters after a day becomes COMPLETED for the first time.

    Daily rule: the streak continues only if yesterday is COMPLETED, otherwise
    today starts a new streak of 1. Target days and flexible schedules are not
    consulted.
    """
    if yesterday_completed:
        current = counters.current_streak + 1
    else:
        current = 1

    return StreakCounters(
        current_streak=current,
        longest_streak=max(counters.longest_streak, current),
        total_completions=counters.total_completions + 1,
    )


def retract(counters: StreakCounters, *, habit_id=None) -> StreakCounters:
    """
    Counters after a COMPLETED day stops being completed.

    `longest_streak` is never lowered. Values that would go negative are
    clamped at 0 and reported, since they mean the counters had drifted from
    the log.
    """
    if counters.total_completions < 1 or counters.current_streak < 1:
        logger.warning(
            "Clamping counters for habit %s at zero (current_streak=%s, total_completions=%s)",
            habit_id, counters.current_streak, counters.total_completions,
        )

    return StreakCounters(
        current_streak=max(counters.current_streak - 1, 0),
        longest_streak=counters.longest_streak,
        total_completions=max(counters.total_completions - 1, 0),
    )
