import logging

from habits.services import streaks
from habits.services.streaks import StreakCounters


def test_advance__yesterday_completed__extends_streak_and_raises_longest():
    before = StreakCounters(current_streak=4, longest_streak=4, total_completions=10)

    after = streaks.advance(before, yesterday_completed=True)

    assert after == StreakCounters(current_streak=5, longest_streak=5, total_completions=11)


def test_advance__yesterday_completed__keeps_longer_historic_best():
    before = StreakCounters(current_streak=2, longest_streak=9, total_completions=20)

    after = streaks.advance(before, yesterday_completed=True)

    assert after.current_streak == 3
    assert after.longest_streak == 9


def test_advance__yesterday_missing__restarts_at_one_regardless_of_prior_value():
    before = StreakCounters(current_streak=6, longest_streak=8, total_completions=30)

    after = streaks.advance(before, yesterday_completed=False)

    assert after == StreakCounters(current_streak=1, longest_streak=8, total_completions=31)


def test_advance__first_ever_completion__sets_longest_to_one():
    after = streaks.advance(StreakCounters(0, 0, 0), yesterday_completed=False)

    assert after == StreakCounters(current_streak=1, longest_streak=1, total_completions=1)


def test_retract__decrements_streak_and_total_but_never_longest():
    before = StreakCounters(current_streak=3, longest_streak=7, total_completions=12)

    after = streaks.retract(before)

    assert after == StreakCounters(current_streak=2, longest_streak=7, total_completions=11)


def test_retract__clamps_at_zero_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="habits.services.streaks"):
        after = streaks.retract(StreakCounters(0, 2, 0), habit_id=42)

    assert after == StreakCounters(current_streak=0, longest_streak=2, total_completions=0)
    assert "habit 42" in caplog.text
