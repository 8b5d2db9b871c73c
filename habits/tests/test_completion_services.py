import threading
from datetime import timedelta

import pytest
from django.db import connection, transaction
from django.utils import timezone

from habits.errors import NotFound, ValidationError
from habits.models import Habit, HabitLog
from habits.services import completion, streaks

pytestmark = pytest.mark.django_db

Status = HabitLog.Status


@pytest.fixture()
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="u1",
        password="pass12345",
        email="u1@example.com",
    )


@pytest.fixture()
def other_user(django_user_model):
    return django_user_model.objects.create_user(
        username="u2",
        password="pass12345",
        email="u2@example.com",
    )


@pytest.fixture()
def habit(user):
    return Habit.objects.create(owner=user, name="Run")


def _record(habit, day, status=Status.COMPLETED, **payload):
    return completion.record_completion(
        habit_id=habit.pk,
        user=habit.owner,
        status=status,
        log_date=day,
        payload=payload or None,
    )


def _counters(habit):
    habit.refresh_from_db()
    return habit.current_streak, habit.longest_streak, habit.total_completions


def _completed_rows(habit):
    return HabitLog.objects.filter(habit=habit, status=Status.COMPLETED).count()


def test_record_completion__first_completion__creates_log_and_starts_streak(habit):
    today = timezone.localdate()

    log, created = _record(habit, today, notes="felt good", mood=4)

    assert created is True
    assert log.status == Status.COMPLETED
    assert log.completed_at is not None
    assert log.owner_id == habit.owner_id
    assert log.notes == "felt good"
    assert log.mood == 4
    assert _counters(habit) == (1, 1, 1)


def test_record_completion__same_day_twice__overwrites_instead_of_duplicating(habit):
    today = timezone.localdate()

    _record(habit, today, status=Status.SKIPPED, notes="rain")
    log, created = _record(habit, today, status=Status.FAILED)

    assert created is False
    assert HabitLog.objects.filter(habit=habit, log_date=today).count() == 1
    assert log.status == Status.FAILED
    assert log.notes == ""  # payload fields overwrite unconditionally


def test_record_completion__resave_completed_day__is_idempotent_for_counters(habit):
    today = timezone.localdate()

    first, _ = _record(habit, today)
    after_first = _counters(habit)
    second, created = _record(habit, today, notes="edited")

    assert created is False
    assert _counters(habit) == after_first == (1, 1, 1)
    assert second.completed_at == first.completed_at
    assert second.notes == "edited"


def test_record_completion__yesterday_completed__continues_streak(user):
    today = timezone.localdate()
    habit = Habit.objects.create(owner=user, name="Read", current_streak=4, longest_streak=4, total_completions=4)
    HabitLog.objects.create(
        habit=habit, owner=user, log_date=today - timedelta(days=1),
        status=Status.COMPLETED, completed_at=timezone.now(),
    )

    _record(habit, today)

    assert _counters(habit) == (5, 5, 5)


def test_record_completion__yesterday_not_completed__resets_streak_to_one(user):
    today = timezone.localdate()
    habit = Habit.objects.create(owner=user, name="Read", current_streak=6, longest_streak=6, total_completions=6)
    HabitLog.objects.create(habit=habit, owner=user, log_date=today - timedelta(days=1), status=Status.SKIPPED)

    _record(habit, today)

    assert _counters(habit) == (1, 6, 7)


def test_record_completion__consecutive_days__builds_streak(habit):
    today = timezone.localdate()

    for offset in (3, 2, 1, 0):
        _record(habit, today - timedelta(days=offset))

    assert _counters(habit) == (4, 4, 4)


def test_record_completion__completed_then_skipped__reverses_counters(habit):
    today = timezone.localdate()
    _record(habit, today - timedelta(days=1))
    _record(habit, today)
    assert _counters(habit) == (2, 2, 2)

    log, created = _record(habit, today, status=Status.SKIPPED)

    assert created is False
    assert log.completed_at is None
    assert _counters(habit) == (1, 2, 1)
    assert _completed_rows(habit) == 1


def test_record_completion__failed_to_skipped__leaves_counters_alone(habit):
    today = timezone.localdate()
    _record(habit, today, status=Status.FAILED)
    _record(habit, today, status=Status.SKIPPED)

    assert _counters(habit) == (0, 0, 0)


def test_record_completion__inactive_habit__still_accepted_for_owner(habit):
    habit.is_active = False
    habit.save(update_fields=["is_active"])

    _, created = _record(habit, timezone.localdate())

    assert created is True
    assert _counters(habit) == (1, 1, 1)


def test_record_completion__other_users_habit__raises_not_found(habit, other_user):
    with pytest.raises(NotFound):
        completion.record_completion(
            habit_id=habit.pk, user=other_user, status=Status.COMPLETED,
        )

    assert not HabitLog.objects.exists()


def test_record_completion__unknown_habit_id__raises_not_found(user):
    with pytest.raises(NotFound):
        completion.record_completion(habit_id="nope", user=user, status=Status.COMPLETED)


@pytest.mark.parametrize("status", [Status.PENDING, Status.CANCELLED, "DONE"])
def test_record_completion__status_not_recordable__raises_validation_error(habit, status):
    with pytest.raises(ValidationError):
        _record(habit, timezone.localdate(), status=status)


def test_record_completion__mood_out_of_range__raises_validation_error(habit):
    with pytest.raises(ValidationError):
        _record(habit, timezone.localdate(), mood=6)

    assert not HabitLog.objects.exists()


def test_record_completion__failure_after_log_write__rolls_back_log_and_counters(habit, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(streaks, "advance", explode)

    with pytest.raises(RuntimeError):
        _record(habit, timezone.localdate())

    assert not HabitLog.objects.filter(habit=habit).exists()
    assert _counters(habit) == (0, 0, 0)


def test_cancel_completion__completed_today__restores_pre_completion_counters(user):
    today = timezone.localdate()
    habit = Habit.objects.create(owner=user, name="Swim", current_streak=2, longest_streak=2, total_completions=2)
    HabitLog.objects.create(
        habit=habit, owner=user, log_date=today - timedelta(days=1),
        status=Status.COMPLETED, completed_at=timezone.now(),
    )
    _record(habit, today)
    assert _counters(habit) == (3, 3, 3)

    log = completion.cancel_completion(habit_id=habit.pk, user=user, log_date=today, reason="mistap")

    assert log.status == Status.CANCELLED
    assert log.cancelled_at is not None
    assert log.cancelled_reason == "mistap"
    assert log.completed_at is None
    # longest streak is never revised downward by cancellation
    assert _counters(habit) == (2, 3, 2)


def test_cancel_completion__skipped_log__cancels_without_touching_counters(habit):
    today = timezone.localdate()
    _record(habit, today, status=Status.SKIPPED)

    log = completion.cancel_completion(habit_id=habit.pk, user=habit.owner, log_date=today)

    assert log.status == Status.CANCELLED
    assert log.cancelled_reason == completion.DEFAULT_CANCEL_REASON
    assert _counters(habit) == (0, 0, 0)


def test_cancel_completion__no_log_today__raises_not_found(habit):
    with pytest.raises(NotFound):
        completion.cancel_completion(habit_id=habit.pk, user=habit.owner)


@pytest.mark.parametrize("status", [Status.FAILED, Status.CANCELLED])
def test_cancel_completion__log_not_cancellable__raises_not_found(habit, status):
    today = timezone.localdate()
    HabitLog.objects.create(habit=habit, owner=habit.owner, log_date=today, status=status)

    with pytest.raises(NotFound):
        completion.cancel_completion(habit_id=habit.pk, user=habit.owner, log_date=today)


def test_cancel_completion__other_users_habit__raises_not_found(habit, other_user):
    today = timezone.localdate()
    _record(habit, today)

    with pytest.raises(NotFound):
        completion.cancel_completion(habit_id=habit.pk, user=other_user, log_date=today)

    assert _counters(habit) == (1, 1, 1)


def test_cancel_completion__drifted_counters__clamp_at_zero(habit):
    today = timezone.localdate()
    HabitLog.objects.create(
        habit=habit, owner=habit.owner, log_date=today,
        status=Status.COMPLETED, completed_at=timezone.now(),
    )

    completion.cancel_completion(habit_id=habit.pk, user=habit.owner, log_date=today)

    assert _counters(habit) == (0, 0, 0)


def test_mixed_sequence__total_completions_matches_completed_rows(habit):
    today = timezone.localdate()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]

    _record(habit, days[0])
    _record(habit, days[1])
    _record(habit, days[2], status=Status.SKIPPED)
    _record(habit, days[3])
    _record(habit, days[3])
    _record(habit, days[4])
    _record(habit, days[4], status=Status.FAILED)
    _record(habit, days[5])
    _record(habit, days[6])
    completion.cancel_completion(habit_id=habit.pk, user=habit.owner, log_date=days[6])

    current, longest, total = _counters(habit)
    assert total == _completed_rows(habit) == 4
    assert longest >= current >= 0
    assert HabitLog.objects.filter(habit=habit).count() == len(days)


def test_record_completion__cancelled_day_completed_again__advances_and_keeps_cancel_history(habit):
    today = timezone.localdate()
    _record(habit, today - timedelta(days=1))
    first, _ = _record(habit, today)
    first_completed_at = first.completed_at
    completion.cancel_completion(habit_id=habit.pk, user=habit.owner, log_date=today, reason="wrong habit")
    assert _counters(habit) == (1, 2, 1)

    log, created = _record(habit, today)

    assert created is False
    assert log.status == Status.COMPLETED
    assert log.completed_at is not None
    assert log.completed_at >= first_completed_at
    log.refresh_from_db()
    assert log.cancelled_at is not None
    assert log.cancelled_reason == "wrong habit"
    assert _counters(habit) == (2, 2, 2)
    assert _completed_rows(habit) == 2


def test_record_completion__duplicate_submission_in_one_transaction__counts_once(habit):
    today = timezone.localdate()

    with transaction.atomic():
        _record(habit, today)
        _record(habit, today)

    assert _counters(habit) == (1, 1, 1)
    assert _completed_rows(habit) == 1


@pytest.mark.skipif(connection.vendor != "postgresql", reason="needs row-level locks")
@pytest.mark.django_db(transaction=True)
def test_record_completion__concurrent_duplicate_submissions__count_once(habit):
    today = timezone.localdate()
    barrier = threading.Barrier(2)

    def submit():
        try:
            barrier.wait()
            _record(habit, today)
        finally:
            connection.close()

    workers = [threading.Thread(target=submit) for _ in range(2)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert _counters(habit) == (1, 1, 1)
    assert _completed_rows(habit) == 1
