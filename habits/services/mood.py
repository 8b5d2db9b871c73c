from datetime import date
from typing import List, Optional, Tuple

from django.db import IntegrityError, transaction
from django.utils import timezone

from habits.errors import ConflictError, ValidationError
from habits.models import MoodEnergyLog


def _check_rating(name: str, value) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= 5:
        raise ValidationError(f"{name} must be an integer between 1 and 5")


@transaction.atomic
def log_mood_energy(
        user,
        *,
        mood: int,
        energy: int,
        notes: Optional[str] = "",
        log_date: Optional[date] = None,
) -> Tuple[MoodEnergyLog, bool]:
    """One mood/energy entry per user per day; a second save overwrites it."""
    _check_rating("mood", mood)
    _check_rating("energy", energy)

    try:
        return MoodEnergyLog.objects.update_or_create(
            owner=user,
            log_date=log_date or timezone.localdate(),
            defaults={"mood": mood, "energy": energy, "notes": notes or ""},
        )
    except IntegrityError as e:
        raise ConflictError("Concurrent mood log for the same day") from e


def get_mood_energy(user, start_date: date, end_date: date) -> List[MoodEnergyLog]:
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    return list(
        MoodEnergyLog.objects.filter(owner=user, log_date__range=(start_date, end_date))
        .order_by("log_date")
    )
