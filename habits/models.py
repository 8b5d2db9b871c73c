from __future__ import annotations
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class Habit(models.Model):
    class Category(models.TextChoices):
        OUTDOOR = "OUTDOOR", "Outdoor"
        WORK = "WORK", "Work"
        HEALTH = "HEALTH", "Health"
        LEARNING = "LEARNING", "Learning"
        OTHER = "OTHER", "Other"

    class Frequency(models.TextChoices):
        DAILY = "DAILY", "Daily"
        WEEKLY = "WEEKLY", "Weekly"
        CUSTOM = "CUSTOM", "Custom"

    class HabitType(models.TextChoices):
        BOOLEAN = "boolean", "Boolean"
        MEASURABLE = "measurable", "Measurable"

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='habits',
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=16, choices=Category.choices, default=Category.OTHER)
    icon = models.CharField(max_length=10, default="⭐")
    color = models.CharField(max_length=7, default="#6b7280")

    # Schedule metadata. The streak rules treat every habit as daily.
    frequency = models.CharField(max_length=16, choices=Frequency.choices, default=Frequency.DAILY)
    target_days = models.JSONField(default=list, blank=True)  # ISO weekdays, 1=Mon .. 7=Sun
    allow_flexible = models.BooleanField(default=False)
    scheduled_time = models.TimeField(null=True, blank=True)

    habit_type = models.CharField(max_length=16, choices=HabitType.choices, default=HabitType.BOOLEAN)
    target_value = models.PositiveIntegerField(null=True, blank=True)
    target_unit = models.CharField(max_length=32, blank=True)
    target_count = models.PositiveIntegerField(default=1)

    is_weather_dependent = models.BooleanField(default=False)
    requires_good_weather = models.BooleanField(default=False)
    reminder_enabled = models.BooleanField(default=True)

    # Materialized from HabitLog; written only by habits.services.completion
    # (and the offline repair command).
    current_streak = models.PositiveIntegerField(default=0)
    longest_streak = models.PositiveIntegerField(default=0)
    total_completions = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(longest_streak__gte=models.F("current_streak")),
                name="habit_longest_streak_gte_current",
            ),
        ]
        ordering = ["-created_at"]

    if TYPE_CHECKING:
        # Django dynamically injects this via related_name="logs"
        logs = None

    def __str__(self) -> str:
        return self.name


class HabitLog(models.Model):
    class Status(models.TextChoices):
        # PENDING is never stored; a missing row means the day is pending.
        PENDING = "PENDING", "Pending"
        COMPLETED = "COMPLETED", "Completed"
        FAILED = "FAILED", "Failed"
        SKIPPED = "SKIPPED", "Skipped"
        CANCELLED = "CANCELLED", "Cancelled"

    habit = models.ForeignKey(Habit, on_delete=models.CASCADE,
                              related_name="logs")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='habit_logs',
    )
    log_date = models.DateField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_reason = models.CharField(max_length=255, blank=True)

    notes = models.TextField(blank=True)
    mood = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    energy = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    weather = models.JSONField(null=True, blank=True)
    actual_value = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["habit", "log_date"], name="unique_log_per_habit_per_day")
        ]
        ordering = ["-log_date"]

    def __str__(self) -> str:
        return f"{self.habit.name} @ {self.log_date}: {self.status}"


class MoodEnergyLog(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='mood_energy_logs',
    )
    log_date = models.DateField()
    mood = models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)
    energy = models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["owner", "log_date"], name="unique_mood_energy_per_user_per_day")
        ]
        ordering = ["log_date"]

    def __str__(self) -> str:
        return f"{self.owner} @ {self.log_date}: mood={self.mood} energy={self.energy}"
