import datetime
import functools
import logging

import graphene
from django.contrib.auth import get_user_model
from graphene_django import DjangoObjectType
from graphql import GraphQLError

from .errors import HabitError
from .models import Habit, HabitLog, MoodEnergyLog
from habits.services import completion, habit_management, habit_stats, heatmap
from habits.services import mood as mood_log

logger = logging.getLogger(__name__)


def _require_user(info):
    user = info.context.user
    if user.is_anonymous:
        raise GraphQLError("Authentication required", extensions={"code": "UNAUTHENTICATED"})
    return user


def engine_errors(fn):
    """Maps engine errors to GraphQL errors; hides anything unexpected."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except GraphQLError:
            raise
        except HabitError as e:
            raise GraphQLError(str(e), extensions={"code": e.code})
        except Exception:
            logger.exception("Unexpected error in %s", fn.__qualname__)
            raise GraphQLError("Internal server error", extensions={"code": "INTERNAL_SERVER_ERROR"})

    return wrapper


class HabitLogType(DjangoObjectType):
    class Meta:
        model = HabitLog
        convert_choices_to_enum = False
        fields = (
            "id", "log_date", "status", "completed_at", "cancelled_at", "cancelled_reason",
            "notes", "mood", "energy", "weather", "actual_value", "created_at", "updated_at",
        )


class HabitType(DjangoObjectType):
    logs = graphene.List(HabitLogType)
    completed_last_7_days = graphene.Int()
    today_status = graphene.String()

    class Meta:
        model = Habit
        convert_choices_to_enum = False
        fields = (
            "id", "name", "description", "category", "icon", "color",
            "frequency", "target_days", "allow_flexible", "scheduled_time",
            "habit_type", "target_value", "target_unit", "target_count",
            "is_weather_dependent", "requires_good_weather", "reminder_enabled",
            "current_streak", "longest_streak", "total_completions",
            "is_active", "created_at", "updated_at",
        )

    def resolve_logs(self, info):
        window_logs = getattr(self, "window_logs", None)
        if window_logs is not None:
            return window_logs
        return self.logs.order_by("-log_date")[:habit_management.RECENT_LOGS_LIMIT]

    def resolve_completed_last_7_days(self, info):
        return habit_stats.completed_last_7_days(self)

    def resolve_today_status(self, info):
        return habit_stats.today_status(self)


class MoodEnergyLogType(DjangoObjectType):
    class Meta:
        model = MoodEnergyLog
        fields = ("id", "log_date", "mood", "energy", "notes", "created_at", "updated_at")


class UserType(DjangoObjectType):
    class Meta:
        model = get_user_model()
        fields = ("id", "username", "email")


class HabitSummaryType(graphene.ObjectType):
    id = graphene.ID()
    name = graphene.String()
    current_streak = graphene.Int()
    longest_streak = graphene.Int()
    total_completions = graphene.Int()


class PeriodType(graphene.ObjectType):
    days = graphene.Int()
    start_date = graphene.Date()
    end_date = graphene.Date()


class StatsType(graphene.ObjectType):
    total_logs = graphene.Int()
    completed_count = graphene.Int()
    skipped_count = graphene.Int()
    failed_count = graphene.Int()
    cancelled_count = graphene.Int()
    completion_rate = graphene.Int()
    best_day = graphene.String()
    best_day_count = graphene.Int()


class HabitStatsType(graphene.ObjectType):
    habit = graphene.Field(HabitSummaryType)
    period = graphene.Field(PeriodType)
    stats = graphene.Field(StatsType)
    logs = graphene.List(HabitLogType)


class HeatmapDayType(graphene.ObjectType):
    date = graphene.Date()
    status = graphene.String()
    notes = graphene.String()


class HeatmapType(graphene.ObjectType):
    start_date = graphene.Date()
    end_date = graphene.Date()
    days = graphene.Int()
    entries = graphene.List(HeatmapDayType)

    def resolve_entries(self, info):
        return [
            HeatmapDayType(date=datetime.date.fromisoformat(day), status=entry["status"], notes=entry["notes"])
            for day, entry in sorted(self["per_day_status"].items())
        ]


class Query(graphene.ObjectType):
    me = graphene.Field(UserType)
    habits = graphene.List(
        HabitType,
        active_only=graphene.Boolean(required=False),
        date=graphene.Date(required=False),
        start_date=graphene.Date(required=False),
        end_date=graphene.Date(required=False),
    )
    habit = graphene.Field(HabitType, id=graphene.ID(required=True))
    habit_stats = graphene.Field(HabitStatsType, id=graphene.ID(required=True), days=graphene.Int(required=False))
    habit_heatmap = graphene.Field(HeatmapType, id=graphene.ID(required=True), days=graphene.Int(required=False))
    mood_energy_logs = graphene.List(
        MoodEnergyLogType,
        start_date=graphene.Date(required=True),
        end_date=graphene.Date(required=True),
    )

    @engine_errors
    def resolve_habits(self, info, active_only=None, date=None, start_date=None, end_date=None):
        user = info.context.user
        if user.is_anonymous:
            return []

        return habit_management.list_habits(
            user,
            active=True if active_only else None,
            on_date=date,
            start_date=start_date,
            end_date=end_date,
        )

    @engine_errors
    def resolve_habit(self, info, id):
        return habit_management.get_habit(id, _require_user(info))

    @engine_errors
    def resolve_habit_stats(self, info, id, days=None):
        return habit_stats.get_stats(id, _require_user(info), days)

    @engine_errors
    def resolve_habit_heatmap(self, info, id, days=None):
        return heatmap.get_heatmap(id, _require_user(info), days)

    @engine_errors
    def resolve_mood_energy_logs(self, info, start_date, end_date):
        return mood_log.get_mood_energy(_require_user(info), start_date, end_date)

    def resolve_me(self, info):
        user = info.context.user
        return None if user.is_anonymous else user


class HabitFieldsMixin:
    description = graphene.String()
    category = graphene.String()
    icon = graphene.String()
    color = graphene.String()
    frequency = graphene.String()
    target_days = graphene.List(graphene.Int)
    allow_flexible = graphene.Boolean()
    scheduled_time = graphene.String()
    habit_type = graphene.String()
    target_value = graphene.Int()
    target_unit = graphene.String()
    target_count = graphene.Int()
    is_weather_dependent = graphene.Boolean()
    requires_good_weather = graphene.Boolean()
    reminder_enabled = graphene.Boolean()


class CreateHabit(graphene.Mutation):
    class Arguments(HabitFieldsMixin):
        name = graphene.String(required=True)

    habit = graphene.Field(HabitType)
    message = graphene.String()

    @engine_errors
    def mutate(self, info, **fields):
        habit = habit_management.create_habit(_require_user(info), **fields)
        return CreateHabit(habit=habit, message="Habit created successfully")


class UpdateHabit(graphene.Mutation):
    class Arguments(HabitFieldsMixin):
        id = graphene.ID(required=True)
        name = graphene.String()
        is_active = graphene.Boolean()

    habit = graphene.Field(HabitType)
    message = graphene.String()

    @engine_errors
    def mutate(self, info, id, **fields):
        habit = habit_management.update_habit(id, _require_user(info), **fields)
        return UpdateHabit(habit=habit, message="Habit updated successfully")


class DeleteHabit(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)

    ok = graphene.Boolean(required=True)
    deleted_id = graphene.ID(required=True)

    @engine_errors
    def mutate(self, info, id):
        habit_management.delete_habit(id, _require_user(info))
        return DeleteHabit(ok=True, deleted_id=id)


class LoggableStatus(graphene.Enum):
    COMPLETED = HabitLog.Status.COMPLETED.value
    FAILED = HabitLog.Status.FAILED.value
    SKIPPED = HabitLog.Status.SKIPPED.value


class LogHabit(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)
        status = LoggableStatus(required=True)
        notes = graphene.String()
        mood = graphene.Int()
        energy = graphene.Int()
        weather = graphene.JSONString()
        actual_value = graphene.Decimal()

    log = graphene.Field(HabitLogType)
    created = graphene.Boolean(required=True)
    message = graphene.String()
    habit = graphene.Field(HabitType)

    @classmethod
    @engine_errors
    def mutate(cls, root, info, habit_id, status, **payload):
        user = _require_user(info)
        for rating in ("mood", "energy"):
            value = payload.get(rating)
            if value is not None and not 1 <= value <= 5:
                raise GraphQLError(f"{rating} must be between 1 and 5", extensions={"code": "VALIDATION_ERROR"})

        log, created = completion.record_completion(
            habit_id=habit_id,
            user=user,
            status=getattr(status, "value", status),
            payload=payload,
        )
        message = "Habit logged successfully" if created else "Habit log updated successfully"
        return cls(log=log, created=created, message=message, habit=log.habit)


class CancelHabitLog(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)
        reason = graphene.String()

    log = graphene.Field(HabitLogType)
    message = graphene.String()
    habit = graphene.Field(HabitType)

    @classmethod
    @engine_errors
    def mutate(cls, root, info, habit_id, reason=None):
        log = completion.cancel_completion(habit_id=habit_id, user=_require_user(info), reason=reason)
        return cls(log=log, message="Habit log cancelled successfully", habit=log.habit)


class LogMoodEnergy(graphene.Mutation):
    class Arguments:
        mood = graphene.Int(required=True)
        energy = graphene.Int(required=True)
        notes = graphene.String()

    entry = graphene.Field(MoodEnergyLogType)
    created = graphene.Boolean(required=True)

    @classmethod
    @engine_errors
    def mutate(cls, root, info, mood, energy, notes=""):
        entry, created = mood_log.log_mood_energy(_require_user(info), mood=mood, energy=energy, notes=notes)
        return cls(entry=entry, created=created)


class Mutation(graphene.ObjectType):
    create_habit = CreateHabit.Field()
    update_habit = UpdateHabit.Field()
    delete_habit = DeleteHabit.Field()
    log_habit = LogHabit.Field()
    cancel_habit_log = CancelHabitLog.Field()
    log_mood_energy = LogMoodEnergy.Field()
