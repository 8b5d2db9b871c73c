from django.contrib import admin

from .models import Habit, HabitLog, MoodEnergyLog


@admin.register(Habit)
class HabitAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "category", "current_streak", "longest_streak", "total_completions", "is_active")
    list_filter = ("category", "is_active")
    search_fields = ("name",)
    # Counters are maintained from the log; use rebuild_habit_counters to fix them.
    readonly_fields = ("current_streak", "longest_streak", "total_completions", "created_at", "updated_at")


@admin.register(HabitLog)
class HabitLogAdmin(admin.ModelAdmin):
    list_display = ("habit", "log_date", "status", "completed_at")
    list_filter = ("status",)
    date_hierarchy = "log_date"
    readonly_fields = ("habit", "owner", "log_date", "status", "completed_at", "cancelled_at", "cancelled_reason")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(MoodEnergyLog)
class MoodEnergyLogAdmin(admin.ModelAdmin):
    list_display = ("owner", "log_date", "mood", "energy")
