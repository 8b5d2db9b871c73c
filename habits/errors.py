"""
Error kinds raised by the habit engine.

The engine raises these and never formats responses; the GraphQL layer maps
each kind to an error code.
"""


class HabitError(Exception):
    """Base class for all habit engine errors."""

    code = "HABIT_ERROR"


class NotFound(HabitError):
    """Habit not owned by the caller / does not exist, or no cancellable log."""

    code = "NOT_FOUND"


class ValidationError(HabitError):
    """Input rejected by business validation."""

    code = "VALIDATION_ERROR"


class ConflictError(HabitError):
    """
    A write still violated a per-day uniqueness constraint.

    update_or_create already retries its lookup after an IntegrityError, so this
    only surfaces when that retry fails too.
    """

    code = "CONFLICT"
