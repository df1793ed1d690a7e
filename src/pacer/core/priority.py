"""Task priority scoring - pure, no I/O."""

from dataclasses import dataclass, field
from datetime import datetime

from .tasks import Task

# Estimated size at which a task counts as "large".
SIZE_REFERENCE_MINUTES = 180


def default_energy_profile() -> dict[int, float]:
    """Higher energy across the waking day, low overnight."""
    return {hour: 0.7 if 9 <= hour <= 21 else 0.3 for hour in range(24)}


@dataclass
class SchedulerPreferences:
    """Weights for the priority formula plus per-course bias."""

    w_urgency: float = 0.45
    w_importance: float = 0.35
    w_difficulty: float = 0.10
    w_size: float = 0.10
    course_bias: dict[str, float] = field(default_factory=dict)
    # Used when a run's constraints carry no energy profile of their own
    learned_energy_profile: dict[int, float] = field(default_factory=default_energy_profile)


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def compute_priority(
    task: Task,
    horizon_days: int,
    preferences: SchedulerPreferences,
    as_of: datetime,
) -> float:
    """
    Relative priority of a task; only meaningful for ordering.

    Pure function - no I/O. Uses the frozen as_of instant so that a run
    never re-samples the clock.
    """
    urgency = 0.0
    days = task.days_until_due(as_of)
    if days is not None:
        urgency = 1.0 - clamp(days / max(1, horizon_days), 0.0, 1.0)

    importance = clamp(task.importance, 0.0, 1.0)
    difficulty = clamp(task.difficulty, 0.0, 1.0)
    size_factor = clamp(task.estimated_minutes / SIZE_REFERENCE_MINUTES, 0.0, 1.0)

    bias = 0.0
    if task.course_id is not None:
        bias = preferences.course_bias.get(task.course_id, 0.0)

    return (
        preferences.w_urgency * urgency
        + preferences.w_importance * importance
        + preferences.w_difficulty * difficulty
        + preferences.w_size * size_factor
        + bias
    )


def sort_by_priority(tasks: list[Task], priorities: dict[str, float]) -> list[Task]:
    """
    Sort tasks by priority (descending) then due date (ascending).

    Tasks without a due date sort last among equal priorities.
    Pure function - no I/O.
    """

    def sort_key(t: Task) -> tuple[float, int, datetime | None]:
        # Negative priority for descending sort
        return (-priorities.get(t.id, 0.0), 0 if t.due else 1, t.due)

    return sorted(tasks, key=sort_key)
