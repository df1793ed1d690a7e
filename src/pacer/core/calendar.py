"""Pure calendar domain logic - free time and candidate blocks, no I/O."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum

# Fragments shorter than this are never offered to the allocator.
MIN_FEASIBLE_MINUTES = 20

DEFAULT_ENERGY = 0.5


class EventSource(str, Enum):
    """Where a fixed event came from."""

    CALENDAR = "calendar"
    CLASS = "class"
    EXAM = "exam"
    EXTERNAL = "external"


def _minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


@dataclass
class FixedEvent:
    """A calendar commitment. Only locked events consume free time."""

    id: str
    title: str
    start: datetime
    end: datetime | None
    is_locked: bool = True
    source: EventSource = EventSource.CALENDAR

    def duration_minutes(self) -> int | None:
        """Event duration in minutes, or None if no end time."""
        if not self.end:
            return None
        return _minutes_between(self.start, self.end)

    @classmethod
    def from_dict(cls, data: dict) -> "FixedEvent":
        end = datetime.fromisoformat(data["end"]) if data.get("end") else None
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            start=datetime.fromisoformat(data["start"]),
            end=end,
            is_locked=bool(data.get("is_locked", True)),
            source=EventSource(data.get("source", EventSource.CALENDAR.value)),
        )


@dataclass
class BlackoutWindow:
    """A closed range of time in which nothing may be scheduled."""

    start: datetime
    end: datetime

    @classmethod
    def from_dict(cls, data: dict) -> "BlackoutWindow":
        return cls(
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
        )


@dataclass
class Constraints:
    """Scheduling-run configuration: horizon, daily window and budgets."""

    horizon_start: datetime
    horizon_end: datetime
    day_start_hour: int = 8
    day_end_hour: int = 20
    max_study_minutes_per_day: int = 240
    max_study_minutes_per_block: int = 120
    min_gap_between_blocks_minutes: int = 0
    blackout_windows: list[BlackoutWindow] = field(default_factory=list)
    energy_profile: dict[int, float] = field(default_factory=dict)

    def __post_init__(self):
        if not 0 <= self.day_start_hour < self.day_end_hour <= 24:
            raise ValueError(
                f"Invalid day window: {self.day_start_hour:02d}:00-{self.day_end_hour:02d}:00"
            )
        if self.horizon_end < self.horizon_start:
            raise ValueError("Horizon end is before horizon start")

    def horizon_days(self) -> int:
        """Whole days between the horizon's first and last day, at least 1."""
        return max(1, (self.horizon_end.date() - self.horizon_start.date()).days)

    def day_window(self, day: date) -> tuple[datetime, datetime]:
        """Study window for a calendar day, in the horizon's timezone."""
        midnight = datetime.combine(day, time(0, 0), tzinfo=self.horizon_start.tzinfo)
        return (
            midnight + timedelta(hours=self.day_start_hour),
            midnight + timedelta(hours=self.day_end_hour),
        )

    def days(self) -> list[date]:
        """Every calendar day in the horizon, inclusive."""
        first = self.horizon_start.date()
        count = (self.horizon_end.date() - first).days
        return [first + timedelta(days=i) for i in range(count + 1)]


@dataclass
class FreeInterval:
    """A contiguous span of time not consumed by a blocker."""

    start: datetime
    end: datetime

    def duration_minutes(self) -> int:
        return _minutes_between(self.start, self.end)


@dataclass
class CandidateBlock:
    """A bounded slice of free time offered to the allocator."""

    start: datetime
    end: datetime
    energy_score: float
    day_start: date

    def duration_minutes(self) -> int:
        return _minutes_between(self.start, self.end)


def subtract_interval(
    free: list[FreeInterval],
    blocker_start: datetime,
    blocker_end: datetime,
) -> list[FreeInterval]:
    """
    Remove a blocker from a list of free intervals.

    Pure function - no I/O. Returns a new list sorted by start.
    """
    out = []
    for interval in free:
        # No overlap
        if blocker_end <= interval.start or blocker_start >= interval.end:
            out.append(interval)
            continue

        # Blocker covers the whole interval
        if blocker_start <= interval.start and blocker_end >= interval.end:
            continue

        if blocker_start <= interval.start:
            out.append(FreeInterval(start=blocker_end, end=interval.end))
        elif blocker_end >= interval.end:
            out.append(FreeInterval(start=interval.start, end=blocker_start))
        else:
            out.append(FreeInterval(start=interval.start, end=blocker_start))
            out.append(FreeInterval(start=blocker_end, end=interval.end))

    return sorted(out, key=lambda i: i.start)


def _blockers_for_day(
    fixed_events: list[FixedEvent],
    constraints: Constraints,
    day_start: datetime,
    day_end: datetime,
) -> list[tuple[datetime, datetime]]:
    """Locked events and blackout windows overlapping a day window, clipped to it."""
    blockers = []
    for event in fixed_events:
        # Unlocked events and events without an end never constrain scheduling
        if not event.is_locked or event.end is None:
            continue
        if event.end <= day_start or event.start >= day_end:
            continue
        blockers.append((max(event.start, day_start), min(event.end, day_end)))

    for window in constraints.blackout_windows:
        if window.end <= day_start or window.start >= day_end:
            continue
        blockers.append((max(window.start, day_start), min(window.end, day_end)))

    return sorted(blockers, key=lambda b: b[0])


def build_free_intervals(
    fixed_events: list[FixedEvent],
    constraints: Constraints,
) -> dict[date, list[FreeInterval]]:
    """
    Compute free time for each day of the horizon.

    Pure function - no I/O.

    Args:
        fixed_events: Already-resolved calendar events
        constraints: Horizon, daily window and blackout windows

    Returns:
        Map from day to its free intervals, ordered by start. Fragments
        shorter than MIN_FEASIBLE_MINUTES are dropped.
    """
    result = {}
    for day in constraints.days():
        day_start, day_end = constraints.day_window(day)
        free = [FreeInterval(start=day_start, end=day_end)]

        for blocker_start, blocker_end in _blockers_for_day(
            fixed_events, constraints, day_start, day_end
        ):
            free = subtract_interval(free, blocker_start, blocker_end)

        result[day] = [i for i in free if i.duration_minutes() >= MIN_FEASIBLE_MINUTES]

    return result


def energy_for(dt: datetime, profile: dict[int, float]) -> float:
    """Energy score for the hour a datetime falls in."""
    return profile.get(dt.hour, DEFAULT_ENERGY)


def generate_candidates(
    day_intervals: dict[date, list[FreeInterval]],
    constraints: Constraints,
) -> list[CandidateBlock]:
    """
    Split free intervals into candidate blocks no longer than the per-block cap.

    Pure function - no I/O. Returns candidates across all days sorted by start.
    """
    cap = constraints.max_study_minutes_per_block
    candidates = []

    for day in sorted(day_intervals):
        for interval in day_intervals[day]:
            remaining = interval.duration_minutes()
            cursor = interval.start

            if cap <= 0 or remaining <= cap:
                if remaining >= MIN_FEASIBLE_MINUTES:
                    candidates.append(
                        CandidateBlock(
                            start=cursor,
                            end=interval.end,
                            energy_score=energy_for(cursor, constraints.energy_profile),
                            day_start=day,
                        )
                    )
                continue

            # Contiguous chunks of the cap; a trailing sliver below the floor is dropped
            while remaining >= MIN_FEASIBLE_MINUTES:
                duration = min(cap, remaining)
                end = cursor + timedelta(minutes=duration)
                candidates.append(
                    CandidateBlock(
                        start=cursor,
                        end=end,
                        energy_score=energy_for(cursor, constraints.energy_profile),
                        day_start=day,
                    )
                )
                remaining -= duration
                cursor = end

    return sorted(candidates, key=lambda c: c.start)


def sort_events_by_start(events: list[FixedEvent]) -> list[FixedEvent]:
    """Sort events by start time."""
    return sorted(events, key=lambda e: e.start)


def filter_events_in_horizon(
    events: list[FixedEvent],
    constraints: Constraints,
) -> list[FixedEvent]:
    """Filter events to those touching the horizon's days."""
    first, last = constraints.horizon_start.date(), constraints.horizon_end.date()
    return [
        e for e in events if e.start.date() <= last and (e.end or e.start).date() >= first
    ]
