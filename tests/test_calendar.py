"""Tests for free interval and candidate block logic."""

from datetime import date, datetime, time, timedelta

import pytest

from pacer.core.calendar import (
    BlackoutWindow,
    Constraints,
    FixedEvent,
    FreeInterval,
    build_free_intervals,
    energy_for,
    filter_events_in_horizon,
    generate_candidates,
    subtract_interval,
)


# Fixtures
@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def at(today):
    """Factory for datetimes on the reference day."""
    def _at(hour: int, minute: int = 0, day_offset: int = 0) -> datetime:
        return datetime.combine(today + timedelta(days=day_offset), time(hour, minute))
    return _at


@pytest.fixture
def make_constraints(today):
    """Factory for constraints with a 09:00-17:00 day window."""
    def _make(days: int = 1, **overrides) -> Constraints:
        start = datetime.combine(today, time(0, 0))
        values = dict(
            horizon_start=start,
            horizon_end=start + timedelta(days=days - 1, hours=23, minutes=59),
            day_start_hour=9,
            day_end_hour=17,
            max_study_minutes_per_day=240,
            max_study_minutes_per_block=120,
        )
        values.update(overrides)
        return Constraints(**values)
    return _make


@pytest.fixture
def make_event(at):
    """Factory for fixed events on the reference day."""
    def _make(start_hour, end_hour, locked: bool = True, start_minute: int = 0, end_minute: int = 0):
        return FixedEvent(
            id=f"e-{start_hour}",
            title="Class",
            start=at(start_hour, start_minute),
            end=at(end_hour, end_minute) if end_hour is not None else None,
            is_locked=locked,
        )
    return _make


def spans(intervals):
    return [(i.start.strftime("%H:%M"), i.end.strftime("%H:%M")) for i in intervals]


# Constraints tests
class TestConstraints:
    def test_rejects_inverted_day_window(self, make_constraints):
        with pytest.raises(ValueError, match="Invalid day window"):
            make_constraints(day_start_hour=18, day_end_hour=9)

    def test_rejects_horizon_end_before_start(self, make_constraints, at):
        with pytest.raises(ValueError, match="Horizon end"):
            make_constraints(horizon_end=at(0, day_offset=-1))

    def test_days_are_inclusive(self, make_constraints, today):
        constraints = make_constraints(days=3)
        assert constraints.days() == [today, today + timedelta(days=1), today + timedelta(days=2)]

    def test_horizon_days_at_least_one(self, make_constraints):
        assert make_constraints(days=1).horizon_days() == 1
        assert make_constraints(days=4).horizon_days() == 3


# subtract_interval tests
class TestSubtractInterval:
    @pytest.fixture
    def morning(self, at):
        return [FreeInterval(start=at(9), end=at(12))]

    def test_no_overlap_keeps_interval(self, morning, at):
        assert spans(subtract_interval(morning, at(13), at(14))) == [("09:00", "12:00")]

    def test_blocker_covering_interval_drops_it(self, morning, at):
        assert subtract_interval(morning, at(8), at(13)) == []

    def test_left_overlap_trims_start(self, morning, at):
        assert spans(subtract_interval(morning, at(8), at(10))) == [("10:00", "12:00")]

    def test_right_overlap_trims_end(self, morning, at):
        assert spans(subtract_interval(morning, at(11), at(13))) == [("09:00", "11:00")]

    def test_blocker_inside_splits(self, morning, at):
        assert spans(subtract_interval(morning, at(10), at(11))) == [
            ("09:00", "10:00"),
            ("11:00", "12:00"),
        ]

    def test_touching_blocker_is_not_overlap(self, morning, at):
        assert spans(subtract_interval(morning, at(12), at(13))) == [("09:00", "12:00")]


# build_free_intervals tests
class TestBuildFreeIntervals:
    def test_no_events_returns_full_window(self, make_constraints, today):
        free = build_free_intervals([], make_constraints())
        assert list(free) == [today]
        assert spans(free[today]) == [("09:00", "17:00")]
        assert free[today][0].duration_minutes() == 480

    def test_locked_event_splits_day(self, make_constraints, make_event, today):
        free = build_free_intervals([make_event(10, 11)], make_constraints())
        assert spans(free[today]) == [("09:00", "10:00"), ("11:00", "17:00")]

    def test_unlocked_event_is_ignored(self, make_constraints, make_event, today):
        free = build_free_intervals([make_event(10, 11, locked=False)], make_constraints())
        assert spans(free[today]) == [("09:00", "17:00")]

    def test_event_without_end_is_ignored(self, make_constraints, make_event, today):
        free = build_free_intervals([make_event(10, None)], make_constraints())
        assert spans(free[today]) == [("09:00", "17:00")]

    def test_blackout_window_is_subtracted(self, make_constraints, at, today):
        constraints = make_constraints(blackout_windows=[BlackoutWindow(start=at(12), end=at(13))])
        free = build_free_intervals([], constraints)
        assert spans(free[today]) == [("09:00", "12:00"), ("13:00", "17:00")]

    def test_short_fragments_are_discarded(self, make_constraints, make_event, today):
        # Leaves 09:00-09:15 and 16:50-17:00, both under 20 minutes
        free = build_free_intervals(
            [make_event(9, 16, start_minute=15, end_minute=50)], make_constraints()
        )
        assert free[today] == []

    def test_twenty_minute_fragment_is_kept(self, make_constraints, make_event, today):
        free = build_free_intervals([make_event(9, 17, start_minute=20)], make_constraints())
        assert spans(free[today]) == [("09:00", "09:20")]

    def test_event_spanning_midnight_is_clipped(self, make_constraints, at, today):
        overnight = FixedEvent(id="trip", title="Trip", start=at(20, day_offset=-1), end=at(10))
        free = build_free_intervals([overnight], make_constraints())
        assert spans(free[today]) == [("10:00", "17:00")]

    def test_events_outside_window_are_ignored(self, make_constraints, make_event, today):
        free = build_free_intervals([make_event(7, 8), make_event(18, 19)], make_constraints())
        assert spans(free[today]) == [("09:00", "17:00")]

    def test_overlapping_blockers(self, make_constraints, make_event, today):
        free = build_free_intervals([make_event(10, 12), make_event(11, 13)], make_constraints())
        assert spans(free[today]) == [("09:00", "10:00"), ("13:00", "17:00")]

    def test_one_entry_per_day(self, make_constraints, make_event, today):
        free = build_free_intervals([make_event(10, 11)], make_constraints(days=3))
        assert list(free) == [today, today + timedelta(days=1), today + timedelta(days=2)]
        assert len(free[today]) == 2
        assert spans(free[today + timedelta(days=1)]) == [("09:00", "17:00")]


# generate_candidates tests
class TestGenerateCandidates:
    def test_splits_into_cap_sized_chunks(self, make_constraints, today, at):
        candidates = generate_candidates({today: [FreeInterval(at(9), at(17))]}, make_constraints())
        assert [c.duration_minutes() for c in candidates] == [120, 120, 120, 120]
        assert candidates[0].start == at(9)
        assert candidates[-1].end == at(17)

    def test_short_remainder_is_dropped(self, make_constraints, today, at):
        candidates = generate_candidates(
            {today: [FreeInterval(at(9), at(11, 10))]}, make_constraints()
        )
        assert [c.duration_minutes() for c in candidates] == [120]

    def test_remainder_above_floor_is_kept(self, make_constraints, today, at):
        candidates = generate_candidates(
            {today: [FreeInterval(at(9), at(12, 30))]}, make_constraints()
        )
        assert [c.duration_minutes() for c in candidates] == [120, 90]

    def test_no_cap_keeps_whole_interval(self, make_constraints, today, at):
        constraints = make_constraints(max_study_minutes_per_block=0)
        candidates = generate_candidates({today: [FreeInterval(at(9), at(17))]}, constraints)
        assert len(candidates) == 1
        assert candidates[0].duration_minutes() == 480

    def test_energy_from_profile_with_default(self, make_constraints, today, at):
        constraints = make_constraints(energy_profile={9: 0.9})
        candidates = generate_candidates({today: [FreeInterval(at(9), at(13))]}, constraints)
        assert [c.energy_score for c in candidates] == [0.9, 0.5]

    def test_sorted_across_days(self, make_constraints, today, at):
        tomorrow = today + timedelta(days=1)
        candidates = generate_candidates(
            {
                tomorrow: [FreeInterval(at(9, day_offset=1), at(10, day_offset=1))],
                today: [FreeInterval(at(14), at(15)), FreeInterval(at(9), at(10))],
            },
            make_constraints(days=2),
        )
        assert [c.start for c in candidates] == [at(9), at(14), at(9, day_offset=1)]
        assert [c.day_start for c in candidates] == [today, today, tomorrow]


class TestHelpers:
    def test_energy_for_unmapped_hour(self, at):
        assert energy_for(at(3), {9: 0.8}) == 0.5
        assert energy_for(at(9, 45), {9: 0.8}) == 0.8

    def test_filter_events_in_horizon(self, make_constraints, at):
        inside = FixedEvent(id="1", title="In", start=at(10), end=at(11))
        before = FixedEvent(id="2", title="Before", start=at(10, day_offset=-2), end=at(11, day_offset=-2))
        after = FixedEvent(id="3", title="After", start=at(10, day_offset=3), end=at(11, day_offset=3))
        assert filter_events_in_horizon([inside, before, after], make_constraints()) == [inside]

    def test_fixed_event_from_dict(self):
        event = FixedEvent.from_dict(
            {"id": 7, "title": "Lab", "start": "2025-01-15T10:00:00", "end": None, "source": "class"}
        )
        assert event.id == "7"
        assert event.end is None
        assert event.is_locked is True
        assert event.duration_minutes() is None
