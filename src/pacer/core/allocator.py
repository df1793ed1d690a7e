"""Greedy study-block allocation - pure, no I/O.

Tasks are placed highest priority first into candidate blocks carved out of
free time. The candidate pool is mutated as blocks are placed, so earlier
tasks shape what later tasks can use. Nothing here raises for infeasible
input: a task that cannot be placed is reported as unscheduled.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta

from .calendar import (
    CandidateBlock,
    Constraints,
    FixedEvent,
    FreeInterval,
    build_free_intervals,
    generate_candidates,
)
from .priority import SchedulerPreferences, compute_priority, sort_by_priority
from .tasks import Task

logger = logging.getLogger(__name__)

# Termination guard for pathological inputs. Reaching it is treated exactly
# like running out of feasible candidates.
MAX_ALLOCATION_ATTEMPTS = 5000

# Candidate scoring weights
ALPHA_PRIORITY = 1.0
BETA_ENERGY = 0.5
GAMMA_LATENESS = 0.5

_BLOCK_NAMESPACE = uuid.UUID("6f1c0d2e-9a57-4c1b-8f0e-2b7d3a4c5e61")


@dataclass
class ScheduledBlock:
    """A span of time assigned to one task."""

    id: str
    task_id: str
    start: datetime
    end: datetime

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def format(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass
class ScheduleResult:
    """Blocks placed, tasks left (fully or partly) unplaced, and a readable log."""

    blocks: list[ScheduledBlock] = field(default_factory=list)
    unscheduled_tasks: list[Task] = field(default_factory=list)
    log: list[str] = field(default_factory=list)

    def unscheduled_ids(self) -> list[str]:
        return [t.id for t in self.unscheduled_tasks]

    def blocks_for_task(self, task_id: str) -> list[ScheduledBlock]:
        return [b for b in self.blocks if b.task_id == task_id]

    def minutes_by_day(self) -> dict[date, int]:
        """Scheduled minutes per calendar day."""
        totals: dict[date, int] = {}
        for block in self.blocks:
            day = block.start.date()
            totals[day] = totals.get(day, 0) + block.duration_minutes()
        return totals

    def to_dict(self) -> dict:
        return {
            "blocks": [b.to_dict() for b in self.blocks],
            "unscheduled_tasks": [t.to_dict() for t in self.unscheduled_tasks],
            "log": self.log,
        }


def block_id_for(task_id: str, start: datetime) -> str:
    """Deterministic block id so identical runs produce identical results."""
    return str(uuid.uuid5(_BLOCK_NAMESPACE, f"{task_id}:{start.isoformat()}"))


def _is_feasible(
    candidate: CandidateBlock,
    task: Task,
    remaining: int,
    constraints: Constraints,
    minutes_by_day: dict[date, int],
) -> bool:
    duration = candidate.duration_minutes()
    if duration <= 0 or duration < task.min_block_minutes:
        return False
    cap = constraints.max_study_minutes_per_block
    if cap > 0 and duration > cap:
        return False
    if task.due is not None and candidate.end > task.due:
        return False
    budget_left = constraints.max_study_minutes_per_day - minutes_by_day.get(candidate.day_start, 0)
    return budget_left > 0 and budget_left >= min(task.min_block_minutes, remaining)


def _score(candidate: CandidateBlock, task: Task, task_priority: float) -> float:
    lateness_penalty = 0.0
    if task.due is not None:
        days_until_due = max(0.0, (task.due - candidate.start).total_seconds() / 86400.0)
        # Closer to the deadline scores worse, which favours earlier slots
        lateness_penalty = 1.0 / (1.0 + days_until_due)
    return (
        ALPHA_PRIORITY * task_priority
        + BETA_ENERGY * candidate.energy_score
        - GAMMA_LATENESS * lateness_penalty
    )


def _trim_gap(
    pool: list[CandidateBlock],
    block_end: datetime,
    gap_minutes: int,
    min_block_minutes: int,
) -> list[CandidateBlock]:
    """Push candidates that start inside the gap after a block past it."""
    gap_end = block_end + timedelta(minutes=gap_minutes)
    out = []
    for c in pool:
        if c.start < gap_end and c.end > block_end:
            c.start = gap_end
            # Uses the current task's minimum for every candidate
            if c.duration_minutes() < min_block_minutes:
                continue
        out.append(c)
    return out


def allocate(
    tasks: list[Task],
    candidates: list[CandidateBlock],
    constraints: Constraints,
    priorities: dict[str, float],
    max_attempts: int = MAX_ALLOCATION_ATTEMPTS,
) -> ScheduleResult:
    """
    Greedily place tasks into candidate blocks.

    Pure function - no I/O. The candidates passed in are copied, never
    mutated.

    Args:
        tasks: Tasks to place, in any order
        candidates: Candidate blocks sorted by start
        constraints: Budgets and caps for the run
        priorities: Priority per task id
        max_attempts: Placement attempts per task before giving up

    Returns:
        ScheduleResult with unmerged blocks in placement order
    """
    pool = [replace(c) for c in candidates]
    cap = constraints.max_study_minutes_per_block
    gap = constraints.min_gap_between_blocks_minutes
    minutes_by_day: dict[date, int] = {}
    result = ScheduleResult()

    for task in sort_by_priority(tasks, priorities):
        remaining = task.estimated_minutes
        task_priority = priorities.get(task.id, 0.0)
        attempts = 0

        while remaining > 0:
            attempts += 1
            if attempts > max_attempts:
                logger.debug(f"Attempt cap reached for task {task.id}")
                break

            feasible = [
                idx
                for idx, c in enumerate(pool)
                if _is_feasible(c, task, remaining, constraints, minutes_by_day)
            ]
            if not feasible:
                break

            # Strictly greater keeps the earliest candidate on ties
            best_idx = feasible[0]
            best_score = _score(pool[best_idx], task, task_priority)
            for idx in feasible[1:]:
                score = _score(pool[idx], task, task_priority)
                if score > best_score:
                    best_idx, best_score = idx, score

            chosen = pool[best_idx]
            budget_left = constraints.max_study_minutes_per_day - minutes_by_day.get(chosen.day_start, 0)
            duration = min(task.max_block_minutes, chosen.duration_minutes(), remaining, budget_left)
            if cap > 0:
                duration = min(duration, cap)
            if duration <= 0:
                break

            block_start = chosen.start
            block_end = block_start + timedelta(minutes=duration)
            result.blocks.append(
                ScheduledBlock(
                    id=block_id_for(task.id, block_start),
                    task_id=task.id,
                    start=block_start,
                    end=block_end,
                )
            )
            remaining -= duration
            minutes_by_day[chosen.day_start] = minutes_by_day.get(chosen.day_start, 0) + duration

            if block_end >= chosen.end:
                del pool[best_idx]
            else:
                chosen.start = block_end
                # Leftover too short for this task is gone for everyone
                if chosen.duration_minutes() < task.min_block_minutes:
                    del pool[best_idx]

            if gap > 0:
                pool = _trim_gap(pool, block_end, gap, task.min_block_minutes)

        if remaining > 0:
            result.unscheduled_tasks.append(task)
            placed = task.estimated_minutes - remaining
            result.log.append(
                f"Task {task.title}: scheduled {placed}/{task.estimated_minutes} minutes; "
                "could not fully schedule within horizon."
            )
        else:
            result.log.append(f"Task {task.title}: fully scheduled.")

    return result


def _gap_is_free(start: datetime, end: datetime, free_intervals: list[FreeInterval]) -> bool:
    return any(i.start <= start and end <= i.end for i in free_intervals)


def merge_adjacent_blocks(
    blocks: list[ScheduledBlock],
    max_block_minutes: int,
    min_gap_minutes: int,
    task_max_minutes: dict[str, int] | None = None,
    free_intervals: list[FreeInterval] | None = None,
    max_minutes_per_day: int | None = None,
) -> list[ScheduledBlock]:
    """
    Coalesce consecutive blocks of the same task.

    Pure function - no I/O. Blocks merge when the gap between them is at
    most min_gap_minutes and the merged block stays within max_block_minutes
    (when positive) and within the owning task's own maximum (when known).

    A non-zero gap becomes study time once merged, so it is only bridged
    when it lies inside one of free_intervals and the day's total stays
    within max_minutes_per_day (when given). Without free_intervals only
    touching blocks merge.
    """
    if not blocks:
        return []

    task_max_minutes = task_max_minutes or {}
    free_intervals = free_intervals or []
    ordered = sorted(blocks, key=lambda b: b.start)

    minutes_by_day: dict[date, int] = {}
    for block in ordered:
        day = block.start.date()
        minutes_by_day[day] = minutes_by_day.get(day, 0) + block.duration_minutes()

    out = []
    current = ordered[0]

    for nxt in ordered[1:]:
        if nxt.task_id == current.task_id:
            gap = int((nxt.start - current.end).total_seconds() // 60)
            combined = int((nxt.end - current.start).total_seconds() // 60)
            limit = task_max_minutes.get(current.task_id)
            day = current.start.date()
            mergeable = (
                0 <= gap <= min_gap_minutes
                and (max_block_minutes <= 0 or combined <= max_block_minutes)
                and (limit is None or combined <= limit)
            )
            if mergeable and gap > 0:
                mergeable = (
                    _gap_is_free(current.end, nxt.start, free_intervals)
                    and (
                        max_minutes_per_day is None
                        or minutes_by_day[day] + gap <= max_minutes_per_day
                    )
                )
            if mergeable:
                minutes_by_day[day] += gap
                current = replace(current, end=nxt.end)
                continue
        out.append(current)
        current = nxt

    out.append(current)
    return out


def generate_schedule(
    tasks: list[Task],
    fixed_events: list[FixedEvent],
    constraints: Constraints,
    preferences: SchedulerPreferences | None = None,
    as_of: datetime | None = None,
    max_attempts: int = MAX_ALLOCATION_ATTEMPTS,
) -> ScheduleResult:
    """
    Pack tasks into the free time of the horizon.

    Pure function - no I/O. The run is deterministic: urgency is measured
    from as_of, which defaults to the horizon start rather than the clock.
    Constraints without an energy profile use the preferences' learned one.
    """
    preferences = preferences or SchedulerPreferences()
    as_of = as_of or constraints.horizon_start
    if not constraints.energy_profile:
        constraints = replace(constraints, energy_profile=dict(preferences.learned_energy_profile))
    logger.info(f"Starting schedule generation: {len(tasks)} tasks, {len(fixed_events)} fixed events")

    day_intervals = build_free_intervals(fixed_events, constraints)
    logger.debug(f"Built free intervals for {len(day_intervals)} days")

    horizon_days = constraints.horizon_days()
    priorities = {
        t.id: compute_priority(t, horizon_days, preferences, as_of) for t in tasks
    }
    candidates = generate_candidates(day_intervals, constraints)

    result = allocate(tasks, candidates, constraints, priorities, max_attempts)
    result.blocks = merge_adjacent_blocks(
        result.blocks,
        constraints.max_study_minutes_per_block,
        constraints.min_gap_between_blocks_minutes,
        {t.id: t.max_block_minutes for t in tasks},
        [i for intervals in day_intervals.values() for i in intervals],
        constraints.max_study_minutes_per_day,
    )

    logger.info(
        f"Schedule generation complete: {len(result.blocks)} blocks, "
        f"{len(result.unscheduled_tasks)} unscheduled"
    )
    if result.unscheduled_tasks:
        logger.warning(f"{len(result.unscheduled_tasks)} tasks could not be fully scheduled")
    return result
