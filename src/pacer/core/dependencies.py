"""Dependency-aware scheduling - keeps blocked tasks out of the allocator.

A task is blocked when its plan enforces sequencing and the task's node has
an incomplete prerequisite. The plan store is an injected collaborator held
by a SchedulingContext; built graphs are cached per plan revision.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from .allocator import ScheduledBlock, ScheduleResult, generate_schedule
from .calendar import Constraints, FixedEvent
from .plan_graph import PlanGraph
from .plans import AssignmentPlan, apply_graph_to_plan, plan_to_graph
from .priority import SchedulerPreferences
from .tasks import Task, find_task

if TYPE_CHECKING:
    from pacer.ports.plan_store import PlanStore

logger = logging.getLogger(__name__)


class PlanGraphCache:
    """Built graphs keyed by plan id, valid only for the plan version they were built from."""

    def __init__(self):
        self._entries: dict[str, tuple[int, PlanGraph]] = {}
        self.hits = 0
        self.misses = 0

    def graph_for(self, plan: AssignmentPlan) -> PlanGraph:
        """Graph for a plan; callers that mutate it must copy first."""
        entry = self._entries.get(plan.id)
        if entry is not None and entry[0] == plan.version:
            self.hits += 1
            return entry[1]
        self.misses += 1
        graph = plan_to_graph(plan)
        self._entries[plan.id] = (plan.version, graph)
        return graph

    def invalidate(self, plan_id: str) -> None:
        self._entries.pop(plan_id, None)


@dataclass
class SchedulingContext:
    """Collaborators for dependency-aware scheduling."""

    plan_store: "PlanStore"
    graph_cache: PlanGraphCache = field(default_factory=PlanGraphCache)
    enforce_dependencies: bool = True

    def enforced_plan(self, task_id: str) -> AssignmentPlan | None:
        """The task's plan, only when its sequencing is enforced."""
        if not self.enforce_dependencies:
            return None
        plan = self.plan_store.get_plan(task_id)
        if plan is None or not plan.sequence_enforcement_enabled:
            return None
        return plan

    def graph_for(self, plan: AssignmentPlan) -> PlanGraph:
        return self.graph_cache.graph_for(plan)


def _is_task_blocked(task_id: str, context: SchedulingContext) -> bool:
    plan = context.enforced_plan(task_id)
    if plan is None:
        return False
    graph = context.graph_for(plan)
    node = graph.find_node_for_task(task_id)
    if node is None:
        return False
    return graph.is_node_blocked(node.id)


def get_schedulable_tasks(tasks: list[Task], context: SchedulingContext) -> list[Task]:
    """
    Filter to incomplete tasks that are not blocked by a prerequisite.

    Tasks without a plan, under a plan that does not enforce sequencing, or
    missing from their plan's graph are schedulable.
    """
    schedulable = []
    for task in tasks:
        if task.is_completed:
            continue
        if _is_task_blocked(task.id, context):
            logger.debug(f"Task blocked by dependencies: {task.id} ({task.title})")
            continue
        schedulable.append(task)

    logger.info(
        f"Filtered tasks for scheduling: {len(tasks)} total, "
        f"{len(schedulable)} schedulable, {len(tasks) - len(schedulable)} excluded"
    )
    return schedulable


def get_newly_unblocked_tasks(
    completed_task_id: str,
    all_tasks: list[Task],
    context: SchedulingContext,
) -> list[str]:
    """
    Task ids whose every prerequisite is complete now that a task is done.

    Each enforced plan touched by an incomplete task is examined once; the
    result holds each task id at most once, in first-seen order.
    """
    newly_unblocked: list[str] = []
    examined: set[str] = set()

    for task in all_tasks:
        if task.is_completed:
            continue
        plan = context.enforced_plan(task.id)
        if plan is None or plan.id in examined:
            continue
        examined.add(plan.id)

        graph = context.graph_for(plan)
        completed_node = graph.find_node_for_task(completed_task_id)
        if completed_node is None:
            continue

        for dependent in graph.get_dependents(completed_node.id):
            if dependent.assignment_id is None or dependent.assignment_id in newly_unblocked:
                continue
            if all(p.is_completed for p in graph.get_prerequisites(dependent.id)):
                newly_unblocked.append(dependent.assignment_id)
                logger.info(
                    f"Task unblocked: {dependent.assignment_id} ({dependent.title}) "
                    f"by {completed_task_id}"
                )

    return newly_unblocked


def is_scheduled_block_valid(
    block: ScheduledBlock,
    tasks: list[Task],
    context: SchedulingContext,
) -> bool:
    """A block stays valid while its task exists, is incomplete and is not blocked."""
    task = find_task(tasks, block.task_id)
    if task is None or task.is_completed:
        return False
    return not _is_task_blocked(task.id, context)


def remove_invalid_blocks(
    result: ScheduleResult,
    tasks: list[Task],
    context: SchedulingContext,
) -> ScheduleResult:
    """Drop blocks invalidated by completions or new blockers since the schedule was made."""
    valid = [b for b in result.blocks if is_scheduled_block_valid(b, tasks, context)]
    removed = len(result.blocks) - len(valid)
    log = list(result.log)

    if removed > 0:
        log.append(f"Removed {removed} invalid blocks due to dependency changes")
        logger.info(f"Removed {removed} invalid blocks, {len(valid)} remaining")

    return ScheduleResult(
        blocks=valid,
        unscheduled_tasks=list(result.unscheduled_tasks),
        log=log,
    )


def get_blocked_reason(task_id: str, context: SchedulingContext) -> str | None:
    """Readable reason a task is blocked, or None when it is not."""
    plan = context.enforced_plan(task_id)
    if plan is None:
        return None
    graph = context.graph_for(plan)
    node = graph.find_node_for_task(task_id)
    if node is None or not graph.is_node_blocked(node.id):
        return None

    incomplete = [p for p in graph.get_prerequisites(node.id) if not p.is_completed]
    if len(incomplete) == 1:
        return f"Blocked by: {incomplete[0].title}"
    return f"Blocked by {len(incomplete)} incomplete prerequisites"


def get_scheduling_statistics(tasks: list[Task], context: SchedulingContext) -> dict[str, int]:
    """Counts of schedulable and blocked tasks, split by whether they have dependencies."""
    stats = {
        "total_tasks": len(tasks),
        "completed_tasks": sum(1 for t in tasks if t.is_completed),
        "schedulable_tasks": 0,
        "blocked_tasks": 0,
        "tasks_with_dependencies": 0,
        "tasks_without_dependencies": 0,
    }

    for task in tasks:
        if task.is_completed:
            continue
        if context.enforced_plan(task.id) is None:
            stats["tasks_without_dependencies"] += 1
            stats["schedulable_tasks"] += 1
            continue
        stats["tasks_with_dependencies"] += 1
        if _is_task_blocked(task.id, context):
            stats["blocked_tasks"] += 1
        else:
            stats["schedulable_tasks"] += 1

    return stats


def generate_dependency_aware_schedule(
    tasks: list[Task],
    fixed_events: list[FixedEvent],
    constraints: Constraints,
    context: SchedulingContext,
    preferences: SchedulerPreferences | None = None,
    as_of: datetime | None = None,
) -> ScheduleResult:
    """
    Schedule only tasks whose prerequisites are complete.

    Every excluded task (blocked or already completed) is appended to
    unscheduled_tasks with a log entry naming the reason, so no input task
    goes missing from the result.
    """
    schedulable = get_schedulable_tasks(tasks, context)
    schedulable_ids = {t.id for t in schedulable}
    excluded = [t for t in tasks if t.id not in schedulable_ids]

    logger.info(
        f"Starting dependency-aware schedule: {len(tasks)} total, "
        f"{len(schedulable)} schedulable, {len(excluded)} excluded"
    )

    result = generate_schedule(schedulable, fixed_events, constraints, preferences, as_of)

    for task in excluded:
        result.unscheduled_tasks.append(task)
        if task.is_completed:
            result.log.append(f"Excluded '{task.title}': already completed")
            continue
        reason = get_blocked_reason(task.id, context) or "not schedulable"
        result.log.append(f"Excluded '{task.title}': {reason}")

    return result


def complete_task_and_auto_unblock(
    task_id: str,
    all_tasks: list[Task],
    context: SchedulingContext,
    at: datetime,
) -> list[str]:
    """Mark a task's plan node completed, persist the plan, and report newly unblocked tasks."""
    plan = context.plan_store.get_plan(task_id)
    if plan is not None:
        graph = context.graph_for(plan).copy()
        node = graph.find_node_for_task(task_id)
        if node is not None:
            graph.mark_node_completed(node.id, at)
            saved = context.plan_store.save_plan(apply_graph_to_plan(plan, graph))
            context.graph_cache.invalidate(plan.id)
            logger.info(f"Marked task {task_id} complete in plan {plan.id} (version {saved.version})")

    newly_unblocked = get_newly_unblocked_tasks(task_id, all_tasks, context)
    if newly_unblocked:
        logger.info(f"{len(newly_unblocked)} tasks auto-unblocked by {task_id}")
    return newly_unblocked
