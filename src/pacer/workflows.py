"""Shared workflow layer between the CLI and the functional core.

Each function resolves adapters from config, calls into the core, and
returns plain results for the caller to display.
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path

from .adapters.file_plan_store import FilePlanStore
from .adapters.json_calendar import JsonCalendarSource
from .config import PACER_HOME, Config
from .core.allocator import ScheduleResult
from .core.calendar import BlackoutWindow
from .core.dependencies import (
    SchedulingContext,
    complete_task_and_auto_unblock,
    generate_dependency_aware_schedule,
    get_blocked_reason,
    get_scheduling_statistics,
)
from .core.plan_graph import PlanGraph, PlanGraphError
from .core.plans import apply_graph_to_plan, plan_structure, plan_to_graph
from .core.tasks import Task, filter_incomplete

logger = logging.getLogger(__name__)


def get_plan_store(config: Config) -> FilePlanStore:
    """Resolve plan directory from config."""
    if config.plan_dir:
        return FilePlanStore(Path(config.plan_dir).expanduser())
    return FilePlanStore(PACER_HOME / "plans")


def get_context(config: Config) -> SchedulingContext:
    return SchedulingContext(
        plan_store=get_plan_store(config),
        enforce_dependencies=config.enforce_dependencies,
    )


def load_tasks(path: Path | str) -> list[Task]:
    """Read tasks from a JSON list."""
    data = json.loads(Path(path).expanduser().read_text())
    return [Task.from_dict(item) for item in data]


def load_blackouts(path: Path | str | None) -> list[BlackoutWindow]:
    """Read blackout windows from a JSON list; none when no file is given."""
    if not path:
        return []
    data = json.loads(Path(path).expanduser().read_text())
    return [BlackoutWindow.from_dict(item) for item in data]


def build_schedule(
    config: Config,
    tasks: list[Task],
    start: date,
    days: int | None = None,
    events_path: Path | str | None = None,
    blackouts_path: Path | str | None = None,
    context: SchedulingContext | None = None,
) -> ScheduleResult:
    """Run a dependency-aware schedule over the configured horizon."""
    constraints = config.to_constraints(start, days, load_blackouts(blackouts_path))
    events = JsonCalendarSource(events_path).fetch_events(constraints)
    context = context or get_context(config)
    logger.debug(f"Scheduling {len(tasks)} tasks against {len(events)} events")
    return generate_dependency_aware_schedule(
        tasks,
        events,
        constraints,
        context,
        preferences=config.to_preferences(),
        as_of=constraints.horizon_start,
    )


def complete_task(
    config: Config,
    task_id: str,
    tasks: list[Task],
    at: datetime | None = None,
    context: SchedulingContext | None = None,
) -> list[str]:
    """Complete a task in its plan and return the ids it unblocked."""
    context = context or get_context(config)
    return complete_task_and_auto_unblock(task_id, tasks, context, at or datetime.now())


def blocked_report(
    config: Config,
    tasks: list[Task],
    context: SchedulingContext | None = None,
) -> tuple[list[tuple[Task, str]], dict[str, int]]:
    """Blocked tasks with their reasons, plus scheduling statistics."""
    context = context or get_context(config)
    blocked = []
    for task in filter_incomplete(tasks):
        reason = get_blocked_reason(task.id, context)
        if reason:
            blocked.append((task, reason))
    return blocked, get_scheduling_statistics(tasks, context)


def load_plan_graph(config: Config, task_id: str) -> PlanGraph | None:
    """Graph of the plan covering a task, or None if it has no plan."""
    plan = get_plan_store(config).get_plan(task_id)
    if plan is None:
        return None
    return plan_to_graph(plan)


def validate_plan(config: Config, task_id: str) -> list[PlanGraphError] | None:
    """Structural problems in the stored plan covering a task; None if it has no plan."""
    plan = get_plan_store(config).get_plan(task_id)
    if plan is None:
        return None
    return plan_structure(plan).validate()


def link_steps(config: Config, task_id: str, from_step: str, to_step: str) -> PlanGraph:
    """
    Add a prerequisite edge to the plan covering a task and save it.

    Raises LookupError when the task has no plan, and PlanGraphError when
    the stored plan is already invalid or the edge is rejected. Nothing is
    saved in any of these cases.
    """
    return _edit_plan(config, task_id, lambda g: g.add_edge(from_step, to_step))


def unlink_steps(config: Config, task_id: str, from_step: str, to_step: str) -> PlanGraph:
    """Remove a prerequisite edge from the plan covering a task and save it. Raises like link_steps."""
    return _edit_plan(config, task_id, lambda g: g.remove_edge(from_step, to_step))


def _edit_plan(config: Config, task_id: str, edit) -> PlanGraph:
    store = get_plan_store(config)
    plan = store.get_plan(task_id)
    if plan is None:
        raise LookupError(f"No plan found for task {task_id}")

    # Only plans whose stored structure is valid can be edited
    errors = plan_structure(plan).validate()
    if errors:
        raise errors[0]

    graph = plan_to_graph(plan)
    edit(graph)
    store.save_plan(apply_graph_to_plan(plan, graph))
    return graph
