"""Functional core - pure scheduling and dependency logic with no I/O."""

from .tasks import Task, TaskType, filter_incomplete, find_task
from .calendar import (
    BlackoutWindow,
    CandidateBlock,
    Constraints,
    EventSource,
    FixedEvent,
    FreeInterval,
    build_free_intervals,
    generate_candidates,
)
from .priority import SchedulerPreferences, compute_priority, sort_by_priority
from .allocator import (
    MAX_ALLOCATION_ATTEMPTS,
    ScheduledBlock,
    ScheduleResult,
    allocate,
    generate_schedule,
    merge_adjacent_blocks,
)
from .plan_graph import (
    CycleDetectedError,
    DuplicateEdgeError,
    DuplicateNodeIdError,
    InvalidNodeReferenceError,
    OrphanEdgeError,
    PlanEdge,
    PlanGraph,
    PlanGraphError,
    PlanNode,
    SelfLoopError,
)
from .plans import AssignmentPlan, PlanStep, apply_graph_to_plan, plan_to_graph
from .dependencies import (
    PlanGraphCache,
    SchedulingContext,
    complete_task_and_auto_unblock,
    generate_dependency_aware_schedule,
    get_blocked_reason,
    get_newly_unblocked_tasks,
    get_schedulable_tasks,
    remove_invalid_blocks,
)

__all__ = [
    # Tasks
    "Task",
    "TaskType",
    "filter_incomplete",
    "find_task",
    # Calendar
    "BlackoutWindow",
    "CandidateBlock",
    "Constraints",
    "EventSource",
    "FixedEvent",
    "FreeInterval",
    "build_free_intervals",
    "generate_candidates",
    # Priority
    "SchedulerPreferences",
    "compute_priority",
    "sort_by_priority",
    # Allocation
    "MAX_ALLOCATION_ATTEMPTS",
    "ScheduledBlock",
    "ScheduleResult",
    "allocate",
    "generate_schedule",
    "merge_adjacent_blocks",
    # Plan graph
    "CycleDetectedError",
    "DuplicateEdgeError",
    "DuplicateNodeIdError",
    "InvalidNodeReferenceError",
    "OrphanEdgeError",
    "PlanEdge",
    "PlanGraph",
    "PlanGraphError",
    "PlanNode",
    "SelfLoopError",
    # Plans
    "AssignmentPlan",
    "PlanStep",
    "apply_graph_to_plan",
    "plan_to_graph",
    # Dependencies
    "PlanGraphCache",
    "SchedulingContext",
    "complete_task_and_auto_unblock",
    "generate_dependency_aware_schedule",
    "get_blocked_reason",
    "get_newly_unblocked_tasks",
    "get_schedulable_tasks",
    "remove_invalid_blocks",
]
