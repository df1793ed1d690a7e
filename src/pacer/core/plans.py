"""Assignment plans and their bridge to the prerequisite graph."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from .plan_graph import (
    NodeMetadata,
    NodeType,
    PlanEdge,
    PlanGraph,
    PlanGraphError,
    PlanGraphMetadata,
    PlanNode,
)

logger = logging.getLogger(__name__)


class PlanStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class StepType(str, Enum):
    TASK = "task"
    READING = "reading"
    PRACTICE = "practice"
    REVIEW = "review"
    RESEARCH = "research"
    WRITING = "writing"
    PREPARATION = "preparation"


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class PlanStep:
    """A single step of an assignment plan."""

    id: str
    title: str
    estimated_minutes: int = 0
    sequence_index: int = 0
    step_type: StepType = StepType.TASK
    is_completed: bool = False
    completed_at: datetime | None = None
    prerequisite_ids: list[str] = field(default_factory=list)
    task_id: str | None = None
    notes: str | None = None
    recommended_start: datetime | None = None
    due_by: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "PlanStep":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            estimated_minutes=int(data.get("estimated_minutes", 0)),
            sequence_index=int(data.get("sequence_index", 0)),
            step_type=StepType(data.get("step_type", StepType.TASK.value)),
            is_completed=bool(data.get("is_completed", False)),
            completed_at=_parse_dt(data.get("completed_at")),
            prerequisite_ids=[str(p) for p in data.get("prerequisite_ids", [])],
            task_id=data.get("task_id"),
            notes=data.get("notes"),
            recommended_start=_parse_dt(data.get("recommended_start")),
            due_by=_parse_dt(data.get("due_by")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "estimated_minutes": self.estimated_minutes,
            "sequence_index": self.sequence_index,
            "step_type": self.step_type.value,
            "is_completed": self.is_completed,
            "completed_at": _format_dt(self.completed_at),
            "prerequisite_ids": self.prerequisite_ids,
            "task_id": self.task_id,
            "notes": self.notes,
            "recommended_start": _format_dt(self.recommended_start),
            "due_by": _format_dt(self.due_by),
        }


@dataclass
class AssignmentPlan:
    """
    Persisted plan for completing an assignment.

    Each step may refer back to a task through task_id; steps without one
    belong to the plan's own assignment.
    """

    id: str
    assignment_id: str
    generated_at: datetime | None = None
    version: int = 1
    status: PlanStatus = PlanStatus.DRAFT
    steps: list[PlanStep] = field(default_factory=list)
    sequence_enforcement_enabled: bool = False

    def task_id_for(self, step: PlanStep) -> str:
        return step.task_id or self.assignment_id

    def task_ids(self) -> list[str]:
        """Every task this plan refers to, in step order."""
        seen = []
        for step in self.steps:
            task_id = self.task_id_for(step)
            if task_id not in seen:
                seen.append(task_id)
        return seen

    @property
    def total_estimated_minutes(self) -> int:
        return sum(s.estimated_minutes for s in self.steps)

    @property
    def completed_steps_count(self) -> int:
        return sum(1 for s in self.steps if s.is_completed)

    @property
    def progress_percentage(self) -> float:
        if not self.steps:
            return 0.0
        return self.completed_steps_count / len(self.steps) * 100

    @property
    def is_fully_completed(self) -> bool:
        return bool(self.steps) and all(s.is_completed for s in self.steps)

    @property
    def sorted_steps(self) -> list[PlanStep]:
        return sorted(self.steps, key=lambda s: s.sequence_index)

    @classmethod
    def from_dict(cls, data: dict) -> "AssignmentPlan":
        return cls(
            id=str(data["id"]),
            assignment_id=str(data["assignment_id"]),
            generated_at=_parse_dt(data.get("generated_at")),
            version=int(data.get("version", 1)),
            status=PlanStatus(data.get("status", PlanStatus.DRAFT.value)),
            steps=[PlanStep.from_dict(s) for s in data.get("steps", [])],
            sequence_enforcement_enabled=bool(data.get("sequence_enforcement_enabled", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "assignment_id": self.assignment_id,
            "generated_at": _format_dt(self.generated_at),
            "version": self.version,
            "status": self.status.value,
            "steps": [s.to_dict() for s in self.steps],
            "sequence_enforcement_enabled": self.sequence_enforcement_enabled,
        }


def _node_for_step(plan: AssignmentPlan, step: PlanStep) -> PlanNode:
    return PlanNode(
        id=step.id,
        title=step.title,
        assignment_id=plan.task_id_for(step),
        node_type=NodeType(step.step_type.value),
        sort_index=step.sequence_index,
        estimated_minutes=step.estimated_minutes,
        is_completed=step.is_completed,
        completed_at=step.completed_at,
        metadata=NodeMetadata(
            notes=step.notes,
            recommended_start=step.recommended_start,
            due_by=step.due_by,
        ),
    )


def _empty_graph(plan: AssignmentPlan) -> PlanGraph:
    return PlanGraph(
        id=plan.id,
        metadata=PlanGraphMetadata(
            name=f"Plan for assignment {plan.assignment_id}",
            created_at=plan.generated_at,
            version=plan.version,
        ),
    )


def plan_to_graph(plan: AssignmentPlan) -> PlanGraph:
    """
    Build the prerequisite graph for a plan.

    Steps and prerequisites that would make the graph invalid (duplicate
    ids, unknown or cyclic prerequisites) are skipped with a warning.
    """
    graph = _empty_graph(plan)

    for step in plan.steps:
        try:
            graph.add_node(_node_for_step(plan, step))
        except PlanGraphError as e:
            logger.warning(f"Skipping step in plan {plan.id}: {e}")

    for step in plan.steps:
        for prereq_id in step.prerequisite_ids:
            try:
                graph.add_edge(prereq_id, step.id)
            except PlanGraphError as e:
                logger.warning(f"Skipping prerequisite in plan {plan.id}: {e}")

    # Building is not a revision of its own
    graph.metadata.version = plan.version
    return graph


def plan_structure(plan: AssignmentPlan) -> PlanGraph:
    """Graph exactly as stored, without validation, so problems can be reported."""
    graph = _empty_graph(plan)
    graph.nodes = [_node_for_step(plan, step) for step in plan.steps]
    graph.edges = [
        PlanEdge(prereq_id, step.id) for step in plan.steps for prereq_id in step.prerequisite_ids
    ]
    return graph


def apply_graph_to_plan(plan: AssignmentPlan, graph: PlanGraph) -> AssignmentPlan:
    """Copy completion state, ordering and prerequisites from a graph back to its plan."""
    steps = []
    for step in plan.steps:
        node = graph.get_node(step.id)
        if node is None:
            steps.append(step)
            continue
        steps.append(
            replace(
                step,
                is_completed=node.is_completed,
                completed_at=node.completed_at,
                sequence_index=node.sort_index,
                prerequisite_ids=[p.id for p in graph.get_prerequisites(node.id)],
            )
        )
    return replace(plan, steps=steps, version=graph.metadata.version)
