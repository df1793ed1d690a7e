"""Plan store interface."""

from typing import Protocol

from pacer.core.plans import AssignmentPlan


class PlanStore(Protocol):
    """Interface for persisting assignment plans, looked up by task id."""

    def get_plan(self, task_id: str) -> AssignmentPlan | None:
        """Plan covering a task, or None if the task has no plan."""
        ...

    def save_plan(self, plan: AssignmentPlan) -> AssignmentPlan:
        """Insert or replace a plan. Returns the stored revision."""
        ...

    def delete_plan(self, task_id: str) -> None:
        """Delete the plan covering a task, if any."""
        ...
