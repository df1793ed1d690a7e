"""In-memory plan storage adapter."""

import copy

from pacer.core.plans import AssignmentPlan


class InMemoryPlanStore:
    """
    Dictionary-backed plan storage.

    Implements PlanStore protocol. Plans are copied on the way in and out so
    callers cannot change stored state without saving, and every save bumps
    the plan's version.
    """

    def __init__(self, plans: list[AssignmentPlan] | None = None):
        self._plans: dict[str, AssignmentPlan] = {}
        self._plan_by_task: dict[str, str] = {}
        for plan in plans or []:
            self.save_plan(plan)

    def get_plan(self, task_id: str) -> AssignmentPlan | None:
        plan_id = self._plan_by_task.get(task_id)
        if plan_id is None:
            return None
        return copy.deepcopy(self._plans[plan_id])

    def save_plan(self, plan: AssignmentPlan) -> AssignmentPlan:
        stored = copy.deepcopy(plan)
        existing = self._plans.get(plan.id)
        if existing is not None:
            stored.version = max(plan.version, existing.version + 1)
            self._unindex(plan.id)
        self._plans[plan.id] = stored
        for task_id in stored.task_ids():
            self._plan_by_task[task_id] = stored.id
        return copy.deepcopy(stored)

    def delete_plan(self, task_id: str) -> None:
        plan_id = self._plan_by_task.get(task_id)
        if plan_id is None:
            return
        self._unindex(plan_id)
        del self._plans[plan_id]

    def all_plans(self) -> list[AssignmentPlan]:
        return [copy.deepcopy(p) for p in self._plans.values()]

    def _unindex(self, plan_id: str) -> None:
        self._plan_by_task = {t: p for t, p in self._plan_by_task.items() if p != plan_id}
