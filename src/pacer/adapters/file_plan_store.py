"""File-based plan storage adapter."""

import json
import logging
from dataclasses import replace
from pathlib import Path

from pacer.core.plans import AssignmentPlan

logger = logging.getLogger(__name__)


class PlanStoreError(Exception):
    """Raised when a stored plan cannot be read."""

    pass


class FilePlanStore:
    """
    File-based plan storage.

    Implements PlanStore protocol. Each plan gets a JSON file named after
    its id; lookups by task id scan the directory.
    """

    def __init__(self, plan_dir: Path | str):
        self.plan_dir = Path(plan_dir).expanduser()
        self.plan_dir.mkdir(parents=True, exist_ok=True)

    def _path_for_plan(self, plan_id: str) -> Path:
        """Get the file path for a given plan."""
        return self.plan_dir / f"{plan_id}.json"

    def _read(self, path: Path) -> AssignmentPlan:
        try:
            return AssignmentPlan.from_dict(json.loads(path.read_text()))
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            raise PlanStoreError(f"Corrupt plan file {path.name}: {e}") from e

    def all_plans(self) -> list[AssignmentPlan]:
        """Every stored plan, ordered by file name."""
        return [self._read(path) for path in sorted(self.plan_dir.glob("*.json"))]

    def get_plan(self, task_id: str) -> AssignmentPlan | None:
        for plan in self.all_plans():
            if task_id in plan.task_ids():
                return plan
        return None

    def save_plan(self, plan: AssignmentPlan) -> AssignmentPlan:
        path = self._path_for_plan(plan.id)
        if path.exists():
            existing = self._read(path)
            plan = replace(plan, version=max(plan.version, existing.version + 1))
        path.write_text(json.dumps(plan.to_dict(), indent=2))
        logger.debug(f"Saved plan {plan.id} (version {plan.version})")
        return plan

    def delete_plan(self, task_id: str) -> None:
        plan = self.get_plan(task_id)
        if plan is None:
            return
        self._path_for_plan(plan.id).unlink(missing_ok=True)
