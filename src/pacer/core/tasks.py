"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class TaskType(str, Enum):
    """Kind of work a task represents."""

    PROJECT = "project"
    EXAM = "exam"
    QUIZ = "quiz"
    PRACTICE_HOMEWORK = "practice_homework"
    READING = "reading"
    REVIEW = "review"

    @classmethod
    def parse(cls, value: str | None) -> "TaskType":
        """Parse a task type, mapping legacy names and falling back to homework."""
        legacy = {
            "homework": cls.PRACTICE_HOMEWORK,
            "problem_set": cls.PRACTICE_HOMEWORK,
            "exam_prep": cls.EXAM,
            "meeting": cls.PROJECT,
        }
        if not value:
            return cls.PRACTICE_HOMEWORK
        if value in legacy:
            return legacy[value]
        try:
            return cls(value)
        except ValueError:
            return cls.PRACTICE_HOMEWORK


@dataclass
class Task:
    """A schedulable piece of study work with an estimated duration."""

    id: str
    title: str
    estimated_minutes: int
    min_block_minutes: int = 30
    max_block_minutes: int = 90
    due: datetime | None = None
    difficulty: float = 0.5
    importance: float = 0.5
    course_id: str | None = None
    task_type: TaskType = TaskType.PRACTICE_HOMEWORK
    is_completed: bool = False

    def days_until_due(self, as_of: datetime) -> float | None:
        """Fractional days until the due date, floored at zero. None without a due date."""
        if not self.due:
            return None
        return max(0.0, (self.due - as_of).total_seconds() / 86400.0)

    def completed(self) -> "Task":
        """Copy of this task marked completed."""
        return replace(self, is_completed=True)

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from its JSON representation."""
        due = None
        if data.get("due"):
            due = datetime.fromisoformat(data["due"])
        return cls(
            id=str(data["id"]),
            title=data["title"],
            estimated_minutes=int(data["estimated_minutes"]),
            min_block_minutes=int(data.get("min_block_minutes", 30)),
            max_block_minutes=int(data.get("max_block_minutes", 90)),
            due=due,
            difficulty=float(data.get("difficulty", 0.5)),
            importance=float(data.get("importance", 0.5)),
            course_id=data.get("course_id"),
            task_type=TaskType.parse(data.get("type")),
            is_completed=bool(data.get("is_completed", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "estimated_minutes": self.estimated_minutes,
            "min_block_minutes": self.min_block_minutes,
            "max_block_minutes": self.max_block_minutes,
            "due": self.due.isoformat() if self.due else None,
            "difficulty": self.difficulty,
            "importance": self.importance,
            "course_id": self.course_id,
            "type": self.task_type.value,
            "is_completed": self.is_completed,
        }


def filter_incomplete(tasks: list[Task]) -> list[Task]:
    """Filter to tasks that still need work."""
    return [t for t in tasks if not t.is_completed]


def find_task(tasks: list[Task], task_id: str) -> Task | None:
    """Look up a task by id."""
    for task in tasks:
        if task.id == task_id:
            return task
    return None
