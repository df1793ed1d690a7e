"""Adapters - I/O implementations of ports."""

from .memory_plan_store import InMemoryPlanStore
from .file_plan_store import FilePlanStore, PlanStoreError
from .json_calendar import JsonCalendarSource

__all__ = [
    "InMemoryPlanStore",
    "FilePlanStore",
    "PlanStoreError",
    "JsonCalendarSource",
]
