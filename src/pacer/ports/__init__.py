"""Ports - interfaces/protocols for external dependencies."""

from .plan_store import PlanStore
from .calendar_source import CalendarSource

__all__ = [
    "PlanStore",
    "CalendarSource",
]
