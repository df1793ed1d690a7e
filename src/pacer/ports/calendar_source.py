"""Calendar source interface."""

from typing import Protocol

from pacer.core.calendar import Constraints, FixedEvent


class CalendarSource(Protocol):
    """Interface for supplying already-resolved fixed events."""

    def fetch_events(self, constraints: Constraints) -> list[FixedEvent]:
        """Fetch events touching the scheduling horizon."""
        ...
