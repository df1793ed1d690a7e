"""JSON calendar adapter - fixed events exported to a file."""

import json
from pathlib import Path

from pacer.core.calendar import (
    Constraints,
    FixedEvent,
    filter_events_in_horizon,
    sort_events_by_start,
)


class JsonCalendarSource:
    """
    Reads fixed events from a JSON list.

    Implements CalendarSource protocol. Recurring events must already be
    expanded by whatever produced the file.
    """

    def __init__(self, path: Path | str | None):
        self.path = Path(path).expanduser() if path else None

    def fetch_events(self, constraints: Constraints) -> list[FixedEvent]:
        """
        Fetch events touching the scheduling horizon.

        No path means no events. A path that does not exist raises
        FileNotFoundError.
        """
        if self.path is None:
            return []
        if not self.path.exists():
            raise FileNotFoundError(f"Events file not found: {self.path}")
        data = json.loads(self.path.read_text())
        events = [FixedEvent.from_dict(item) for item in data]
        return sort_events_by_start(filter_events_in_horizon(events, constraints))
