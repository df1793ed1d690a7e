"""Configuration management for Pacer."""

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import Path

from .core.calendar import BlackoutWindow, Constraints
from .core.priority import SchedulerPreferences, default_energy_profile

logger = logging.getLogger(__name__)

PACER_HOME = Path(os.environ.get("PACER_HOME", Path.home() / "pacer"))
CONFIG_FILE = PACER_HOME / "config" / "pacer.conf"


@dataclass
class Config:
    """Pacer configuration."""

    day_hours: str = "08:00-20:00"
    horizon_days: int = 7
    max_minutes_per_day: int = 240
    max_minutes_per_block: int = 120
    min_gap_minutes: int = 0
    energy_profile: dict[int, float] = field(default_factory=default_energy_profile)
    weight_urgency: float = 0.45
    weight_importance: float = 0.35
    weight_difficulty: float = 0.10
    weight_size: float = 0.10
    course_bias: dict[str, float] = field(default_factory=dict)
    plan_dir: str = ""
    enforce_dependencies: bool = True

    def day_bounds(self) -> tuple[int, int]:
        """Parse day_hours into (start_hour, end_hour)."""
        start_str, end_str = self.day_hours.split("-")
        return int(start_str.split(":")[0]), int(end_str.split(":")[0])

    def to_constraints(
        self,
        start: date,
        days: int | None = None,
        blackout_windows: list[BlackoutWindow] | None = None,
    ) -> Constraints:
        """Constraints for a run covering `days` days from `start`."""
        days = days or self.horizon_days
        day_start, day_end = self.day_bounds()
        horizon_start = datetime.combine(start, time(0, 0))
        return Constraints(
            horizon_start=horizon_start,
            horizon_end=horizon_start + timedelta(days=max(1, days) - 1, hours=23, minutes=59),
            day_start_hour=day_start,
            day_end_hour=day_end,
            max_study_minutes_per_day=self.max_minutes_per_day,
            max_study_minutes_per_block=self.max_minutes_per_block,
            min_gap_between_blocks_minutes=self.min_gap_minutes,
            blackout_windows=blackout_windows or [],
        )

    def to_preferences(self) -> SchedulerPreferences:
        return SchedulerPreferences(
            w_urgency=self.weight_urgency,
            w_importance=self.weight_importance,
            w_difficulty=self.weight_difficulty,
            w_size=self.weight_size,
            course_bias=dict(self.course_bias),
            learned_energy_profile=dict(self.energy_profile),
        )


def _parse_pairs(value: str) -> list[tuple[str, float]]:
    """Parse "key:number,key:number" lists."""
    pairs = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        key, _, number = entry.partition(":")
        pairs.append((key.strip(), float(number)))
    return pairs


def _parse_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


def load_config(path: Path | None = None) -> Config:
    """Load configuration from pacer.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value.startswith('"') or value.startswith("'"):
            quote = value[0]
            end_quote = value.find(quote, 1)
            value = value[1:end_quote] if end_quote != -1 else value[1:]
        elif "#" in value:
            value = value.split("#")[0].strip()

        try:
            match key:
                case "day_hours":
                    config.day_hours = value
                case "horizon_days":
                    config.horizon_days = int(value)
                case "max_minutes_per_day":
                    config.max_minutes_per_day = int(value)
                case "max_minutes_per_block":
                    config.max_minutes_per_block = int(value)
                case "min_gap_minutes":
                    config.min_gap_minutes = int(value)
                case "energy_profile":
                    # Format: "9:0.7,10:0.8" - listed hours override the default curve
                    for hour, score in _parse_pairs(value):
                        config.energy_profile[int(hour)] = score
                case "weight_urgency":
                    config.weight_urgency = float(value)
                case "weight_importance":
                    config.weight_importance = float(value)
                case "weight_difficulty":
                    config.weight_difficulty = float(value)
                case "weight_size":
                    config.weight_size = float(value)
                case "course_bias":
                    config.course_bias = dict(_parse_pairs(value))
                case "plan_dir":
                    config.plan_dir = value
                case "enforce_dependencies":
                    config.enforce_dependencies = _parse_bool(value)
        except ValueError as e:
            logger.warning(f"Ignoring invalid value for {key.upper()}: {value!r} ({e})")

    return config
