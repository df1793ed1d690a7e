"""Tests for configuration loading."""

from datetime import date, datetime

import pytest

from pacer.config import Config, load_config


@pytest.fixture
def write_config(tmp_path):
    def _write(text: str):
        path = tmp_path / "pacer.conf"
        path.write_text(text)
        return path
    return _write


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.conf")
        assert config == Config()

    def test_reads_values(self, write_config):
        path = write_config(
            "# study settings\n"
            "DAY_HOURS=09:00-17:00\n"
            "HORIZON_DAYS=5\n"
            "MAX_MINUTES_PER_DAY=180  # weekdays\n"
            'PLAN_DIR="~/plans"  # quoted\n'
            "MIN_GAP_MINUTES = 10\n"
            "COURSE_BIAS=math:0.2, cs:0.1\n"
            "ENFORCE_DEPENDENCIES=no\n"
        )

        config = load_config(path)

        assert config.day_bounds() == (9, 17)
        assert config.horizon_days == 5
        assert config.max_minutes_per_day == 180
        assert config.plan_dir == "~/plans"
        assert config.min_gap_minutes == 10
        assert config.course_bias == {"math": 0.2, "cs": 0.1}
        assert config.enforce_dependencies is False

    def test_energy_profile_overrides_listed_hours(self, write_config):
        config = load_config(write_config("ENERGY_PROFILE=9:0.9,22:0.6\n"))
        assert config.energy_profile[9] == 0.9
        assert config.energy_profile[22] == 0.6
        assert config.energy_profile[12] == 0.7

    def test_invalid_value_keeps_default(self, write_config, caplog):
        config = load_config(write_config("HORIZON_DAYS=soon\nMAX_MINUTES_PER_BLOCK=90\n"))

        assert config.horizon_days == 7
        assert config.max_minutes_per_block == 90
        assert "HORIZON_DAYS" in caplog.text

    def test_unknown_keys_are_ignored(self, write_config):
        assert load_config(write_config("COLOR=blue\nnot a setting\n")) == Config()


class TestConfigConversions:
    def test_to_constraints(self):
        config = Config(day_hours="09:00-17:00", max_minutes_per_day=200, min_gap_minutes=5)

        constraints = config.to_constraints(date(2025, 1, 15), days=3)

        assert constraints.horizon_start == datetime(2025, 1, 15, 0, 0)
        assert constraints.horizon_end == datetime(2025, 1, 17, 23, 59)
        assert (constraints.day_start_hour, constraints.day_end_hour) == (9, 17)
        assert constraints.max_study_minutes_per_day == 200
        assert constraints.min_gap_between_blocks_minutes == 5
        assert constraints.energy_profile == {}

    def test_to_constraints_uses_configured_horizon(self):
        constraints = Config(horizon_days=2).to_constraints(date(2025, 1, 15))
        assert constraints.horizon_end == datetime(2025, 1, 16, 23, 59)

    def test_to_preferences(self):
        config = Config(weight_urgency=0.6, course_bias={"math": 0.1})
        config.energy_profile[9] = 0.95

        prefs = config.to_preferences()

        assert prefs.w_urgency == 0.6
        assert prefs.course_bias == {"math": 0.1}
        assert prefs.learned_energy_profile[9] == 0.95
