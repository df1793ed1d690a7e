"""Tests for the shared workflow layer."""

import json
from datetime import date, datetime
from pathlib import Path

import pytest

from pacer.config import PACER_HOME, Config
from pacer.core.plan_graph import CycleDetectedError, OrphanEdgeError
from pacer.core.plans import AssignmentPlan, PlanStep
from pacer.workflows import (
    blocked_report,
    build_schedule,
    complete_task,
    get_plan_store,
    link_steps,
    load_blackouts,
    load_plan_graph,
    load_tasks,
    unlink_steps,
    validate_plan,
)


@pytest.fixture
def config(tmp_path):
    return Config(day_hours="09:00-17:00", plan_dir=str(tmp_path / "plans"))


@pytest.fixture
def tasks_file(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([
        {"id": "t1", "title": "Read chapter 1", "estimated_minutes": 60},
        {"id": "t2", "title": "Problem set 1", "estimated_minutes": 90, "type": "homework"},
    ]))
    return path


@pytest.fixture
def saved_plan(config):
    plan = AssignmentPlan(
        id="plan-hw1",
        assignment_id="hw1",
        steps=[
            PlanStep(id="s1", title="Read chapter 1", task_id="t1"),
            PlanStep(id="s2", title="Problem set 1", task_id="t2", prerequisite_ids=["s1"]),
        ],
        sequence_enforcement_enabled=True,
    )
    return get_plan_store(config).save_plan(plan)


class TestGetPlanStore:
    def test_uses_configured_dir(self, config, tmp_path):
        assert get_plan_store(config).plan_dir == tmp_path / "plans"

    def test_falls_back_to_default(self, monkeypatch, tmp_path):
        monkeypatch.setattr("pacer.workflows.PACER_HOME", tmp_path)
        store = get_plan_store(Config(plan_dir=""))
        assert store.plan_dir == tmp_path / "plans"

    def test_default_home(self):
        assert isinstance(PACER_HOME, Path)


class TestLoaders:
    def test_load_tasks(self, tasks_file):
        tasks = load_tasks(tasks_file)
        assert [t.id for t in tasks] == ["t1", "t2"]
        assert tasks[1].task_type.value == "practice_homework"

    def test_load_blackouts(self, tmp_path):
        path = tmp_path / "blackouts.json"
        path.write_text(json.dumps([{"start": "2025-01-15T12:00:00", "end": "2025-01-15T13:00:00"}]))
        windows = load_blackouts(path)
        assert windows[0].start == datetime(2025, 1, 15, 12, 0)

    def test_no_blackouts_file(self):
        assert load_blackouts(None) == []


class TestBuildSchedule:
    def test_blocked_task_is_held_back(self, config, tasks_file, saved_plan):
        result = build_schedule(config, load_tasks(tasks_file), date(2025, 1, 15), days=1)

        assert {b.task_id for b in result.blocks} == {"t1"}
        assert result.unscheduled_ids() == ["t2"]

    def test_events_and_blackouts_are_applied(self, config, tasks_file, tmp_path):
        events = tmp_path / "events.json"
        events.write_text(json.dumps([
            {"id": "e1", "title": "Lecture", "start": "2025-01-15T09:00:00", "end": "2025-01-15T10:00:00"},
        ]))
        blackouts = tmp_path / "blackouts.json"
        blackouts.write_text(json.dumps([{"start": "2025-01-15T10:00:00", "end": "2025-01-15T11:00:00"}]))

        result = build_schedule(
            config, load_tasks(tasks_file), date(2025, 1, 15), 1, events, blackouts
        )

        assert result.blocks
        assert min(b.start for b in result.blocks) >= datetime(2025, 1, 15, 11, 0)


    def test_configured_energy_profile_steers_placement(self, config, tasks_file):
        config.energy_profile[13] = 0.95

        result = build_schedule(config, load_tasks(tasks_file), date(2025, 1, 15), days=1)

        assert min(b.start for b in result.blocks) == datetime(2025, 1, 15, 13, 0)


class TestCompleteTask:
    def test_unblocks_and_persists(self, config, tasks_file, saved_plan):
        at = datetime(2025, 1, 15, 12, 0)

        unblocked = complete_task(config, "t1", load_tasks(tasks_file), at)

        assert unblocked == ["t2"]
        stored = get_plan_store(config).get_plan("t1")
        assert stored.steps[0].completed_at == at
        assert stored.version == saved_plan.version + 1


class TestBlockedReport:
    def test_lists_blocked_tasks(self, config, tasks_file, saved_plan):
        blocked, stats = blocked_report(config, load_tasks(tasks_file))

        assert [(t.id, reason) for t, reason in blocked] == [("t2", "Blocked by: Read chapter 1")]
        assert stats["blocked_tasks"] == 1


class TestPlanEditing:
    def test_load_plan_graph(self, config, saved_plan):
        graph = load_plan_graph(config, "t2")
        assert [e.key for e in graph.edges] == [("s1", "s2")]
        assert load_plan_graph(config, "nope") is None

    def test_unlink_then_link(self, config, saved_plan):
        unlink_steps(config, "t1", "s1", "s2")
        assert load_plan_graph(config, "t1").edges == []

        link_steps(config, "t1", "s2", "s1")
        assert [e.key for e in load_plan_graph(config, "t1").edges] == [("s2", "s1")]

    def test_rejected_link_is_not_saved(self, config, saved_plan):
        with pytest.raises(CycleDetectedError):
            link_steps(config, "t1", "s2", "s1")

        stored = get_plan_store(config).get_plan("t1")
        assert stored.version == saved_plan.version
        assert stored.steps[0].prerequisite_ids == []

    def test_invalid_stored_plan_is_not_rewritten(self, config, saved_plan):
        store = get_plan_store(config)
        plan = store.get_plan("t1")
        plan.steps[1].prerequisite_ids = ["s1", "ghost"]
        stored = store.save_plan(plan)

        with pytest.raises(OrphanEdgeError):
            unlink_steps(config, "t1", "s1", "s2")

        reloaded = store.get_plan("t1")
        assert reloaded.steps[1].prerequisite_ids == ["s1", "ghost"]
        assert reloaded.version == stored.version

    def test_missing_plan(self, config):
        with pytest.raises(LookupError):
            link_steps(config, "nope", "a", "b")

    def test_validate(self, config, saved_plan):
        assert validate_plan(config, "t1") == []
        assert validate_plan(config, "nope") is None

    def test_validate_reports_stored_cycle(self, config, saved_plan):
        store = get_plan_store(config)
        plan = store.get_plan("t1")
        plan.steps[0].prerequisite_ids = ["s2"]
        store.save_plan(plan)

        errors = validate_plan(config, "t1")

        assert [type(e) for e in errors] == [CycleDetectedError]
