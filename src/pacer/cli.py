"""Pacer CLI - study block scheduler."""

import json
import logging
import sys
from datetime import date, datetime

import click

from .config import load_config
from .core.allocator import ScheduleResult
from .core.plan_graph import PlanGraphError
from .core.tasks import Task
from .adapters.file_plan_store import PlanStoreError
from .workflows import (
    blocked_report,
    build_schedule,
    complete_task,
    link_steps,
    load_plan_graph,
    load_tasks,
    unlink_steps,
    validate_plan,
)


@click.group()
@click.version_option(package_name="pacer")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Pacer - study block scheduler."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


def _load_tasks_or_exit(path: str) -> list[Task]:
    try:
        return load_tasks(path)
    except (OSError, ValueError, KeyError) as e:
        click.echo(f"Error: could not read tasks from {path}: {e}", err=True)
        sys.exit(1)


def _show_schedule(result: ScheduleResult, tasks: list[Task], as_json: bool) -> None:
    """Shared schedule display logic."""
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    titles = {t.id: t.title for t in tasks}
    if not result.blocks:
        click.echo("No blocks scheduled.")

    current_date = None
    for block in result.blocks:
        block_date = block.start.date()
        if block_date != current_date:
            if current_date is not None:
                click.echo()
            click.echo(f"### {block_date.strftime('%A, %B %d')}")
            current_date = block_date
        click.echo(f"  {block.format():12} {titles.get(block.task_id, block.task_id)}")

    if result.unscheduled_tasks:
        click.echo("\nUnscheduled:")
        for task in result.unscheduled_tasks:
            click.echo(f"  • {task.title}")

    if result.log:
        click.echo("\nLog:")
        for line in result.log:
            click.echo(f"  {line}")


@main.command()
@click.argument("tasks_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--events", "events_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="JSON file of fixed events")
@click.option("--blackouts", "blackouts_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="JSON file of blackout windows")
@click.option("--start", "start_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="First day (YYYY-MM-DD), defaults to today")
@click.option("--days", type=int, default=None, help="Horizon length in days")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def schedule(tasks_file: str, events_file: str | None, blackouts_file: str | None,
             start_date: datetime | None, days: int | None, as_json: bool):
    """Schedule study blocks for the tasks in TASKS_FILE."""
    config = load_config()
    tasks = _load_tasks_or_exit(tasks_file)
    start = start_date.date() if start_date else date.today()

    try:
        result = build_schedule(config, tasks, start, days, events_file, blackouts_file)
    except (PlanStoreError, OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _show_schedule(result, tasks, as_json)


@main.command()
@click.argument("task_id")
@click.argument("tasks_file", type=click.Path(exists=True, dir_okay=False))
def complete(task_id: str, tasks_file: str):
    """Mark TASK_ID complete and list the tasks it unblocks."""
    config = load_config()
    tasks = _load_tasks_or_exit(tasks_file)

    try:
        unblocked = complete_task(config, task_id, tasks, datetime.now())
    except PlanStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not unblocked:
        click.echo("No tasks unblocked.")
        return

    titles = {t.id: t.title for t in tasks}
    click.echo("Unblocked:")
    for unblocked_id in unblocked:
        click.echo(f"  ✓ {titles.get(unblocked_id, unblocked_id)}")


@main.command()
@click.argument("tasks_file", type=click.Path(exists=True, dir_okay=False))
def blocked(tasks_file: str):
    """List tasks blocked by incomplete prerequisites."""
    config = load_config()
    tasks = _load_tasks_or_exit(tasks_file)

    try:
        blocked_tasks, stats = blocked_report(config, tasks)
    except PlanStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not blocked_tasks:
        click.echo("Nothing is blocked.")
    for task, reason in blocked_tasks:
        click.echo(f"  ✗ {task.title} - {reason}")

    click.echo(
        f"\n{stats['schedulable_tasks']} schedulable, {stats['blocked_tasks']} blocked, "
        f"{stats['completed_tasks']} completed of {stats['total_tasks']} tasks"
    )


@main.group()
def plan():
    """Inspect and edit assignment plans."""
    pass


@plan.command("show")
@click.argument("task_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def plan_show(task_id: str, as_json: bool):
    """Show the plan covering TASK_ID in dependency order."""
    config = load_config()
    try:
        graph = load_plan_graph(config, task_id)
    except PlanStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if graph is None:
        click.echo(f"No plan for task {task_id}.")
        return

    if as_json:
        click.echo(json.dumps(graph.to_dict(), indent=2))
        return

    ordered = graph.topological_sort() or graph.nodes
    for node in ordered:
        if node.is_completed:
            marker = "✓"
        elif graph.is_node_blocked(node.id):
            marker = "✗"
        else:
            marker = " "
        click.echo(f"[{marker}] {node.title} ({node.estimated_minutes} min)")

    stats = graph.get_statistics()
    click.echo(
        f"\n{stats.completed_nodes}/{stats.total_nodes} done ({stats.completion_percentage:.0f}%), "
        f"critical path {stats.longest_path} steps, {stats.estimated_total_minutes} min total"
    )


@plan.command("link")
@click.argument("task_id")
@click.argument("from_step")
@click.argument("to_step")
def plan_link(task_id: str, from_step: str, to_step: str):
    """Make TO_STEP depend on FROM_STEP in the plan covering TASK_ID."""
    config = load_config()
    try:
        link_steps(config, task_id, from_step, to_step)
    except (LookupError, PlanGraphError, PlanStoreError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Linked {from_step} → {to_step}")


@plan.command("unlink")
@click.argument("task_id")
@click.argument("from_step")
@click.argument("to_step")
def plan_unlink(task_id: str, from_step: str, to_step: str):
    """Remove the dependency of TO_STEP on FROM_STEP."""
    config = load_config()
    try:
        unlink_steps(config, task_id, from_step, to_step)
    except (LookupError, PlanGraphError, PlanStoreError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Unlinked {from_step} → {to_step}")


@plan.command("validate")
@click.argument("task_id")
def plan_validate(task_id: str):
    """Check the plan covering TASK_ID for structural problems."""
    config = load_config()
    try:
        errors = validate_plan(config, task_id)
    except PlanStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if errors is None:
        click.echo(f"No plan for task {task_id}.")
        return

    if not errors:
        click.echo("Plan is valid.")
        return
    for error in errors:
        click.echo(f"  ✗ {error}")
    sys.exit(1)


if __name__ == "__main__":
    main()
