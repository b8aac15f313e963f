"""kopsai schedule - Cron and interval scheduling of task files."""

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.group()
def schedule():
    """Schedule task files."""


@schedule.command("add")
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("cron_expr")
@click.option("--id", "schedule_id", help="Schedule identifier (default: task file name)")
def add_schedule(task_file, cron_expr, schedule_id):
    """Run TASK_FILE on a cron schedule, e.g. "*/5 * * * *"."""
    from kopsai.scheduling import CronScheduler

    if not CronScheduler().schedule(task_file, cron_expr, schedule_id):
        console.print(f"[red]Failed to schedule {task_file} with '{cron_expr}'[/red]")
        raise SystemExit(1)
    console.print(f"[green]Scheduled[/green] {task_file}: {cron_expr}")


@schedule.command("remove")
@click.argument("schedule_id")
def remove_schedule(schedule_id):
    """Remove a cron schedule."""
    from kopsai.scheduling import CronScheduler

    if CronScheduler().unschedule(schedule_id):
        console.print(f"Removed schedule {schedule_id}")
    else:
        console.print(f"[yellow]No schedule named {schedule_id}[/yellow]")


@schedule.command("list")
def list_schedules():
    """List cron schedules."""
    from kopsai.scheduling import CronScheduler

    schedules = CronScheduler().list_scheduled()
    if not schedules:
        console.print("No schedules.")
        return

    table = Table(title="Schedules")
    table.add_column("ID", style="cyan")
    table.add_column("Cron")
    table.add_column("Task file")
    for entry in schedules:
        table.add_row(
            str(entry.get("schedule_id", "")),
            str(entry.get("cron_expr", "")),
            str(entry.get("task_file", "")),
        )
    console.print(table)


@schedule.command("every")
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("seconds", type=click.FloatRange(min=1))
@click.option("--count", type=click.IntRange(min=1), help="Stop after this many runs")
@click.pass_obj
def run_every(state, task_file, seconds, count):
    """Run TASK_FILE every SECONDS seconds in the foreground (Ctrl+C to stop)."""
    from kopsai.scheduling import IntervalRunner

    def report(summary):
        if summary.success:
            console.print(
                f"Run complete: {summary.succeeded}/{summary.total} tasks succeeded"
                if not summary.script
                else "Script run complete"
            )
        else:
            console.print(f"[red]Run failed:[/red] {summary.error}")

    runner = IntervalRunner(
        task_file,
        seconds,
        context=state.context,
        registry=state.registry,
        on_result=report,
        max_runs=count,
    )
    console.print(f"Running {task_file} every {seconds:g}s")
    runner.start()
    try:
        while runner.is_alive():
            runner.join(timeout=0.5)
    except KeyboardInterrupt:
        console.print("Stopping...")
        runner.stop()
        runner.join()
