"""kopsai run / check - Execute task files and system checks."""

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _print_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _preview(value, limit: int = 80) -> str:
    text = json.dumps(value, default=str) if not isinstance(value, str) else value
    return text if len(text) <= limit else text[: limit - 3] + "..."


@click.command()
@click.argument("task_file", type=click.Path())
@click.option("--json", "as_json", is_flag=True, help="Print the run summary as JSON")
@click.pass_obj
def run(state, task_file, as_json):
    """Run a YAML task batch or a task script.

    Exits with status 1 if the batch itself fails (missing file,
    unsupported format, invalid YAML or an aborted script). Failing
    tasks inside a batch are reported but do not change the exit code.
    """
    from kopsai.runner import TaskRunner

    runner = TaskRunner(registry=state.registry, context=state.context)
    summary = runner.run(task_file)

    if as_json:
        _print_json(summary.to_dict())
    elif not summary.success:
        console.print(f"[red]Run failed:[/red] {summary.error}")
    elif summary.script:
        console.print("[green]Script completed[/green]")
        if summary.result is not None:
            _print_json(summary.result)
    else:
        table = Table(title=f"Tasks: {task_file}")
        table.add_column("#", justify="right")
        table.add_column("Status", style="bold")
        table.add_column("Result")
        for i, result in enumerate(summary.results, 1):
            if result.ok:
                table.add_row(str(i), "[green]OK[/green]", _preview(result.payload))
            else:
                table.add_row(str(i), "[red]FAILED[/red]", result.error)
        console.print(table)
        console.print(
            f"{summary.succeeded}/{summary.total} tasks succeeded"
            + (f", [red]{summary.failed} failed[/red]" if summary.failed else "")
        )

    if not summary.success:
        raise SystemExit(1)


@click.command()
@click.argument(
    "check_type",
    default="all",
    type=click.Choice(["all", "cpu", "memory", "disk", "services"]),
)
@click.pass_obj
def check(state, check_type):
    """Run a local system check and print the result as JSON."""
    from kopsai.core.errors import KopsError

    try:
        result = state.registry.execute("system_check", check_type)
    except KopsError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    _print_json(result)
