"""kopsai plugins / exec - Plugin inspection and direct execution."""

import json

import click
import yaml
from rich.console import Console
from rich.table import Table

console = Console()


def parse_options(pairs) -> dict:
    """Parse ``key=value`` pairs; values are read as YAML scalars."""
    options = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got '{pair}'", param_hint="-o/--option")
        try:
            options[key] = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError:
            options[key] = raw
    return options


@click.group()
def plugins():
    """Inspect registered plugins."""


@plugins.command("list")
@click.pass_obj
def list_plugins(state):
    """List all registered plugins and their availability."""
    table = Table(title="Plugins")
    table.add_column("Plugin", style="cyan")
    table.add_column("Version")
    table.add_column("Status", style="bold")
    table.add_column("Description")

    for info in state.registry.list_plugins():
        status = "[green]Available[/green]" if info.available else "[red]Not Available[/red]"
        table.add_row(info.name, info.version, status, info.description)

    console.print(table)


@plugins.command("info")
@click.argument("name")
@click.pass_obj
def plugin_info(state, name):
    """Show details for one plugin."""
    info = state.registry.info(name)
    if info is None:
        available = ", ".join(state.registry.list_all()) or "none"
        console.print(f"[red]Plugin '{name}' not found.[/red] Available plugins: {available}")
        raise SystemExit(1)

    console.print(f"[bold]Plugin: {info.name}[/bold]")
    console.print(f"  Version: {info.version}")
    console.print(f"  Description: {info.description}")
    if info.available:
        console.print("  Status: [green]Available[/green]")
    else:
        console.print("  Status: [red]Not Available[/red]")


@click.command("exec")
@click.argument("plugin")
@click.argument("action")
@click.option("-o", "--option", "option_pairs", multiple=True, help="Action option as key=value")
@click.pass_obj
def exec_plugin(state, plugin, action, option_pairs):
    """Execute one plugin action and print its result as JSON.

    Example: kopsai exec k8s_agent pods -o namespace=production
    """
    from kopsai.core.errors import KopsError

    options = parse_options(option_pairs)
    try:
        result = state.registry.execute(plugin, action, options)
    except KopsError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    except Exception as e:
        console.print(f"[red]{plugin} {action} failed:[/red] {e}")
        raise SystemExit(1)
    click.echo(json.dumps(result, indent=2, default=str))
