"""kops-ai CLI - Main entry point."""

import sys

import click
from rich.console import Console

from kopsai import __version__

console = Console()


class AgentState:
    """Lazily built agent context and registry shared by subcommands."""

    def __init__(self, config_path=None, log_level=None, context=None, registry=None) -> None:
        self.config_path = config_path
        self.log_level = log_level
        self._context = context
        self._registry = registry

    @property
    def context(self):
        if self._context is None:
            from kopsai.config import ConfigError, load_agent_config
            from kopsai.core.context import AgentContext
            from kopsai.core.log import setup_logging

            try:
                config = load_agent_config(self.config_path)
            except ConfigError as e:
                console.print(f"[red]{e}[/red]")
                raise SystemExit(1)
            if self.log_level:
                config = config.model_copy(update={"log_level": self.log_level})
            setup_logging(config.log_level, service=config.service_name, stream=sys.stderr)
            self._context = AgentContext(config=config)
        return self._context

    @property
    def registry(self):
        if self._registry is None:
            from kopsai.core.registry import create_agent

            self._registry = create_agent(self.context)
        return self._registry


@click.group()
@click.version_option(version=__version__, prog_name="kops-ai")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Config file (default: $KOPS_CONFIG or config/kops.yml)",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warn", "error", "fatal"], case_sensitive=False),
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx, config_path, log_level):
    """kops-ai - Operations automation agent.

    Runs YAML task batches and task scripts against plugins for system
    checks, SSH, Kubernetes, Prometheus, Jenkins, logs, notifications
    and GPT-assisted analysis.
    """
    state = ctx.ensure_object(AgentState)
    if config_path:
        state.config_path = config_path
    if log_level:
        state.log_level = log_level.lower()


from .plugin_commands import exec_plugin, plugins  # noqa: E402
from .run import check, run  # noqa: E402
from .schedule_commands import schedule  # noqa: E402

cli.add_command(run)
cli.add_command(check)
cli.add_command(plugins)
cli.add_command(exec_plugin)
cli.add_command(schedule)


if __name__ == "__main__":
    cli()
