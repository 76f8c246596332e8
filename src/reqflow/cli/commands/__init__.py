from __future__ import annotations

import logging

import click

from reqflow.cli.commands.data import Data
from reqflow.config import ConfigError, load_config
from reqflow.core.version import REQFLOW_VERSION
from reqflow.workflows.parser import Catalog, load_catalog

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class AliasedGroup(click.Group):
    """A command group that also accepts short aliases for its commands."""

    ALIASES = {
        "req": "request",
        "r": "request",
        "wf": "workflow",
        "w": "workflow",
    }

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, self.ALIASES.get(cmd_name, cmd_name))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        _, command, args = super().resolve_command(ctx, args)
        return (command.name if command else None), command, args


def show_catalog(catalog: Catalog) -> None:
    """Print the available requests and workflows."""
    if catalog.requests:
        click.secho("\nAvailable Requests:", bold=True)
        for name in sorted(catalog.requests):
            definition = catalog.requests[name]
            click.echo(f"  - {name} ({definition.method} {definition.url})")
    else:
        click.echo("\nNo requests found")

    if catalog.workflows:
        click.secho("\nAvailable Workflows:", bold=True)
        for name in sorted(catalog.workflows):
            click.echo(f"  - {name} ({len(catalog.workflows[name].steps)} steps)")
    else:
        click.echo("\nNo workflows found")


@click.group(cls=AliasedGroup, context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.option(
    "--config-file",
    "config_file",
    help="The path to `reqflow.yaml` file to use for configuration",
    metavar="PATH",
    type=str,
)
@click.option("--verbose", is_flag=True, help="Show headers, cookies and debug logging")
@click.version_option(REQFLOW_VERSION, prog_name="reqflow")
@click.pass_context
def reqflow(ctx: click.Context, config_file: str | None, verbose: bool) -> None:
    """Run HTTP requests and multi-step workflows defined in YAML.

    \b
    Short aliases:
      request: req, r
      workflow: wf, w
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)
    try:
        config = load_config(config_file)
    except ConfigError as exc:
        click.secho("❌  Failed to load configuration file", fg="red", bold=True)
        click.echo(f"\n{exc}")
        ctx.exit(1)

    catalog = load_catalog(config.requests_dir, config.workflows_dir)
    ctx.obj = Data(config=config, catalog=catalog)
    ctx.meta["verbose"] = verbose

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        show_catalog(catalog)


@reqflow.command(name="list")
@click.pass_obj
def list_definitions(data: Data) -> None:
    """List available requests and workflows."""
    show_catalog(data.catalog)


@reqflow.command(name="validate")
@click.pass_obj
def validate_definitions(data: Data) -> None:
    """Check that every definition loads and every step references a known request."""
    problems = [str(error) for error in data.catalog.errors]
    for workflow in data.catalog.workflows.values():
        for step in workflow.steps:
            if step.request not in data.catalog.requests:
                problems.append(
                    f"workflow '{workflow.name}': step '{step.name}' references unknown request '{step.request}'"
                )

    if problems:
        click.secho(f"❌ Found {len(problems)} problem(s):", fg="red")
        for problem in problems:
            click.echo(f"  • {problem}")
        raise SystemExit(1)

    click.secho(
        f"✅ {len(data.catalog.requests)} request(s) and {len(data.catalog.workflows)} workflow(s) are valid",
        fg="green",
    )


# Register run commands
from reqflow.cli.commands.run import run_request, run_workflow  # noqa: E402

reqflow.add_command(run_request)
reqflow.add_command(run_workflow)
