"""CLI commands that execute requests and workflows."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import click

from reqflow.cli.commands.data import Data
from reqflow.config import ConfigError, ReqflowConfig
from reqflow.workflows.errors import ReqflowError, RequestNotFoundError, WorkflowNotFoundError
from reqflow.workflows.executor import WorkflowExecutor
from reqflow.workflows.models import Workflow, WorkflowState
from reqflow.workflows.reporting import ConsoleReporter


def parse_variables(values: tuple[str, ...]) -> dict[str, Any]:
    """Parse ``name=value`` pairs given on the command line."""
    variables: dict[str, Any] = {}
    for item in values:
        if "=" not in item:
            raise click.BadParameter(f"expected 'name=value', got '{item}'", param_hint="--var")
        key, value = item.split("=", 1)
        variables[key.strip()] = value.strip()
    return variables


def select_globals(config: ReqflowConfig, env: str | None, workflow: Workflow | None = None) -> dict[str, Any]:
    """Pick the environment whose variables become globals for a run.

    An explicit ``--env`` must exist. A workflow's own ``environment`` tag is
    used only when the configuration defines it; otherwise the default applies.
    """
    if env is None and workflow is not None and workflow.environment in config.environments:
        env = workflow.environment
    return config.environment_variables(env)


def make_executor(data: Data, env: str | None, workflow: Workflow | None = None) -> WorkflowExecutor:
    try:
        global_variables = select_globals(data.config, env, workflow)
    except ConfigError as exc:
        click.secho(f"❌ {exc}", fg="red")
        raise SystemExit(1)
    return WorkflowExecutor(
        data.catalog.requests,
        timeout=data.config.timeout,
        verify_ssl=data.config.verify_ssl,
        global_variables=global_variables,
    )


def not_found(kind: str, error: ReqflowError, names: Any) -> NoReturn:
    click.secho(f"Error: {error}", fg="red")
    click.echo(f"\nAvailable {kind}s:")
    for available in sorted(names):
        click.echo(f"  - {available}")
    raise SystemExit(1)


@click.command(name="request")
@click.argument("name")
@click.option("--var", "-v", multiple=True, help="Variable to inject (format: 'name=value')")
@click.option("--env", "-e", type=str, help="Environment from the configuration file")
@click.pass_context
def run_request(ctx: click.Context, name: str, var: tuple[str, ...], env: str | None) -> None:
    """Execute a single request."""
    data: Data = ctx.obj
    try:
        definition = data.catalog.get_request(name)
    except RequestNotFoundError as exc:
        not_found("request", exc, data.catalog.requests)

    variables = parse_variables(var)
    executor = make_executor(data, env)
    reporter = ConsoleReporter(verbose=ctx.meta.get("verbose", False))

    click.echo(f"Executing request: {name}")
    result = executor.run_request(definition, variables=variables)
    reporter.on_step_complete(result)

    if result.state == WorkflowState.FAILED or (result.response is not None and result.response.error):
        raise SystemExit(1)


@click.command(name="workflow")
@click.argument("name")
@click.option("--var", "-v", multiple=True, help="Variable to inject (format: 'name=value')")
@click.option("--env", "-e", type=str, help="Environment from the configuration file")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file for results (JSON)")
@click.pass_context
def run_workflow(
    ctx: click.Context,
    name: str,
    var: tuple[str, ...],
    env: str | None,
    output: str | None,
) -> None:
    """Execute a workflow."""
    data: Data = ctx.obj
    try:
        workflow = data.catalog.get_workflow(name)
    except WorkflowNotFoundError as exc:
        not_found("workflow", exc, data.catalog.workflows)

    variables = parse_variables(var)
    executor = make_executor(data, env, workflow)
    reporter = ConsoleReporter(verbose=ctx.meta.get("verbose", False))

    reporter.workflow_started(workflow.name)
    result = executor.execute(
        workflow,
        variables=variables,
        on_step_start=reporter.on_step_start,
        on_step_complete=reporter.on_step_complete,
    )
    reporter.workflow_finished(result)

    if output:
        Path(output).write_text(json.dumps(result.to_dict(), indent=2, default=str), encoding="utf-8")
        click.echo(f"\nResults saved to: {output}")

    if not result.succeeded:
        raise SystemExit(1)
