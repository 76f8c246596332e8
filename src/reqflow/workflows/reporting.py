"""Console output for request and workflow runs."""

from __future__ import annotations

import json
from typing import Any

import click
import httpx

from reqflow.workflows.models import (
    PreparedRequest,
    Response,
    StepResult,
    WorkflowResult,
    WorkflowState,
    WorkflowStep,
)

WIDE_RULE = "=" * 60
NARROW_RULE = "-" * 40


def format_body(body: Any) -> str:
    """Pretty-print JSON containers; render anything else as-is."""
    if isinstance(body, (dict, list)):
        return json.dumps(body, indent=2, ensure_ascii=False, default=str)
    return str(body) if body is not None else ""


class ConsoleReporter:
    """Prints progress for workflow runs.

    ``on_step_start`` and ``on_step_complete`` match the executor's callbacks.
    """

    def __init__(self, verbose: bool = True) -> None:
        self.verbose = verbose

    def workflow_started(self, name: str) -> None:
        click.echo(f"\n{WIDE_RULE}")
        click.secho(f"WORKFLOW: {name}", bold=True)
        click.echo(WIDE_RULE)

    def on_step_start(self, index: int, total: int, step: WorkflowStep) -> None:
        click.echo(f"\n[Step {index}/{total}] {step.name}")
        click.echo(NARROW_RULE)

    def on_step_complete(self, result: StepResult) -> None:
        if result.response is not None and result.request is not None:
            self.show_exchange(result.request, result.response)
        if result.extracted:
            click.echo("\nExtracting variables:")
            for name, value in result.extracted.items():
                click.echo(f"  {name} = {format_body(value)}")
        for warning in result.warnings:
            click.secho(f"  Warning: {warning}", fg="yellow")
        if result.error is not None:
            click.secho(f"ERROR in step '{result.step_name}': {result.error}", fg="red")

    def show_exchange(self, request: PreparedRequest, response: Response) -> None:
        """Print the request line and the captured response."""
        click.echo(f"\n{WIDE_RULE}")
        click.echo(f"Request: {request.method} {request.url}")
        click.echo(WIDE_RULE)

        if response.error is not None:
            click.secho(f"Request failed: {response.error}", fg="red")
            click.echo(f"Duration: {response.duration:.3f} seconds")
            click.echo(WIDE_RULE)
            return

        color = "green" if response.status_code < 400 else "red"
        phrase = httpx.codes.get_reason_phrase(response.status_code)
        click.secho(f"Status Code: {response.status_code} {phrase}", fg=color)
        click.echo(f"Duration: {response.duration:.3f} seconds")
        if response.request_id:
            click.echo(f"Request ID: {response.request_id}")

        if self.verbose:
            self._show_mapping("Headers", response.headers)
            self._show_mapping("Cookies", response.cookies)

        click.echo("\nResponse Body:")
        click.echo(format_body(response.body))
        click.echo(WIDE_RULE)

    def _show_mapping(self, title: str, values: dict[str, str]) -> None:
        if not values:
            return
        click.echo(f"\n{title}:")
        for key, value in values.items():
            click.echo(f"  {key}: {value}")

    def workflow_finished(self, result: WorkflowResult) -> None:
        if result.state == WorkflowState.STOPPED:
            last_step = result.step_results[-1].step_name if result.step_results else ""
            click.secho(f"\nWorkflow completed successfully after step '{last_step}'", fg="green")
        elif result.state == WorkflowState.COMPLETED:
            click.echo(f"\n{WIDE_RULE}")
            click.secho(f"WORKFLOW COMPLETED: {result.workflow_name}", fg="green", bold=True)
            click.echo(f"{WIDE_RULE}\n")
        else:
            click.secho(f"\nFailed to execute workflow: {result.error}", fg="red", bold=True)
