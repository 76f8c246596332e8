"""Workflow executor for running request and workflow definitions.

Executes workflows step by step in declaration order, threading a
``WorkflowContext`` through template resolution, extraction and
condition evaluation.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping

import httpx

from reqflow.workflows.errors import (
    ExtractionError,
    RequestBuildError,
    RequestReferenceError,
    TemplateResolutionError,
    TransportError,
    WorkflowStoppedError,
)
from reqflow.workflows.expressions import TemplateResolver, extract_path
from reqflow.workflows.materializer import RequestMaterializer
from reqflow.workflows.models import (
    JSONValue,
    PreparedRequest,
    RequestDefinition,
    Response,
    StepResult,
    Workflow,
    WorkflowContext,
    WorkflowResult,
    WorkflowState,
    WorkflowStep,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


def decode_body(content: bytes, text: str) -> JSONValue:
    """Decode a response payload as JSON when it parses, otherwise return its text.

    Payloads declared as ``application/json`` that fail to parse fall back
    to text as well, so the declared content type does not change the result.
    """
    try:
        return json.loads(content)
    except ValueError:
        return text


class StepExecutor:
    """Dispatches a single step and applies its post-processing."""

    def __init__(self, client: httpx.Client) -> None:
        self.client = client

    def run(
        self,
        step: WorkflowStep,
        definition: RequestDefinition,
        context: WorkflowContext,
        index: int = 0,
        workflow_name: str | None = None,
    ) -> StepResult:
        """Execute one step against the given context.

        Materialization failures are recorded on the result with a ``failed``
        state; transport failures are recorded on the response and only stop
        the run through an on-error condition.
        """
        result = StepResult(step_name=step.name, request_name=step.request, index=index)

        materializer = RequestMaterializer(TemplateResolver(context))
        try:
            prepared = materializer.materialize(definition, step)
            request = self.build(prepared, step.name)
        except (TemplateResolutionError, RequestBuildError) as exc:
            result.error = exc
            result.state = WorkflowState.FAILED
            return result

        result.request = prepared
        response = self.dispatch(request)
        result.response = response
        context.steps[step.name] = response

        self._extract(step, response, context, result)
        result.state = self._evaluate_conditions(step, response, result, workflow_name)
        return result

    def build(self, prepared: PreparedRequest, step_name: str | None = None) -> httpx.Request:
        """Turn a prepared request into an ``httpx.Request``."""
        try:
            # Query overrides are merged into any query string already in the URL
            url = httpx.URL(prepared.url)
            if prepared.query:
                url = url.copy_merge_params(prepared.query)
            return self.client.build_request(
                method=prepared.method,
                url=url,
                headers=prepared.headers,
                content=prepared.content,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as exc:
            raise RequestBuildError("failed to build request", step_name=step_name, cause=exc) from exc

    def dispatch(self, request: httpx.Request) -> Response:
        """Send a request and capture the response.

        Transport failures never raise; they produce a response with
        ``status_code`` 0 and ``error`` set.
        """
        logger.debug("Dispatching %s %s", request.method, request.url)
        start_time = time.time()
        try:
            response = self.client.send(request)
        except httpx.RequestError as exc:
            duration = time.time() - start_time
            logger.debug("Request %s %s failed: %s", request.method, request.url, exc)
            return Response(error=TransportError(f"request failed: {exc}", cause=exc), duration=duration)
        # `send` reads the whole body before returning
        duration = time.time() - start_time

        return Response(
            status_code=response.status_code,
            body=decode_body(response.content, response.text),
            headers=self._collect_headers(response),
            cookies=self._collect_cookies(response),
            duration=duration,
            request_id=response.headers.get(REQUEST_ID_HEADER),
        )

    def _collect_headers(self, response: httpx.Response) -> dict[str, str]:
        # First value wins for repeated header names
        headers: dict[str, str] = {}
        seen: set[str] = set()
        encoding = response.headers.encoding
        for raw_name, raw_value in response.headers.raw:
            name = raw_name.decode(encoding)
            if name.lower() in seen:
                continue
            seen.add(name.lower())
            headers[name] = raw_value.decode(encoding)
        return headers

    def _collect_cookies(self, response: httpx.Response) -> dict[str, str]:
        cookies: dict[str, str] = {}
        for cookie in response.cookies.jar:
            if cookie.value is not None:
                cookies[cookie.name] = cookie.value
        return cookies

    def _extract(
        self,
        step: WorkflowStep,
        response: Response,
        context: WorkflowContext,
        result: StepResult,
    ) -> None:
        for var_name, path in step.extract.items():
            try:
                value = extract_path(response.body, path)
            except ExtractionError as exc:
                warning = f"failed to extract '{var_name}': {exc}"
                logger.warning("Step '%s': %s", step.name, warning)
                result.warnings.append(warning)
                continue
            context.variables[var_name] = value
            result.extracted[var_name] = value

    def _evaluate_conditions(
        self,
        step: WorkflowStep,
        response: Response,
        result: StepResult,
        workflow_name: str | None,
    ) -> WorkflowState:
        if response.error is not None:
            for condition in step.on_error:
                if condition.stop:
                    result.error = WorkflowStoppedError(step.name, response.error, workflow_name)
                    return WorkflowState.FAILED
                if condition.goto:
                    self._skip_goto(step, condition.goto, result)
        else:
            for condition in step.on_success:
                if condition.stop:
                    return WorkflowState.STOPPED
                if condition.goto:
                    self._skip_goto(step, condition.goto, result)
        return WorkflowState.RUNNING

    def _skip_goto(self, step: WorkflowStep, target: str, result: StepResult) -> None:
        # Jump targets are parsed but not executed
        warning = f"goto '{target}' is not supported, continuing with the next step"
        logger.warning("Step '%s': %s", step.name, warning)
        result.warnings.append(warning)


class WorkflowExecutor:
    """Executes workflow definitions."""

    def __init__(
        self,
        requests: Mapping[str, RequestDefinition],
        client: httpx.Client | None = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        global_variables: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            requests: Request catalog, keyed by request name.
            client: HTTP client to reuse. When omitted, a client is created
                for each run and closed afterwards.
            timeout: Request timeout in seconds for clients created here.
            verify_ssl: Whether clients created here verify SSL certificates.
            global_variables: Constants visible to every run after the
                workflow's own variables.
        """
        self.requests = requests
        self.client = client
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.global_variables = global_variables or {}

    @contextmanager
    def _open_client(self) -> Iterator[httpx.Client]:
        if self.client is not None:
            yield self.client
            return
        client = httpx.Client(timeout=self.timeout, verify=self.verify_ssl)
        try:
            yield client
        finally:
            client.close()

    def execute(
        self,
        workflow: Workflow,
        variables: dict[str, Any] | None = None,
        global_variables: dict[str, Any] | None = None,
        on_step_start: Callable[[int, int, WorkflowStep], None] | None = None,
        on_step_complete: Callable[[StepResult], None] | None = None,
    ) -> WorkflowResult:
        """Execute a workflow.

        Args:
            workflow: The workflow to execute.
            variables: Additional variables, overriding the workflow's own.
            global_variables: Globals for this run, replacing the executor's.
            on_step_start: Called with (index, total, step) before each step.
            on_step_complete: Called after each step with its result.

        Returns:
            WorkflowResult whose state is ``completed``, ``stopped`` or ``failed``.
        """
        result = WorkflowResult(workflow_name=workflow.name)
        context = WorkflowContext(
            variables={**workflow.variables, **(variables or {})},
            global_variables=dict(self.global_variables if global_variables is None else global_variables),
        )
        logger.debug("Running workflow '%s' (%d steps)", workflow.name, len(workflow.steps))

        with self._open_client() as client:
            step_executor = StepExecutor(client)
            total = len(workflow.steps)

            for index, step in enumerate(workflow.steps, start=1):
                if on_step_start:
                    on_step_start(index, total, step)

                definition = self.requests.get(step.request)
                if definition is None:
                    step_result = StepResult(
                        step_name=step.name,
                        request_name=step.request,
                        index=index,
                        error=RequestReferenceError(step.name, step.request, workflow.name),
                        state=WorkflowState.FAILED,
                    )
                else:
                    step_result = step_executor.run(step, definition, context, index, workflow.name)

                result.add_step_result(step_result)
                if on_step_complete:
                    on_step_complete(step_result)

                if step_result.state == WorkflowState.FAILED:
                    result.finish(WorkflowState.FAILED, step_result.error)
                    break
                if step_result.state == WorkflowState.STOPPED:
                    result.finish(WorkflowState.STOPPED)
                    break
            else:
                result.finish(WorkflowState.COMPLETED)

        result.variables = dict(context.variables)
        return result

    def run_request(
        self,
        definition: RequestDefinition,
        variables: dict[str, Any] | None = None,
    ) -> StepResult:
        """Execute a single request definition outside of any workflow."""
        step = WorkflowStep(name=definition.name, request=definition.name)
        context = WorkflowContext(variables=dict(variables or {}), global_variables=dict(self.global_variables))

        with self._open_client() as client:
            result = StepExecutor(client).run(step, definition, context, index=1)

        if result.state == WorkflowState.RUNNING:
            result.state = WorkflowState.COMPLETED
        return result


def run_workflow(
    workflow: Workflow,
    requests: Mapping[str, RequestDefinition],
    variables: dict[str, Any] | None = None,
) -> WorkflowResult:
    """Convenience function to run a workflow with a throwaway client.

    Args:
        workflow: The workflow to execute.
        requests: Request catalog, keyed by request name.
        variables: Additional variables to inject.

    Returns:
        WorkflowResult with execution details.
    """
    executor = WorkflowExecutor(requests)
    return executor.execute(workflow, variables=variables)
