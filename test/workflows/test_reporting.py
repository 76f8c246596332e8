"""Tests for reqflow.workflows.reporting module."""
from __future__ import annotations

from reqflow.workflows.errors import RequestReferenceError, TransportError
from reqflow.workflows.models import (
    PreparedRequest,
    Response,
    StepResult,
    WorkflowResult,
    WorkflowState,
    WorkflowStep,
)
from reqflow.workflows.reporting import ConsoleReporter, format_body


def make_result(response, **kwargs):
    return StepResult(
        step_name="fetch",
        request_name="get_user",
        index=1,
        request=PreparedRequest(method="GET", url="http://api.test/users/1"),
        response=response,
        **kwargs,
    )


class TestFormatBody:
    def test_containers_are_indented(self):
        assert format_body({"a": [1]}) == '{\n  "a": [\n    1\n  ]\n}'

    def test_scalars(self):
        assert format_body("plain") == "plain"
        assert format_body(None) == ""


class TestConsoleReporter:
    """Tests for console progress output."""

    def test_step_header(self, capsys):
        ConsoleReporter().on_step_start(2, 3, WorkflowStep(name="fetch", request="get_user"))

        assert "[Step 2/3] fetch" in capsys.readouterr().out

    def test_response_details(self, capsys):
        response = Response(
            status_code=404,
            body={"error": "missing"},
            headers={"Content-Type": "application/json"},
            cookies={"sid": "1"},
            duration=0.25,
            request_id="req-9",
        )

        ConsoleReporter(verbose=True).on_step_complete(make_result(response, extracted={"userId": 1}))

        out = capsys.readouterr().out
        assert "Request: GET http://api.test/users/1" in out
        assert "Status Code: 404 Not Found" in out
        assert "Duration: 0.250 seconds" in out
        assert "Request ID: req-9" in out
        assert "Content-Type: application/json" in out
        assert "sid: 1" in out
        assert '"error": "missing"' in out
        assert "userId = 1" in out

    def test_headers_hidden_unless_verbose(self, capsys):
        response = Response(status_code=200, headers={"X-Secret": "1"})

        ConsoleReporter(verbose=False).on_step_complete(make_result(response))

        assert "X-Secret" not in capsys.readouterr().out

    def test_transport_failure_and_warnings(self, capsys):
        response = Response(error=TransportError("request failed: connection refused"))

        ConsoleReporter().on_step_complete(make_result(response, warnings=["failed to extract 'id'"]))

        out = capsys.readouterr().out
        assert "Request failed: request failed: connection refused" in out
        assert "Warning: failed to extract 'id'" in out

    def test_step_error(self, capsys):
        result = StepResult(
            step_name="broken",
            request_name="nope",
            error=RequestReferenceError("broken", "nope"),
            state=WorkflowState.FAILED,
        )

        ConsoleReporter().on_step_complete(result)

        assert "ERROR in step 'broken': request 'nope' not found for step 'broken'" in capsys.readouterr().out

    def test_workflow_outcomes(self, capsys):
        reporter = ConsoleReporter()
        completed = WorkflowResult(workflow_name="flow")
        completed.finish(WorkflowState.COMPLETED)
        stopped = WorkflowResult(workflow_name="flow", step_results=[StepResult("check", "health")])
        stopped.finish(WorkflowState.STOPPED)
        failed = WorkflowResult(workflow_name="flow")
        failed.finish(WorkflowState.FAILED, RequestReferenceError("s", "r"))

        reporter.workflow_finished(completed)
        reporter.workflow_finished(stopped)
        reporter.workflow_finished(failed)

        out = capsys.readouterr().out
        assert "WORKFLOW COMPLETED: flow" in out
        assert "Workflow completed successfully after step 'check'" in out
        assert "Failed to execute workflow: request 'r' not found for step 's'" in out

    def test_step_without_exchange_prints_only_the_error(self, capsys):
        result = StepResult(
            step_name="fetch",
            request_name="get_user",
            request=PreparedRequest(method="GET", url="http://api.test/users/1"),
            error=RequestReferenceError("fetch", "get_user"),
            state=WorkflowState.FAILED,
        )

        ConsoleReporter().on_step_complete(result)

        out = capsys.readouterr().out
        assert "Request: GET" not in out
        assert "ERROR in step 'fetch'" in out

    def test_show_exchange(self, capsys):
        request = PreparedRequest(method="DELETE", url="http://api.test/users/1")

        ConsoleReporter().show_exchange(request, Response(status_code=204, duration=0.5))

        out = capsys.readouterr().out
        assert "Request: DELETE http://api.test/users/1" in out
        assert "Status Code: 204 No Content" in out
