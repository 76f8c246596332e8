"""Tests for the reqflow command line interface."""
from __future__ import annotations

import json

import httpx
import pytest
from click.testing import CliRunner

from reqflow.cli import reqflow

REQUESTS = {
    "create_user.yaml": """
name: create_user
method: POST
url: http://api.test/users
body:
  name: "{{name}}"
""",
    "get_user.yaml": """
name: get_user
method: GET
url: "{{base_url}}/users/{{userId}}"
""",
}

WORKFLOWS = {
    "user_flow.yaml": """
name: user_flow
variables:
  name: alice
steps:
  - name: create
    request: create_user
    extract:
      userId: id
  - name: fetch
    request: get_user
    variables: {}
""",
    "broken_flow.yaml": """
name: broken_flow
steps:
  - name: first
    request: missing_request
""",
}

CONFIG = """
default: test
environments:
  test:
    base_url: http://api.test
  other:
    base_url: http://other.test
"""


@pytest.fixture
def project(tmp_path, monkeypatch):
    (tmp_path / "requests").mkdir()
    (tmp_path / "workflows").mkdir()
    for name, content in REQUESTS.items():
        (tmp_path / "requests" / name).write_text(content)
    for name, content in WORKFLOWS.items():
        (tmp_path / "workflows" / name).write_text(content)
    (tmp_path / "reqflow.yaml").write_text(CONFIG)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def http(server, mocker):
    # Route every client the CLI creates through the in-memory server
    real_client = httpx.Client
    mocker.patch("httpx.Client", side_effect=lambda **kwargs: real_client(transport=server.transport, **kwargs))
    server.add("POST", "/users", status_code=201, json={"id": 7})
    server.add("GET", "/users/7", json={"id": 7, "name": "alice"})
    return server


@pytest.fixture
def cli():
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(reqflow, list(args), catch_exceptions=False)

    return invoke


class TestListing:
    def test_list(self, project, cli):
        result = cli("list")

        assert result.exit_code == 0
        assert "create_user (POST http://api.test/users)" in result.output
        assert "user_flow (2 steps)" in result.output

    def test_no_command_shows_help_and_catalog(self, project, cli):
        result = cli()

        assert result.exit_code == 0
        assert "Usage:" in result.output
        assert "Available Workflows:" in result.output

    def test_empty_project(self, tmp_path, monkeypatch, cli):
        monkeypatch.chdir(tmp_path)

        result = cli("list")

        assert "No requests found" in result.output
        assert "No workflows found" in result.output


class TestWorkflowCommand:
    def test_run_workflow_with_alias(self, project, http, cli):
        result = cli("wf", "user_flow")

        assert result.exit_code == 0, result.output
        assert "WORKFLOW: user_flow" in result.output
        assert "[Step 2/2] fetch" in result.output
        assert "userId = 7" in result.output
        assert "WORKFLOW COMPLETED: user_flow" in result.output
        assert http.paths() == ["/users", "/users/7"]

    def test_variables_and_output(self, project, http, cli):
        result = cli("workflow", "user_flow", "--var", "name=bob", "-o", "result.json")

        assert result.exit_code == 0, result.output
        assert json.loads(http.requests[0].content) == {"name": "bob"}
        data = json.loads((project / "result.json").read_text())
        assert data["state"] == "completed"
        assert data["variables"] == {"name": "bob", "userId": 7}

    def test_environment_option(self, project, http, cli):
        result = cli("workflow", "user_flow", "--env", "other")

        assert result.exit_code == 0, result.output
        assert http.requests[1].url.host == "other.test"

    def test_unknown_environment(self, project, http, cli):
        result = cli("workflow", "user_flow", "--env", "prod")

        assert result.exit_code == 1
        assert "Unknown environment 'prod'" in result.output
        assert http.requests == []

    def test_failed_workflow_exits_non_zero(self, project, http, cli):
        result = cli("w", "broken_flow")

        assert result.exit_code == 1
        assert "request 'missing_request' not found for step 'first'" in result.output

    def test_unknown_workflow(self, project, cli):
        result = cli("workflow", "nope")

        assert result.exit_code == 1
        assert "workflow 'nope' not found" in result.output
        assert "  - user_flow" in result.output

    def test_malformed_variable(self, project, cli):
        result = CliRunner().invoke(reqflow, ["workflow", "user_flow", "--var", "novalue"])

        assert result.exit_code == 2
        assert "expected 'name=value'" in result.output


class TestRequestCommand:
    def test_run_request_with_alias(self, project, http, cli):
        result = cli("r", "get_user", "--var", "userId=7")

        assert result.exit_code == 0, result.output
        assert "Executing request: get_user" in result.output
        assert "Status Code: 200 OK" in result.output
        assert http.paths() == ["/users/7"]

    def test_missing_variable(self, project, http, cli):
        result = cli("req", "get_user")

        assert result.exit_code == 1
        assert "variable 'userId' not found" in result.output
        assert http.requests == []

    def test_unknown_request(self, project, cli):
        result = cli("request", "nope")

        assert result.exit_code == 1
        assert "  - create_user" in result.output


class TestValidateCommand:
    def test_reports_unknown_references(self, project, cli):
        result = cli("validate")

        assert result.exit_code == 1
        assert "step 'first' references unknown request 'missing_request'" in result.output

    def test_reports_broken_files(self, project, cli):
        (project / "workflows" / "broken_flow.yaml").unlink()
        (project / "requests" / "bad.yaml").write_text("name: bad\n")

        result = cli("validate")

        assert result.exit_code == 1
        assert "bad.yaml" in result.output

    def test_valid_project(self, project, cli):
        (project / "workflows" / "broken_flow.yaml").unlink()

        result = cli("validate")

        assert result.exit_code == 0
        assert "2 request(s) and 1 workflow(s) are valid" in result.output


class TestConfiguration:
    def test_invalid_config_file(self, project, cli):
        (project / "reqflow.yaml").write_text("timeout: [")

        result = cli("list")

        assert result.exit_code == 1
        assert "Failed to load configuration file" in result.output

    def test_explicit_config_file(self, project, cli, tmp_path_factory):
        other = tmp_path_factory.mktemp("elsewhere")
        (other / "settings.yaml").write_text("requests_dir: defs\n")

        result = cli("--config-file", str(other / "settings.yaml"), "list")

        assert result.exit_code == 0
        assert "No requests found" in result.output
