"""Builds concrete requests from request definitions and step overrides."""

from __future__ import annotations

import json
from typing import Any

from reqflow.workflows.errors import RequestBuildError, TemplateResolutionError
from reqflow.workflows.expressions import TemplateResolver
from reqflow.workflows.models import PreparedRequest, RequestDefinition, WorkflowStep

JSON_CONTENT_TYPE = "application/json"


class RequestMaterializer:
    """Merges a request definition with a step's overrides and resolves templates."""

    def __init__(self, resolver: TemplateResolver) -> None:
        self.resolver = resolver

    def materialize(self, definition: RequestDefinition, step: WorkflowStep) -> PreparedRequest:
        """Produce the request a step will send.

        The definition is never modified; every call works on copies of its
        headers and query parameters.

        Raises:
            TemplateResolutionError: If a placeholder in the URL, a header, a
                query value or the body cannot be resolved.
            RequestBuildError: If the body cannot be serialized or parsed.
        """
        headers = {**definition.headers, **step.headers}
        query = {**definition.query, **step.query}

        url = self._resolve(definition.url, step.name, "URL")
        headers = self._resolve_mapping(headers, step.name, "headers")
        query = self._resolve_mapping(query, step.name, "query")

        content = None
        body = self._select_body(definition, step)
        if body is not None:
            content = self._render_body(body, step.name)
            if not any(name.lower() == "content-type" for name in headers):
                headers["Content-Type"] = JSON_CONTENT_TYPE

        return PreparedRequest(
            method=definition.method,
            url=url,
            headers=headers,
            query=query,
            content=content,
        )

    def _resolve(self, text: str, step_name: str, where: str) -> str:
        try:
            return self.resolver.resolve(text)
        except TemplateResolutionError as exc:
            raise TemplateResolutionError(
                f"failed to substitute variables in {where}: {exc.message}",
                result=exc.result,
                step_name=step_name,
            ) from exc

    def _resolve_mapping(self, values: dict[str, str], step_name: str, where: str) -> dict[str, str]:
        return {key: self._resolve(value, step_name, where) for key, value in values.items()}

    def _select_body(self, definition: RequestDefinition, step: WorkflowStep) -> Any:
        if step.body is not None:
            return step.body
        body = definition.body
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise RequestBuildError(
                    f"body of request '{definition.name}' is not valid UTF-8",
                    step_name=step.name,
                    cause=exc,
                ) from exc
        if isinstance(body, str):
            if not body.strip():
                return None
            try:
                return json.loads(body)
            except ValueError as exc:
                raise RequestBuildError(
                    f"body of request '{definition.name}' is not valid JSON",
                    step_name=step.name,
                    cause=exc,
                ) from exc
        return body

    def _render_body(self, body: Any, step_name: str) -> bytes:
        # Placeholders are substituted across the serialized document so nested fields are covered.
        # YAML dates are sent as their ISO text
        try:
            serialized = json.dumps(body, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as exc:
            raise RequestBuildError("failed to marshal body", step_name=step_name, cause=exc) from exc

        substituted = self._resolve(serialized, step_name, "body")

        try:
            value = json.loads(substituted)
        except ValueError as exc:
            raise RequestBuildError("failed to unmarshal substituted body", step_name=step_name, cause=exc) from exc
        return json.dumps(value, ensure_ascii=False).encode("utf-8")
