"""Template resolution for workflow requests.

Handles ``{{...}}`` placeholders:
- Variable references: ``{{user_id}}`` (workflow variables, then globals)
- Step references: ``{{login|data|token}}`` (a path into a prior step's body)

Paths are pipe-delimited: ``data|items|0|name``.
"""

from __future__ import annotations

import json
import re
from typing import Any

from reqflow.workflows.errors import ExtractionError, TemplateResolutionError
from reqflow.workflows.models import JSONValue, WorkflowContext

PATH_SEPARATOR = "|"


def extract_path(data: JSONValue, path: str) -> JSONValue:
    """Walk a pipe-delimited path through a decoded JSON value.

    Args:
        data: The value to walk (mapping, sequence or scalar).
        path: Path such as ``"data|items|0|name"``. Empty segments are skipped.

    Returns:
        The value at the end of the path; ``data`` itself for an empty path.

    Raises:
        ExtractionError: If a key is missing, an index is invalid, or a scalar
            is reached before the path ends.
    """
    if not path:
        return data

    current = data
    for i, part in enumerate(path.split(PATH_SEPARATOR)):
        part = part.strip()
        if not part:
            continue

        if isinstance(current, dict):
            if part not in current:
                raise ExtractionError(path, f"key '{part}' not found at path segment {i}")
            current = current[part]
        elif isinstance(current, list):
            try:
                index = int(part)
            except ValueError:
                raise ExtractionError(path, f"expected array index at segment {i}, got '{part}'") from None
            if index < 0 or index >= len(current):
                raise ExtractionError(path, f"array index {index} out of bounds (length: {len(current)})")
            current = current[index]
        else:
            raise ExtractionError(
                path,
                f"cannot traverse path at segment {i}: current value is not a map or array",
            )

    return current


def stringify(value: Any) -> str:
    """Render a value for substitution into a string."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


class TemplateResolver:
    """Substitutes ``{{...}}`` placeholders using a workflow context."""

    PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

    def __init__(self, context: WorkflowContext) -> None:
        self.context = context

    def resolve(self, text: str) -> str:
        """Substitute every placeholder in ``text``.

        Raises:
            TemplateResolutionError: If any placeholder could not be resolved.
                The error carries the partially substituted text and the last
                failure seen.
        """
        result, error = self.resolve_partial(text)
        if error is not None:
            raise error
        return result

    def resolve_partial(self, text: str) -> tuple[str, TemplateResolutionError | None]:
        """Substitute what can be resolved, leaving failing placeholders verbatim.

        Scanning never stops at the first failure; the returned error
        describes the last placeholder that failed.
        """
        failures: list[str] = []

        def replace_match(match: re.Match[str]) -> str:
            try:
                return stringify(self._resolve_expression(match.group(1).strip()))
            except _UnresolvedPlaceholder as exc:
                failures.append(str(exc))
                return match.group(0)

        result = self.PLACEHOLDER_PATTERN.sub(replace_match, text)
        if failures:
            return result, TemplateResolutionError(failures[-1], result=result)
        return result, None

    def _resolve_expression(self, expr: str) -> Any:
        if PATH_SEPARATOR in expr:
            step_name, path = (part.strip() for part in expr.split(PATH_SEPARATOR, 1))
            return self._resolve_step_reference(step_name, path)

        if expr in self.context.variables:
            return self.context.variables[expr]
        if expr in self.context.global_variables:
            return self.context.global_variables[expr]
        raise _UnresolvedPlaceholder(f"variable '{expr}' not found")

    def _resolve_step_reference(self, step_name: str, path: str) -> Any:
        response = self.context.steps.get(step_name)
        if response is None:
            raise _UnresolvedPlaceholder(f"step '{step_name}' not found in context")
        if response.error is not None:
            raise _UnresolvedPlaceholder(f"step '{step_name}' had an error")
        try:
            return extract_path(response.body, path)
        except ExtractionError as exc:
            raise _UnresolvedPlaceholder(f"failed to extract data from step '{step_name}': {exc}") from exc


class _UnresolvedPlaceholder(Exception):
    pass
