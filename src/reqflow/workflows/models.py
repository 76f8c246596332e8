"""Data models for request and workflow definitions.

Definitions loaded from YAML are pydantic models; records produced while a
workflow runs are dataclasses.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, field_validator

# Decoded response bodies: a JSON document or, when the payload is not JSON, its text.
JSONValue = Union[None, bool, int, float, str, List["JSONValue"], Dict[str, "JSONValue"]]


class WorkflowState(str, Enum):
    """State of a workflow run."""

    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    COMPLETED = "completed"


class RequestDefinition(BaseModel):
    """A named, reusable HTTP request template."""

    name: str = Field(min_length=1)
    method: str = Field(min_length=1)
    url: str = Field(min_length=1)
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    model_config = {"extra": "forbid", "frozen": True, "coerce_numbers_to_str": True}

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("headers", "query", mode="before")
    @classmethod
    def _empty_mapping(cls, value: Any) -> Any:
        # `headers:` with nothing after it loads as None
        return {} if value is None else value


class Condition(BaseModel):
    """A post-step rule.

    ``condition`` is carried but never evaluated, and ``goto`` has no
    runtime effect; only ``stop`` changes control flow.
    """

    condition: str | None = None
    goto: str | None = None
    stop: bool = False

    model_config = {"extra": "forbid"}


class WorkflowStep(BaseModel):
    """A single step in a workflow."""

    name: str = Field(min_length=1)
    request: str = Field(min_length=1)
    variables: dict[str, Any] = Field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    extract: dict[str, str] = Field(default_factory=dict)
    on_success: list[Condition] = Field(
        default_factory=list,
        validation_alias=AliasChoices("on_success", "onsuccess", "onSuccess"),
    )
    on_error: list[Condition] = Field(
        default_factory=list,
        validation_alias=AliasChoices("on_error", "onerror", "onError"),
    )

    model_config = {"extra": "forbid", "populate_by_name": True, "coerce_numbers_to_str": True}

    @field_validator("variables", "headers", "query", "extract", "on_success", "on_error", mode="before")
    @classmethod
    def _empty_collection(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return [] if info.field_name in ("on_success", "on_error") else {}
        return value


class Workflow(BaseModel):
    """An ordered list of steps plus the variables that seed each run."""

    name: str = Field(min_length=1)
    environment: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)
    steps: list[WorkflowStep] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @field_validator("variables", "steps", mode="before")
    @classmethod
    def _empty_collection(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return [] if info.field_name == "steps" else {}
        return value


@dataclass
class Response:
    """A captured HTTP response, or the record of a failed call."""

    status_code: int = 0
    body: JSONValue = None
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    duration: float = 0.0
    error: Exception | None = None
    request_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "body": self.body,
            "headers": self.headers,
            "cookies": self.cookies,
            "duration": round(self.duration, 4),
            "error": str(self.error) if self.error else None,
            "request_id": self.request_id,
        }


@dataclass
class WorkflowContext:
    """Mutable state of a single workflow run."""

    steps: dict[str, Response] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    global_variables: dict[str, Any] = field(default_factory=dict)


@dataclass
class PreparedRequest:
    """A fully resolved request, ready for the transport."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    content: bytes | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "query": self.query,
            "body": self.content.decode("utf-8", errors="replace") if self.content is not None else None,
        }


@dataclass
class StepResult:
    """Result of executing a single workflow step."""

    step_name: str
    request_name: str
    index: int = 0
    request: PreparedRequest | None = None
    response: Response | None = None
    extracted: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    error: Exception | None = None
    state: WorkflowState = WorkflowState.RUNNING

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "step_name": self.step_name,
            "request_name": self.request_name,
            "index": self.index,
            "request": self.request.to_dict() if self.request else None,
            "response": self.response.to_dict() if self.response else None,
            "extracted": self.extracted,
            "warnings": self.warnings,
            "error": str(self.error) if self.error else None,
            "state": self.state.value,
        }


@dataclass
class WorkflowResult:
    """Result of executing a complete workflow."""

    workflow_name: str
    workflow_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: WorkflowState = WorkflowState.RUNNING
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    step_results: list[StepResult] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the run ended without an error."""
        return self.state in (WorkflowState.COMPLETED, WorkflowState.STOPPED)

    def add_step_result(self, result: StepResult) -> None:
        self.step_results.append(result)

    def finish(self, state: WorkflowState, error: Exception | None = None) -> None:
        """Mark the workflow as finished."""
        self.end_time = datetime.now(timezone.utc)
        self.state = state
        self.error = error
        self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "workflow_name": self.workflow_name,
            "workflow_id": self.workflow_id,
            "state": self.state.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": round(self.duration_seconds, 2),
            "step_results": [r.to_dict() for r in self.step_results],
            "variables": self.variables,
            "error": str(self.error) if self.error else None,
        }
