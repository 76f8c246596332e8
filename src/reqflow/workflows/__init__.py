"""Request and workflow execution.

This module provides:
- Request definitions and multi-step workflow definitions
- ``{{...}}`` template resolution against variables and prior step responses
- Extraction of response values into workflow variables
- Stop conditions on step success or error
"""

from __future__ import annotations

from reqflow.workflows.models import (
    Condition,
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
from reqflow.workflows.parser import Catalog, DefinitionParser, load_catalog
from reqflow.workflows.executor import StepExecutor, WorkflowExecutor, run_workflow
from reqflow.workflows.expressions import TemplateResolver, extract_path
from reqflow.workflows.materializer import RequestMaterializer
from reqflow.workflows.errors import (
    DefinitionError,
    ExtractionError,
    ReqflowError,
    RequestBuildError,
    RequestNotFoundError,
    RequestReferenceError,
    TemplateResolutionError,
    TransportError,
    WorkflowNotFoundError,
    WorkflowStoppedError,
)

__all__ = [
    # Models
    "Condition",
    "PreparedRequest",
    "RequestDefinition",
    "Response",
    "StepResult",
    "Workflow",
    "WorkflowContext",
    "WorkflowResult",
    "WorkflowState",
    "WorkflowStep",
    # Core components
    "Catalog",
    "DefinitionParser",
    "load_catalog",
    "StepExecutor",
    "WorkflowExecutor",
    "run_workflow",
    "TemplateResolver",
    "extract_path",
    "RequestMaterializer",
    # Errors
    "DefinitionError",
    "ExtractionError",
    "ReqflowError",
    "RequestBuildError",
    "RequestNotFoundError",
    "RequestReferenceError",
    "TemplateResolutionError",
    "TransportError",
    "WorkflowNotFoundError",
    "WorkflowStoppedError",
]
