from __future__ import annotations

from reqflow import workflows
from reqflow.config import ReqflowConfig as Config, load_config
from reqflow.core.version import REQFLOW_VERSION
from reqflow.workflows import (
    RequestDefinition,
    Workflow,
    WorkflowExecutor,
    WorkflowResult,
    WorkflowState,
    load_catalog,
)

__version__ = REQFLOW_VERSION

__all__ = [
    "__version__",
    # Configuration
    "Config",
    "load_config",
    # Core data structures
    "RequestDefinition",
    "Workflow",
    "WorkflowResult",
    "WorkflowState",
    # Execution
    "WorkflowExecutor",
    "load_catalog",
    "workflows",
]
