"""Error classes for the request and workflow engine."""

from __future__ import annotations


class ReqflowError(Exception):
    """Base exception for reqflow errors."""

    def __init__(self, message: str, workflow_name: str | None = None) -> None:
        self.message = message
        self.workflow_name = workflow_name
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.workflow_name:
            return f"[{self.workflow_name}] {self.message}"
        return self.message


class DefinitionError(ReqflowError):
    """Raised when a request or workflow definition is malformed or incomplete."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        name: str | None = None,
    ) -> None:
        self.file_path = file_path
        self.name = name
        super().__init__(message)

    def _format_message(self) -> str:
        parts = []
        if self.file_path:
            parts.append(self.file_path)
        if self.name:
            parts.append(f"'{self.name}'")
        parts.append(self.message)
        return ": ".join(parts)


class RequestReferenceError(ReqflowError):
    """Raised when a step references a request that is not in the catalog."""

    def __init__(
        self,
        step_name: str,
        request_name: str,
        workflow_name: str | None = None,
    ) -> None:
        self.step_name = step_name
        self.request_name = request_name
        message = f"request '{request_name}' not found for step '{step_name}'"
        super().__init__(message, workflow_name)


class TemplateResolutionError(ReqflowError):
    """Raised when one or more ``{{...}}`` placeholders cannot be resolved.

    ``result`` holds the input with every resolvable placeholder substituted
    and the failing ones left verbatim.
    """

    def __init__(
        self,
        message: str,
        result: str | None = None,
        step_name: str | None = None,
    ) -> None:
        self.result = result
        self.step_name = step_name
        super().__init__(message)

    def _format_message(self) -> str:
        if self.step_name:
            return f"step '{self.step_name}': {self.message}"
        return self.message


class RequestBuildError(ReqflowError):
    """Raised when a concrete request cannot be built from its definition."""

    def __init__(
        self,
        message: str,
        step_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.step_name = step_name
        self.cause = cause
        super().__init__(message)

    def _format_message(self) -> str:
        parts = []
        if self.step_name:
            parts.append(f"step '{self.step_name}'")
        parts.append(self.message)
        if self.cause:
            parts.append(f"caused by: {self.cause}")
        return ": ".join(parts)


class TransportError(ReqflowError):
    """An HTTP call failed before a complete response was received.

    Stored on ``Response.error`` rather than raised.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class ExtractionError(ReqflowError):
    """Raised when a path cannot be walked through a response body."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Extraction '{path}': {message}")


class WorkflowStoppedError(ReqflowError):
    """Raised when an on-error condition stops a workflow."""

    def __init__(
        self,
        step_name: str,
        cause: Exception | None = None,
        workflow_name: str | None = None,
    ) -> None:
        self.step_name = step_name
        self.cause = cause
        message = f"workflow stopped due to error in step '{step_name}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, workflow_name)


class RequestNotFoundError(ReqflowError):
    """Raised when a request name is not present in the catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"request '{name}' not found")


class WorkflowNotFoundError(ReqflowError):
    """Raised when a workflow name is not present in the catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"workflow '{name}' not found")
