"""Parser for YAML request and workflow definitions.

A request file holds either a single request mapping or a ``requests`` list;
a workflow file holds either a single workflow mapping or a ``workflows`` list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from reqflow.workflows.errors import DefinitionError, RequestNotFoundError, WorkflowNotFoundError
from reqflow.workflows.models import RequestDefinition, Workflow

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class Catalog:
    """Definitions discovered on disk, keyed by name."""

    requests: dict[str, RequestDefinition] = field(default_factory=dict)
    workflows: dict[str, Workflow] = field(default_factory=dict)
    errors: list[DefinitionError] = field(default_factory=list)

    def get_request(self, name: str) -> RequestDefinition:
        try:
            return self.requests[name]
        except KeyError:
            raise RequestNotFoundError(name) from None

    def get_workflow(self, name: str) -> Workflow:
        try:
            return self.workflows[name]
        except KeyError:
            raise WorkflowNotFoundError(name) from None


def find_definition_files(directory: str | Path) -> list[Path]:
    """Recursively list YAML files under a directory, sorted by path."""
    directory = Path(directory)
    return sorted(
        path for path in directory.rglob("*") if path.is_file() and path.suffix.lower() in YAML_SUFFIXES
    )


class DefinitionParser:
    """Parses request and workflow YAML files."""

    def parse_request_file(self, path: str | Path) -> list[RequestDefinition]:
        """Parse a request definition file.

        Raises:
            DefinitionError: If the file is unreadable, not YAML, or a request
                lacks a name, method or URL.
        """
        return self._parse_file(path, self.parse_request_string)

    def parse_request_string(self, content: str, file_path: str | None = None) -> list[RequestDefinition]:
        """Parse request definitions from YAML content."""
        data = self._load_yaml(content, file_path)
        return self._parse_documents(data, "requests", RequestDefinition, file_path)

    def parse_workflow_file(self, path: str | Path) -> list[Workflow]:
        """Parse a workflow definition file.

        Raises:
            DefinitionError: If the file is unreadable, not YAML, or invalid.
        """
        return self._parse_file(path, self.parse_workflow_string)

    def parse_workflow_string(self, content: str, file_path: str | None = None) -> list[Workflow]:
        """Parse workflow definitions from YAML content."""
        data = self._load_yaml(content, file_path)
        return self._parse_documents(data, "workflows", Workflow, file_path)

    def load_requests(self, directory: str | Path, catalog: Catalog | None = None) -> Catalog:
        """Load every request file under ``directory`` into a catalog.

        Files that fail to parse are skipped and recorded in ``catalog.errors``.
        """
        catalog = catalog if catalog is not None else Catalog()
        for definition in self._load_directory(directory, self.parse_request_file, catalog):
            catalog.requests[definition.name] = definition
        return catalog

    def load_workflows(self, directory: str | Path, catalog: Catalog | None = None) -> Catalog:
        """Load every workflow file under ``directory`` into a catalog.

        Files that fail to parse are skipped and recorded in ``catalog.errors``.
        """
        catalog = catalog if catalog is not None else Catalog()
        for workflow in self._load_directory(directory, self.parse_workflow_file, catalog):
            catalog.workflows[workflow.name] = workflow
        return catalog

    def _load_directory(
        self,
        directory: str | Path,
        parse: Callable[[Path], list[Any]],
        catalog: Catalog,
    ) -> list[Any]:
        directory = Path(directory)
        if not directory.is_dir():
            logger.debug("Definitions directory not found: %s", directory)
            return []

        definitions: list[Any] = []
        for path in find_definition_files(directory):
            try:
                definitions.extend(parse(path))
            except DefinitionError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                catalog.errors.append(exc)
        return definitions

    def _parse_file(self, path: str | Path, parse: Callable[[str, str | None], list[ModelT]]) -> list[ModelT]:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DefinitionError(f"Failed to read file: {exc}", file_path=str(path)) from exc
        return parse(content, str(path))

    def _load_yaml(self, content: str, file_path: str | None) -> Any:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise DefinitionError(f"Invalid YAML: {exc}", file_path=file_path) from exc

    def _parse_documents(
        self,
        data: Any,
        list_key: str,
        model: type[ModelT],
        file_path: str | None,
    ) -> list[ModelT]:
        if not isinstance(data, dict):
            raise DefinitionError("Definition must be a mapping", file_path=file_path)

        if list_key in data:
            items = data[list_key]
            if not isinstance(items, list):
                raise DefinitionError(f"'{list_key}' must be a list", file_path=file_path)
        else:
            items = [data]

        return [self._validate(item, model, file_path) for item in items]

    def _validate(self, item: Any, model: type[ModelT], file_path: str | None) -> ModelT:
        name = item.get("name") if isinstance(item, dict) else None
        try:
            return model.model_validate(item)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(loc) for loc in error['loc']) or 'definition'}: {error['msg']}"
                for error in exc.errors()
            )
            raise DefinitionError(
                f"Invalid {model.__name__}: {problems}",
                file_path=file_path,
                name=str(name) if name else None,
            ) from exc


def load_catalog(requests_dir: str | Path, workflows_dir: str | Path) -> Catalog:
    """Convenience function to load requests and workflows from two directories."""
    parser = DefinitionParser()
    catalog = parser.load_requests(requests_dir)
    return parser.load_workflows(workflows_dir, catalog)
